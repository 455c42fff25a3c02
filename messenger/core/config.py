# messenger/core/config.py
import os
from typing import Literal
from dotenv import load_dotenv

class Settings:
    """
    Setup environment variables.
        - STORE_BACKEND where room documents live: "memory", "file" or "redis"
        - STORE_PATH the JSON file used by the "file" backend
        - REDIS_URL / REDIS_HOST / REDIS_PORT / REDIS_ACCESS_KEY the redis connection
        - SERVER_URL the backend the sync client polls
        - POLL_INTERVAL_SECONDS how often the sync client refreshes
    """

    # Load environment variables from the .env file
    load_dotenv()

    STORE_BACKEND: Literal["memory", "file", "redis"] = os.getenv("STORE_BACKEND", "file")
    STORE_PATH: str = os.getenv("STORE_PATH", "chats.json")

    REDIS_URL: str = os.getenv("REDIS_URL", "")
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_ACCESS_KEY: str = os.getenv("REDIS_ACCESS_KEY", "")
    REDIS_KEY_PREFIX: str = os.getenv("REDIS_KEY_PREFIX", "chat:")

    SERVER_URL: str = os.getenv("SERVER_URL", "http://127.0.0.1:8000")
    POLL_INTERVAL_SECONDS: float = float(os.getenv("POLL_INTERVAL_SECONDS", "2.0"))
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "5.0"))

    @property
    def redis_url(self) -> str:
        if self.REDIS_URL:
            return self.REDIS_URL
        if self.REDIS_ACCESS_KEY:
            return f"rediss://:{self.REDIS_ACCESS_KEY}@{self.REDIS_HOST}:{self.REDIS_PORT}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

settings = Settings()
