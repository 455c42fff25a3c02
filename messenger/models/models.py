# messenger/models/models.py
import time

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from typing import Optional, List


def now_millis() -> int:
    """Current wall clock in milliseconds since epoch, the unit of Message.timecode."""
    return int(time.time() * 1000)

class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    author: str
    content: str
    timecode: int  # milliseconds since epoch, set once by whoever built the message

class RoomDocument(BaseModel):
    people: List[str] = Field(default_factory=list)
    messages: List[Message] = Field(default_factory=list)

class AttendRequest(BaseModel):
    person: str

class PostMessageRequest(BaseModel):
    author: str
    content: str
    # strict: JSON true or "1000" is rejected instead of coerced to an int
    timecode: Optional[StrictInt] = None
