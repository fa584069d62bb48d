from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from bson import ObjectId
from pydantic import ConfigDict, Field
from mapsy.models.vision import LandmarkDetectionResult
from mapsy.schemas.base import BaseSchema

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    RECOMMENDATION = "recommendation"
    SYSTEM = "system"

class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"

class Coordinates(BaseSchema):
    lat: float
    lng: float

class PlaceRecommendation(BaseSchema):
    name: str
    type: str  # museum, monument, restaurant, attraction, park, viewpoint...
    description: str
    distance: Optional[float] = Field(None, ge=0)  # metres
    rating: Optional[float] = Field(None, ge=0, le=5)
    coordinates: Optional[Coordinates] = None
    image_url: Optional[str] = None
    opening_hours: Optional[str] = None

class ChatSession(BaseSchema):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    user_id: ObjectId
    country: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    title: Optional[str] = Field(None, max_length=200)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

class ChatMessage(BaseSchema):
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    chat_session_id: ObjectId
    type: MessageType
    content: str = Field(..., min_length=1)
    sender: Sender
    timestamp: datetime = Field(default_factory=utcnow)
    landmark_info: Optional[LandmarkDetectionResult] = None
    recommendations: Optional[List[PlaceRecommendation]] = None
    processing: bool = False
