from typing import Optional
from pydantic import Field, StrictBool
from .base import BaseSchema

class CreateSessionRequest(BaseSchema):
    country: str = Field(..., max_length=100, description="Country of the trip")
    city: str = Field(..., max_length=100, description="City of the trip")

class SendMessageRequest(BaseSchema):
    content: str = Field(..., description="Question for the guide")

class RecommendationRequest(BaseSchema):
    current_landmark: Optional[str] = Field(None, max_length=200)

class UpdateSessionRequest(BaseSchema):
    is_active: Optional[StrictBool] = None
    title: Optional[str] = Field(None, max_length=200)
