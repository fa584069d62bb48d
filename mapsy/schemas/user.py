from datetime import datetime
from typing import Optional
from pydantic import EmailStr, Field, StrictBool, field_validator
from mapsy.models.user import Preferences
from .base import BaseSchema

# bcrypt only hashes the first 72 bytes
MAX_PASSWORD_BYTES = 72

class RegisterRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=6, description="At least 6 characters")
    name: str = Field(..., min_length=2, description="Display name")

    @field_validator("password", mode="after")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("name", mode="after")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be at least 2 characters")
        return value

class LoginRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

class OnboardingRequest(BaseSchema):
    onboarding_completed: StrictBool

class UserResponse(BaseSchema):
    id: str
    email: str
    name: str
    avatar: Optional[str] = None
    preferences: Preferences
    onboarding_completed: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: dict) -> "UserResponse":
        return cls(
            id=str(doc["_id"]),
            email=doc["email"],
            name=doc["name"],
            avatar=doc.get("avatar"),
            preferences=Preferences.model_validate(doc.get("preferences") or {}),
            onboarding_completed=doc.get("onboardingCompleted", False),
            created_at=doc["createdAt"],
            last_login=doc.get("lastLogin"),
        )
