from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import ConfigDict, Field
from mapsy.models.chat import utcnow
from mapsy.schemas.base import BaseSchema

class Language(str, Enum):
    ES = "es"
    EN = "en"
    FR = "fr"
    DE = "de"
    PT = "pt"

class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"

class Preferences(BaseSchema):
    model_config = ConfigDict(use_enum_values=True)

    language: Language = Language.ES
    theme: Theme = Theme.SYSTEM

class User(BaseSchema):
    email: str
    password: str  # bcrypt hash
    name: str
    avatar: Optional[str] = None
    preferences: Preferences = Field(default_factory=Preferences)
    onboarding_completed: bool = False
    last_login: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_document(self) -> dict:
        # avatar is stored as an explicit null
        doc = super().to_document()
        doc.setdefault("avatar", None)
        return doc
