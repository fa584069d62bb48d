from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase
from mapsy.core.exceptions import AuthError
from mapsy.core.mongo import get_mongo_db
from mapsy.repositories.user_repository import UserRepository
from mapsy.services.chat_service import ChatService
from mapsy.services.guide_ai_service import GuideAIService, get_guide_ai_service
from mapsy.services.user_service import UserService
from mapsy.services.vision_service import VisionService, get_vision_service
from mapsy.utils.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_mongo_db),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token is required", code="AUTH_REQUIRED")

    payload = decode_access_token(credentials.credentials)
    user = await UserRepository(db).get_by_id(payload["userId"])
    if not user:
        raise AuthError("Invalid token - user not found", code="INVALID_TOKEN")
    return user

def get_user_service(db: AsyncIOMotorDatabase = Depends(get_mongo_db)) -> UserService:
    return UserService(db)

def get_chat_service(
    db: AsyncIOMotorDatabase = Depends(get_mongo_db),
    vision: VisionService = Depends(get_vision_service),
    guide_ai: GuideAIService = Depends(get_guide_ai_service),
) -> ChatService:
    return ChatService(db, vision, guide_ai)
