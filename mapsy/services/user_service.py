import logging
from typing import Any, Dict
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from mapsy.core.exceptions import AuthError, ConflictError, NotFoundError
from mapsy.models.chat import utcnow
from mapsy.models.user import User
from mapsy.repositories.user_repository import UserRepository
from mapsy.schemas.user import LoginRequest, RegisterRequest, UserResponse
from mapsy.utils.security import create_access_token, hash_password, verify_password

logger = logging.getLogger("user_service")

class UserService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.users = UserRepository(db)

    async def register(self, data: RegisterRequest) -> Dict[str, Any]:
        if await self.users.get_by_email(data.email):
            raise ConflictError("User with this email already exists")

        doc = await self.users.create(User(
            email=data.email,
            password=hash_password(data.password),
            name=data.name,
        ))
        logger.info(f"Registered user {doc['_id']}")
        return self._auth_payload(doc)

    async def login(self, data: LoginRequest) -> Dict[str, Any]:
        doc = await self.users.get_by_email(data.email)
        if not doc or not verify_password(data.password, doc["password"]):
            raise AuthError("Invalid email or password", code="INVALID_CREDENTIALS")

        doc = await self.users.update(doc["_id"], {"lastLogin": utcnow()})
        return self._auth_payload(doc)

    async def get_user(self, user_id: ObjectId) -> UserResponse:
        doc = await self.users.get_by_id(user_id)
        if not doc:
            raise NotFoundError("User not found")
        return UserResponse.from_document(doc)

    async def set_onboarding(self, user_id: ObjectId, completed: bool) -> UserResponse:
        doc = await self.users.update(user_id, {"onboardingCompleted": completed})
        if not doc:
            raise NotFoundError("User not found")
        return UserResponse.from_document(doc)

    def _auth_payload(self, doc: dict) -> Dict[str, Any]:
        return {
            "token": create_access_token(str(doc["_id"]), doc["email"]),
            "user": UserResponse.from_document(doc),
        }
