from typing import Optional
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from mapsy.core.exceptions import ConflictError
from mapsy.models.chat import utcnow
from mapsy.models.user import User
from mapsy.repositories.chat_repository import to_object_id

class UserRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db["users"]

    async def create(self, user: User) -> dict:
        doc = user.to_document()
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("User with this email already exists")
        doc["_id"] = result.inserted_id
        return doc

    async def get_by_email(self, email: str) -> Optional[dict]:
        return await self.collection.find_one({"email": email.strip().lower()})

    async def get_by_id(self, user_id) -> Optional[dict]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return await self.collection.find_one({"_id": oid})

    async def update(self, user_id: ObjectId, changes: dict) -> Optional[dict]:
        changes = {**changes, "updatedAt": utcnow()}
        return await self.collection.find_one_and_update(
            {"_id": user_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
