from typing import List, Optional
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from mapsy.models.chat import ChatMessage, ChatSession, utcnow

def to_object_id(value) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None

class ChatRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.session_collection = db["chat_sessions"]
        self.message_collection = db["chat_messages"]

    # sessions

    async def create_session(self, session: ChatSession) -> dict:
        doc = session.to_document()
        result = await self.session_collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def get_owned_session(self, session_id: str, user_id: ObjectId) -> Optional[dict]:
        oid = to_object_id(session_id)
        if oid is None:
            return None
        return await self.session_collection.find_one({"_id": oid, "userId": user_id})

    async def list_sessions(self, user_id: ObjectId, skip: int, limit: int) -> List[dict]:
        cursor = (
            self.session_collection.find({"userId": user_id})
            .sort([("createdAt", -1), ("_id", -1)])
            .skip(skip)
            .limit(limit)
        )
        return [doc async for doc in cursor]

    async def count_sessions(self, user_id: ObjectId) -> int:
        return await self.session_collection.count_documents({"userId": user_id})

    async def update_session(self, session_id: ObjectId, user_id: ObjectId, changes: dict) -> Optional[dict]:
        changes = {**changes, "updatedAt": utcnow()}
        return await self.session_collection.find_one_and_update(
            {"_id": session_id, "userId": user_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )

    # messages

    async def create_message(self, message: ChatMessage) -> dict:
        doc = message.to_document()
        result = await self.message_collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def update_message(self, message_id: ObjectId, changes: dict) -> Optional[dict]:
        return await self.message_collection.find_one_and_update(
            {"_id": message_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )

    async def get_messages(self, session_id: ObjectId, skip: int = 0, limit: int = 50) -> List[dict]:
        cursor = (
            self.message_collection.find({"chatSessionId": session_id})
            .sort([("timestamp", 1), ("_id", 1)])
            .skip(skip)
            .limit(limit)
        )
        return [doc async for doc in cursor]

    async def count_messages(self, session_id: ObjectId) -> int:
        return await self.message_collection.count_documents({"chatSessionId": session_id})

    async def get_last_message(self, session_id: ObjectId) -> Optional[dict]:
        cursor = (
            self.message_collection.find(
                {"chatSessionId": session_id},
                {"content": 1, "type": 1, "sender": 1, "timestamp": 1},
            )
            .sort([("timestamp", -1), ("_id", -1)])
            .limit(1)
        )
        docs = [doc async for doc in cursor]
        return docs[0] if docs else None
