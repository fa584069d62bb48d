from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from mapsy.core.config import settings

mongo_client = AsyncIOMotorClient(settings.mongo_url, tz_aware=True)
mongo_db = mongo_client[settings.mongo_db]

def get_mongo_db() -> AsyncIOMotorDatabase:
    return mongo_db

async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    await db["users"].create_index("email", unique=True)
    await db["chat_sessions"].create_index([("userId", 1), ("createdAt", -1)])
    await db["chat_sessions"].create_index([("userId", 1), ("isActive", 1)])
    await db["chat_messages"].create_index([("chatSessionId", 1), ("timestamp", 1)])
    await db["chat_messages"].create_index([("chatSessionId", 1), ("type", 1)])
