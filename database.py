# database.py
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING

from config import settings

logger = logging.getLogger(__name__)


class MongoDB:
    client: Optional[AsyncIOMotorClient] = None


mongodb = MongoDB()


def connect_to_mongo() -> AsyncIOMotorClient:
    if mongodb.client is None:
        logger.info("🔗 Connecting to MongoDB...")
        mongodb.client = AsyncIOMotorClient(
            settings.MONGODB_URL,
            serverSelectionTimeoutMS=15000,
            connectTimeoutMS=15000,
            maxPoolSize=10,
            retryWrites=True,
            tz_aware=True,
        )
    return mongodb.client


async def get_database():
    client = connect_to_mongo()
    return client[settings.DATABASE_NAME]


async def close_mongo_connection():
    if mongodb.client:
        mongodb.client.close()
        mongodb.client = None
        logger.info("🔌 MongoDB connection closed")


async def create_indexes():
    db = await get_database()
    logger.info("📊 Creating database indexes...")

    # User indexes
    await db.users.create_index([("email", ASCENDING)], unique=True)
    await db.users.create_index([("role", ASCENDING)])

    # Course indexes
    await db.courses.create_index([("slug", ASCENDING)], unique=True)
    await db.courses.create_index([("category", ASCENDING)])
    await db.courses.create_index([("difficulty", ASCENDING)])
    await db.courses.create_index([("instructor_id", ASCENDING)])

    # Enrollment indexes, the compound one is the backstop against double enrollment
    await db.enrollments.create_index(
        [("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True
    )
    await db.enrollments.create_index([("course_id", ASCENDING)])
    await db.enrollments.create_index([("enrolled_at", DESCENDING)])

    logger.info("✅ Database indexes created")
