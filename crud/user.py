# crud/user.py
from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from models.user import User, RoleEnum
from utils.errors import Conflict
from utils.security import hash_password

DUPLICATE_EMAIL_MESSAGE = "User already exists with that email"


def prepare_user_document(name: str, email: str, password: str, role: RoleEnum) -> dict:
    """Build a new user document, hashing the plaintext password."""
    return {
        "name": name,
        "email": email.lower(),
        "password_hash": hash_password(password),
        "role": RoleEnum(role).value,
        "refresh_token": None,
        "created_at": datetime.now(timezone.utc),
    }


def prepare_user_update(update_data: dict) -> dict:
    """Turn a profile update into a ``$set`` payload.

    Only a ``password`` key triggers re-hashing; any other field is stored as is.
    """
    prepared = {key: value for key, value in update_data.items() if key != "password"}
    if update_data.get("password"):
        prepared["password_hash"] = hash_password(update_data["password"])
    if "email" in prepared:
        prepared["email"] = prepared["email"].lower()
    return prepared


class UserCRUD:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db.users

    async def get_user_by_email(self, email: str) -> Optional[User]:
        user_data = await self.collection.find_one({"email": email.lower()})
        return User(**user_data) if user_data else None

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        if not ObjectId.is_valid(user_id):
            return None
        user_data = await self.collection.find_one({"_id": ObjectId(user_id)})
        return User(**user_data) if user_data else None

    async def get_users_by_ids(self, user_ids: List[str]) -> List[User]:
        object_ids = [ObjectId(user_id) for user_id in user_ids if ObjectId.is_valid(user_id)]
        if not object_ids:
            return []
        users_data = await self.collection.find({"_id": {"$in": object_ids}}).to_list(length=len(object_ids))
        return [User(**user_data) for user_data in users_data]

    async def create_user(self, name: str, email: str, password: str, role: RoleEnum = RoleEnum.student) -> User:
        user_dict = prepare_user_document(name, email, password, role)
        try:
            result = await self.collection.insert_one(user_dict)
        except DuplicateKeyError:
            # Lost a race with a concurrent signup for the same address
            raise Conflict(DUPLICATE_EMAIL_MESSAGE)

        user_dict["_id"] = result.inserted_id
        return User(**user_dict)

    async def update_user(self, user_id: str, update_data: dict) -> Optional[User]:
        prepared = prepare_user_update(update_data)
        if not prepared:
            return await self.get_user_by_id(user_id)
        try:
            result = await self.collection.find_one_and_update(
                {"_id": ObjectId(user_id)},
                {"$set": prepared},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise Conflict(DUPLICATE_EMAIL_MESSAGE)
        return User(**result) if result else None

    async def set_refresh_token(self, user_id: str, refresh_token: Optional[str]) -> bool:
        result = await self.collection.update_one(
            {"_id": ObjectId(user_id)},
            {"$set": {"refresh_token": refresh_token}},
        )
        return result.matched_count > 0
