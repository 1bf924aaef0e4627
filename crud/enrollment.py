from typing import Dict, List, Optional
from bson import ObjectId
from datetime import datetime, timezone
from pymongo import ReturnDocument, DESCENDING
from pymongo.errors import DuplicateKeyError

from models.course import Enrollment
from utils.errors import Conflict

ALREADY_ENROLLED_MESSAGE = "Already enrolled in this course"


class EnrollmentCRUD:
    def __init__(self, db):
        self.db = db
        self.collection = db.enrollments

    async def create_enrollment(self, user_id: str, course_id: str) -> Enrollment:
        enrollment_data = {
            "user_id": ObjectId(user_id),
            "course_id": ObjectId(course_id),
            "progress": {},
            "progress_percentage": 0,
            "enrolled_at": datetime.now(timezone.utc),
            "completed_at": None,
        }
        try:
            result = await self.collection.insert_one(enrollment_data)
        except DuplicateKeyError:
            # The compound unique index caught a concurrent enroll for the same pair
            raise Conflict(ALREADY_ENROLLED_MESSAGE, status_code=409)

        enrollment_data["_id"] = result.inserted_id
        return Enrollment(**enrollment_data)

    async def get_enrollment_by_id(self, enrollment_id: str) -> Optional[Enrollment]:
        if not ObjectId.is_valid(enrollment_id):
            return None
        enrollment = await self.collection.find_one({"_id": ObjectId(enrollment_id)})
        return Enrollment(**enrollment) if enrollment else None

    async def get_user_course_enrollment(self, user_id: str, course_id: str) -> Optional[Enrollment]:
        enrollment = await self.collection.find_one({
            "user_id": ObjectId(user_id),
            "course_id": ObjectId(course_id),
        })
        return Enrollment(**enrollment) if enrollment else None

    async def find_enrollments(
        self,
        user_id: Optional[str] = None,
        course_id: Optional[str] = None,
        limit: int = 1000,
    ) -> List[Enrollment]:
        query = {}
        if user_id:
            query["user_id"] = ObjectId(user_id)
        if course_id:
            query["course_id"] = ObjectId(course_id)

        cursor = self.collection.find(query).sort("enrolled_at", DESCENDING)
        enrollments = await cursor.to_list(length=limit)
        return [Enrollment(**enrollment) for enrollment in enrollments]

    async def save_progress(
        self,
        enrollment_id: str,
        progress: Dict[str, bool],
        progress_percentage: int,
        completed_at: Optional[datetime],
    ) -> Optional[Enrollment]:
        result = await self.collection.find_one_and_update(
            {"_id": ObjectId(enrollment_id)},
            {"$set": {
                "progress": progress,
                "progress_percentage": progress_percentage,
                "completed_at": completed_at,
            }},
            return_document=ReturnDocument.AFTER,
        )
        return Enrollment(**result) if result else None
