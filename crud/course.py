from typing import List, Optional, Tuple
from bson import ObjectId
from pymongo import ReturnDocument, DESCENDING
from pymongo.errors import DuplicateKeyError
from datetime import datetime, timezone
import logging
import re

from models.course import Course
from schemas.course import CourseCreate, CourseUpdate, LessonIn
from utils.errors import Conflict
from utils.validators import slugify

logger = logging.getLogger(__name__)

DUPLICATE_SLUG_MESSAGE = "A course with this title already exists"


def build_lessons(lessons: List[LessonIn]) -> List[dict]:
    """Give every lesson an id and default its ``order`` to its 1-based position."""
    documents = []
    for index, lesson in enumerate(lessons):
        lesson_id = ObjectId(lesson.id) if lesson.id and ObjectId.is_valid(lesson.id) else ObjectId()
        documents.append({
            "_id": lesson_id,
            "title": lesson.title,
            "content_html": lesson.content_html,
            "video_url": lesson.video_url,
            "order": lesson.order or index + 1,
        })
    return documents


def prepare_course_document(course: CourseCreate, instructor_id: Optional[str] = None) -> dict:
    now = datetime.now(timezone.utc)
    course_dict = course.model_dump(exclude={"lessons", "instructor_id"})
    course_dict["slug"] = slugify(course.title)
    course_dict["lessons"] = build_lessons(course.lessons)
    course_dict["instructor_id"] = ObjectId(instructor_id) if instructor_id else None
    course_dict["created_at"] = now
    course_dict["updated_at"] = now
    return course_dict


def prepare_course_update(course_update: CourseUpdate) -> dict:
    """Build the ``$set`` payload; the slug follows the title whenever it changes."""
    update_data = {
        key: value
        for key, value in course_update.model_dump(exclude_unset=True, exclude={"lessons"}).items()
        if value is not None
    }
    if "title" in update_data:
        update_data["slug"] = slugify(update_data["title"])
    if course_update.lessons is not None:
        update_data["lessons"] = build_lessons(course_update.lessons)
    update_data["updated_at"] = datetime.now(timezone.utc)
    return update_data


class CourseCRUD:
    def __init__(self, db):
        self.db = db
        self.collection = db.courses

    async def get_course(self, course_id: str) -> Optional[Course]:
        if not ObjectId.is_valid(course_id):
            return None
        course_data = await self.collection.find_one({"_id": ObjectId(course_id)})
        return Course(**course_data) if course_data else None

    async def get_courses_by_ids(self, course_ids: List[str]) -> List[Course]:
        object_ids = [ObjectId(course_id) for course_id in course_ids if ObjectId.is_valid(course_id)]
        if not object_ids:
            return []
        courses_data = await self.collection.find({"_id": {"$in": object_ids}}).to_list(length=len(object_ids))
        return [Course(**course_data) for course_data in courses_data]

    async def get_course_by_slug(self, slug: str) -> Optional[Course]:
        course_data = await self.collection.find_one({"slug": slug})
        return Course(**course_data) if course_data else None

    async def get_course_by_id_or_slug(self, identifier: str) -> Optional[Course]:
        course = await self.get_course(identifier)
        if course is None:
            course = await self.get_course_by_slug(identifier)
        return course

    async def get_courses(
        self,
        skip: int = 0,
        limit: int = 10,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Course], int]:
        query = {}
        if category:
            query["category"] = category
        if difficulty:
            query["difficulty"] = difficulty
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"description": pattern}]

        cursor = self.collection.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)
        courses_data = await cursor.to_list(length=limit)
        total = await self.collection.count_documents(query)
        return [Course(**course_data) for course_data in courses_data], total

    async def create_course(self, course: CourseCreate, instructor_id: Optional[str] = None) -> Course:
        course_dict = prepare_course_document(course, instructor_id)
        try:
            result = await self.collection.insert_one(course_dict)
        except DuplicateKeyError:
            raise Conflict(DUPLICATE_SLUG_MESSAGE)
        course_dict["_id"] = result.inserted_id
        logger.info("📚 Course created: %s (%s)", course_dict["title"], course_dict["slug"])
        return Course(**course_dict)

    async def update_course(self, course_id: str, course_update: CourseUpdate) -> Optional[Course]:
        update_data = prepare_course_update(course_update)
        try:
            result = await self.collection.find_one_and_update(
                {"_id": ObjectId(course_id)},
                {"$set": update_data},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise Conflict(DUPLICATE_SLUG_MESSAGE)
        return Course(**result) if result else None

    async def delete_course(self, course_id: str) -> bool:
        result = await self.collection.delete_one({"_id": ObjectId(course_id)})
        return result.deleted_count > 0
