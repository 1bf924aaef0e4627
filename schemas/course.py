from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional

from models.course import CategoryEnum, DifficultyEnum


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )


class LessonIn(CamelModel):
    id: Optional[str] = None
    title: str = Field(min_length=1, max_length=200)
    content_html: str = ""
    video_url: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=1)


class CourseBase(CamelModel):
    description: Optional[str] = Field(default=None, min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[CategoryEnum] = None
    difficulty: Optional[DifficultyEnum] = None
    instructor: Optional[str] = Field(default=None, min_length=1, max_length=100)
    thumbnail_url: Optional[str] = None


class CourseCreate(CourseBase):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    price: float = Field(ge=0)
    category: CategoryEnum
    difficulty: DifficultyEnum
    instructor: str = Field(min_length=1, max_length=100)
    # Only honoured for admins, instructors always own what they create
    instructor_id: Optional[str] = None
    lessons: List[LessonIn] = []

    @field_validator("instructor_id")
    @classmethod
    def instructor_id_must_be_object_id(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not ObjectId.is_valid(value):
            raise ValueError("Invalid ID format")
        return value

    @field_validator("title")
    @classmethod
    def title_must_have_slug_characters(cls, value: str) -> str:
        if not any(ch.isascii() and ch.isalnum() for ch in value):
            raise ValueError("Title must contain at least one letter or digit")
        return value


class CourseUpdate(CourseBase):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    lessons: Optional[List[LessonIn]] = None

    @field_validator("title")
    @classmethod
    def title_must_have_slug_characters(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not any(ch.isascii() and ch.isalnum() for ch in value):
            raise ValueError("Title must contain at least one letter or digit")
        return value


class EnrollmentCreate(CamelModel):
    course_id: Optional[str] = None


class ProgressUpdate(CamelModel):
    lesson_id: Optional[str] = None
    completed: Optional[StrictBool] = None
