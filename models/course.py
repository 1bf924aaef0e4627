# models/course.py
from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, Dict, List, Optional
from datetime import datetime
from bson import ObjectId
import enum


def _object_id_to_str(value):
    if isinstance(value, ObjectId):
        return str(value)
    return value


# ObjectIds coming back from Mongo are exposed as plain hex strings
PyObjectId = Annotated[str, BeforeValidator(_object_id_to_str)]


class CategoryEnum(str, enum.Enum):
    programming = "programming"
    design = "design"
    business = "business"
    marketing = "marketing"
    data_science = "data-science"
    other = "other"


class DifficultyEnum(str, enum.Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class MongoDBModel(BaseModel):
    id: PyObjectId = Field(validation_alias=AliasChoices("_id", "id"), serialization_alias="id")

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        alias_generator=to_camel,
    )

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Lesson(MongoDBModel):
    title: str
    content_html: str = ""
    video_url: Optional[str] = None
    order: int


class Course(MongoDBModel):
    title: str
    slug: str
    description: str
    price: float
    category: CategoryEnum
    difficulty: DifficultyEnum
    instructor: str
    instructor_id: Optional[PyObjectId] = None
    thumbnail_url: Optional[str] = None
    lessons: List[Lesson] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def lesson_ids(self) -> List[str]:
        return [lesson.id for lesson in self.lessons]

    def summary(self) -> dict:
        data = self.to_response()
        data.pop("lessons", None)
        data["lessonCount"] = len(self.lessons)
        return data


class Enrollment(MongoDBModel):
    user_id: PyObjectId
    course_id: PyObjectId
    # lesson id -> completed
    progress: Dict[str, bool] = {}
    progress_percentage: int = 0
    enrolled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
