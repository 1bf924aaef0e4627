# models/user.py
from typing import Optional
from datetime import datetime
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
import enum

from models.course import PyObjectId


class RoleEnum(str, enum.Enum):
    admin = "admin"
    instructor = "instructor"
    student = "student"


class User(BaseModel):
    """A stored account; ``password_hash`` and ``refresh_token`` never leave the API."""

    id: PyObjectId = Field(validation_alias=AliasChoices("_id", "id"))
    name: str
    email: str
    password_hash: str
    role: RoleEnum = RoleEnum.student
    refresh_token: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    def public_view(self, include_created_at: bool = False) -> dict:
        view = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
        }
        if include_created_at:
            view["createdAt"] = self.created_at
        return view
