"""Request and response schemas shared by the services and the API."""

from datetime import datetime
from typing import List, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .errors import ValidationError, details_from_pydantic
from .models.task import TaskStatus
from .models.user import Role

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
# Keeps (page - 1) * limit inside a signed 64-bit database integer.
MAX_PAGE = (2**63 - 1) // MAX_PAGE_SIZE

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse(model: Type[ModelT], data: dict) -> ModelT:
    """Validate ``data`` against ``model``, raising our own ValidationError."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(details=details_from_pydantic(exc.errors())) from exc


class UserCreate(BaseModel):
    """Request body for registering a new user."""

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: Role = Role.USER

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class UserLogin(BaseModel):
    """Request body for user login."""

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class UserPublic(BaseModel):
    """User fields that may leave the service."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: Role


class LoginResponse(BaseModel):
    token: str
    user: UserPublic


class TaskCreate(BaseModel):
    """Request body for creating a task; any owner field sent is ignored."""

    title: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value


class TaskUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    title: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("title", "status", mode="after")
    @classmethod
    def not_null(cls, value, info):
        # An explicit null would reset a required column.
        if value is None:
            raise ValueError(f"{info.field_name} may not be null")
        return value


class TaskFilters(BaseModel):
    """Query parameters accepted when listing tasks."""

    status: Optional[TaskStatus] = None
    all: bool = False
    page: int = Field(1, ge=1, le=MAX_PAGE)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class TaskOut(BaseModel):
    """Serialized task."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    created_at: datetime


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int


class TaskPage(BaseModel):
    """One page of tasks plus the total under the same filter."""

    data: List[TaskOut]
    meta: PageMeta
