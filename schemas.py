"""
Database Schemas for the e-learning platform

MongoDB collections are defined below using Pydantic models. Each class name is
converted to lowercase for the collection name (User -> "user").

We will use these collections:
- user: accounts (admin, student, instructor)
- course: catalog entries owned by an instructor
- enrollment: a student's enrollment in a course, with progress

Stored documents use snake_case keys. Request and response bodies use camelCase
(``confirmPassword``, ``paymentStatus``), handled by the alias generator on
``ApiModel``.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from database import sanitize

Role = Literal["admin", "student", "instructor"]
Level = Literal["beginner", "intermediate", "advanced"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Stored documents

class User(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password_hash: str = Field(..., description="BCrypt hash of password")
    pic: Optional[str] = None
    role: Role = Field("student")
    bio: Optional[str] = None
    active: bool = False
    password_changed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


class Course(BaseModel):
    instructor: str = Field(..., description="Reference to user _id (instructor)")
    title: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    category: Optional[str] = None
    level: Level = "beginner"
    price: float = Field(0, ge=0)
    duration: Optional[float] = Field(None, ge=0, description="Length in hours")
    pic: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class Enrollment(BaseModel):
    student: str = Field(..., description="Reference to user _id")
    course: str = Field(..., description="Reference to course _id")
    payment_status: str = "completed"
    progress: int = Field(0, ge=0, le=100)
    enrolled_at: datetime = Field(default_factory=utcnow)


# Public representations

class UserPublic(ApiModel):
    id: str
    name: str
    email: str
    pic: Optional[str] = None
    role: Role = "student"
    bio: Optional[str] = None
    active: bool = False
    password_changed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CoursePublic(ApiModel):
    id: str
    instructor: Union[UserPublic, str, None] = None
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    level: Level = "beginner"
    price: float = 0
    duration: Optional[float] = None
    pic: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class EnrollmentPublic(ApiModel):
    id: str
    student: Union[UserPublic, str, None] = None
    course: Union[CoursePublic, str, None] = None
    payment_status: str = "completed"
    progress: int = Field(0, ge=0, le=100)
    enrolled_at: Optional[datetime] = None


# Requests

def _not_null(v):
    # partial updates may omit a field but never clear a required one
    if v is None:
        raise ValueError("may not be null")
    return v


class _PasswordPair(ApiModel):
    password: str = Field(..., min_length=8)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("password and confirm password don't match")
        return self


class SignupRequest(_PasswordPair):
    name: str = Field(..., min_length=1)
    email: EmailStr
    pic: Optional[str] = None
    bio: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class CreateUserRequest(SignupRequest):
    role: Role = "student"
    active: bool = True


class LoginRequest(ApiModel):
    email: EmailStr
    password: str


class VerifyEmailRequest(ApiModel):
    email: EmailStr
    code: str = Field(..., pattern=r"^\d{8}$")


class ForgotPasswordRequest(ApiModel):
    email: EmailStr


class ResetPasswordRequest(_PasswordPair):
    pass


class UpdatePasswordRequest(_PasswordPair):
    current_password: str


class UpdateMeRequest(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    pic: Optional[str] = None
    bio: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v):
        return _not_null(v)


class CreateCourseRequest(ApiModel):
    title: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    category: Optional[str] = None
    level: Level = "beginner"
    price: float = Field(0, ge=0)
    duration: Optional[float] = Field(None, ge=0)
    pic: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    instructor: Optional[str] = Field(None, description="Admins may create on behalf of an instructor")


class UpdateCourseRequest(ApiModel):
    title: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    category: Optional[str] = None
    level: Optional[Level] = None
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[float] = Field(None, ge=0)
    pic: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("title", "level", "price", "tags")
    @classmethod
    def required_not_null(cls, v):
        return _not_null(v)


class CreateEnrollmentRequest(ApiModel):
    course_id: str


class UpdateProgressRequest(ApiModel):
    progress: int


# Serialization helpers. Public models drop anything not declared on them
# (password hashes, reset and validation fields).

def _public(model, doc):
    if doc is None or isinstance(doc, str):
        return doc
    return model.model_validate(sanitize(doc)).model_dump(mode="json", by_alias=True)


def public_user(doc: Optional[dict]):
    return _public(UserPublic, doc)


def public_course(doc: Optional[dict]):
    return _public(CoursePublic, doc)


def public_enrollment(doc: Optional[dict]):
    return _public(EnrollmentPublic, doc)
