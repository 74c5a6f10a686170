# PURPOSE: request/response schemas (pydantic v2).
# JSON keys are camelCase (startDate, ownerId, ...); Python attributes stay snake_case.

import re
from datetime import date, datetime
from typing import Literal

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Status = Literal["in_progress", "done", "blocked"]
Role = Literal["user", "admin"]

PASSWORD_POLICY_MESSAGE = (
    "Password must be at least 8 characters long, include an uppercase letter, "
    "a lowercase letter, a number, and a special character."
)


def _camel_config(**extra) -> ConfigDict:
    return ConfigDict(alias_generator=to_camel, populate_by_name=True, **extra)


# --- Task schemas ---


class TaskIn(BaseModel):
    """Full task body, used by both create and update (PUT is a full replace)."""

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    responsible: str = Field(min_length=1)
    status: Status
    start_date: date
    end_date: date
    deadline: date

    model_config = _camel_config(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "title": "Write report",
                    "description": "Quarterly numbers",
                    "responsible": "alice",
                    "status": "in_progress",
                    "startDate": "2024-01-01",
                    "endDate": "2024-01-02",
                    "deadline": "2024-01-03",
                }
            ]
        },
    )

    @model_validator(mode="after")
    def check_date_order(self):
        if self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        if self.end_date > self.deadline:
            raise ValueError("endDate must not be after deadline")
        return self


class Task(BaseModel):
    id: int
    title: str
    description: str
    responsible: str
    status: Status
    start_date: date
    end_date: date
    deadline: date
    owner_id: int
    created_at: datetime
    updated_at: datetime

    model_config = _camel_config(from_attributes=True)  # ORM -> schema


# --- User / Auth schemas ---


class UserCreate(BaseModel):
    username: str
    email: EmailStr
    # Raw password only in create request
    password: str
    role: Role = "user"

    @field_validator("username")
    @classmethod
    def username_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Username is required")
        return value

    @field_validator("password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        if not password_is_strong(value):
            raise ValueError(PASSWORD_POLICY_MESSAGE)
        return value


class UserLogin(BaseModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def password_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


class UserPublic(BaseModel):
    # Never carries the password hash
    id: int
    username: str
    email: EmailStr
    role: Role
    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    token: str
    token_type: Literal["bearer"] = "bearer"
    user: UserPublic
    model_config = _camel_config(
        json_schema_extra={
            "examples": [
                {
                    "token": "<jwt>",
                    "tokenType": "bearer",
                    "user": {"id": 1, "username": "alice", "email": "a@x.com", "role": "user"},
                }
            ]
        }
    )


class TokenClaims(BaseModel):
    """Verified identity attached to a request by the auth gate."""

    identity_id: int
    role: Role


def normalize_email(value) -> str | None:
    """Return the canonical form EmailStr stores (domain lowercased), or None if not an email."""
    if not isinstance(value, str):
        return None
    try:
        return validate_email(value, check_deliverability=False).normalized
    except EmailNotValidError:
        return None


def password_is_strong(password: str) -> bool:
    return (
        len(password) >= 8
        and re.search(r"[A-Z]", password) is not None
        and re.search(r"[a-z]", password) is not None
        and re.search(r"\d", password) is not None
        and re.search(r"[^A-Za-z\d\s]", password) is not None
    )
