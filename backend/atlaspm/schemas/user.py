"""
AtlasPM Backend — User Schemas
===============================

What:  Request bodies and response envelopes for /v1/user.
Security: `password` is write-only. Responses never include it or its hash.

Email format:
    Checked with the same permissive pattern browsers use for
    <input type="email">; deliverability is not our concern here.
"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from atlaspm.schemas.common import PageMetadata, ensure_not_blank

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

# bcrypt only looks at the first 72 bytes
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72


def normalize_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("must be a valid email address")
    return value.lower()


def check_password(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        raise ValueError(f"must not be more than {PASSWORD_MAX_LENGTH} bytes long")
    return value


class UserCreate(BaseModel):
    email: str = Field(max_length=500)
    first_name: str = Field(min_length=1, max_length=500)
    last_name: str = Field(min_length=1, max_length=500)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    activated: bool = False

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> Optional[str]:
        return check_password(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)


class UserUpdate(BaseModel):
    email: Optional[str] = Field(default=None, max_length=500)
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=500)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=500)
    password: Optional[str] = Field(
        default=None, min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH
    )
    activated: Optional[bool] = None
    version: Optional[int] = Field(default=None, ge=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> Optional[str]:
        return check_password(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    activated: bool
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserEnvelope(BaseModel):
    user: UserResponse


class UserListEnvelope(BaseModel):
    metadata: PageMetadata
    users: List[UserResponse]
