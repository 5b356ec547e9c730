"""User account Pydantic models for request/response validation.

Email validation enforced via EmailStr. Passwords never appear in responses.
Names are stripped before their length is checked.
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional

DisplayName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class UserRegister(BaseModel):
    name: DisplayName
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    name: Optional[DisplayName] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    created_at: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthResponse(BaseModel):
    """Returned by register and login"""
    id: str
    name: str
    email: str
    token: str
