"""Pydantic schemas for the authentication endpoints.

Learn: Every response carries a boolean `result` and a list of
`errors`, plus `token` on successful login.
"""

from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class AuthResult(BaseModel):
    result: bool
    token: Optional[str] = None
    errors: list[str] = Field(default_factory=list)
