"""
Lime Core Backend — Authentication Schemas
============================================

What:  Request/response contracts for /auth endpoints and the identity
       object every tenant-scoped route receives.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class AuthRequest(BaseModel):
    """Credentials posted to POST /auth/authenticate."""
    email: str = Field(min_length=3, max_length=320, description="Account email address")
    password: str = Field(min_length=1, max_length=1024, description="Account password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Emails are matched case-insensitively; stored lowercase."""
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v


class UserResponse(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    current_organization_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthData(BaseModel):
    """
    What:  Session issued after a successful authentication.
    Who:   Returned by POST /auth/authenticate; also produced by the Google
           callback, which hands `access_token` to the frontend in a redirect.
    """
    access_token: str = Field(description="Signed session token (JWT)")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserResponse


class AuthenticatedUser(BaseModel):
    """
    Identity resolved from the bearer token of the current request.

    `current_organization_id` is the tenant filter key for every CRUD call
    the request makes.
    """
    id: str
    email: str
    current_organization_id: Optional[str] = None
