"""
Pydantic schemas for authentication endpoints.
"""
from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class SignupRequest(BaseModel):
    """Request schema for user signup."""
    full_name: str = Field(..., min_length=1, max_length=200, description="User's full name")
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=8, description="User's password (min 8 characters)")
    role: Literal["candidate", "employer"] = Field(default="candidate", description="Account role")

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        """Validate password length in bytes (bcrypt limit is 72 bytes)."""
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password too long (bcrypt limit 72 bytes)")
        return v

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "fullName": "Jane Recruiter",
                "email": "jane@acme.example",
                "password": "SecurePass123",
                "role": "employer"
            }
        }


class UserResponse(BaseModel):
    """Public view of a user."""
    id: int
    full_name: str
    email: str
    role: str
    created_at: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class TokenResponse(BaseModel):
    """OAuth2 bearer token response."""
    access_token: str
    token_type: str = "bearer"
