"""
Pydantic schemas for authentication endpoints.
"""
from pydantic import BaseModel, Field, field_validator

from picquiz.core.error_responses import ErrorMessages
from picquiz.core.validators import CredentialValidator


class UserRegister(BaseModel):
    """Schema for user registration request."""

    username: str = Field(
        ...,
        min_length=CredentialValidator.MIN_LENGTH,
        max_length=CredentialValidator.MAX_LENGTH,
        description="Username (English/Hebrew letters and digits)",
    )
    password: str = Field(
        ...,
        min_length=CredentialValidator.MIN_LENGTH,
        max_length=CredentialValidator.MAX_LENGTH,
        description="Password (English/Hebrew letters and digits)",
    )

    @field_validator("username", "password")
    @classmethod
    def validate_charset(cls, v: str) -> str:
        if not CredentialValidator.is_valid(v):
            raise ValueError(
                ErrorMessages.invalid_credentials_format(CredentialValidator.MIN_LENGTH)
            )
        return v


class UserLogin(BaseModel):
    """Schema for user login request."""

    username: str = Field(..., min_length=1, max_length=CredentialValidator.MAX_LENGTH)
    password: str = Field(..., min_length=1, max_length=CredentialValidator.MAX_LENGTH)


class Token(BaseModel):
    """Schema for authentication token response."""

    access_token: str
    token_type: str = "bearer"
    username: str


class LogoutResponse(BaseModel):
    message: str
