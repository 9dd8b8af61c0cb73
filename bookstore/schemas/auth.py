"""Auth Schemas - credentials and token responses.

Invariants:
    - username: 3-50 chars after stripping, no inner whitespace
    - password: 8-72 UTF-8 bytes (bcrypt ignores anything past 72)
"""

from pydantic import BaseModel, Field, field_validator

MAX_PASSWORD_BYTES = 72


class Credentials(BaseModel):
    """Username/password pair for register and login."""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=MAX_PASSWORD_BYTES)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("username must have at least 3 non-blank characters")
        if any(ch.isspace() for ch in v):
            raise ValueError("username cannot contain whitespace")
        return v

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class TokenResponse(BaseModel):
    access_token: str


class MessageResponse(BaseModel):
    message: str
