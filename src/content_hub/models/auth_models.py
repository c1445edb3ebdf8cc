"""
# Authentication Models

Request and response payloads for `/auth/login` and the verified identity that flows through
request dependencies.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LoginRequest(BaseModel):
    """Credentials. Presence is checked by the auth service so a missing field is a 400."""

    email: Optional[str] = None
    password: Optional[str] = None


class UserRecord(BaseModel):
    """Public view of a user account (never carries the password hash)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    email: str
    role: str = "client"
    client_id: str


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    user: UserRecord
    access_token: str
    token_type: str = Field("bearer")
