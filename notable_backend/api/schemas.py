from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer


def as_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; label them so clients see the offset."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value

# Pydantic models for serialization and validation

class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=1, max_length=64, description="User's display name")
    password: str = Field(..., min_length=1, max_length=256)
    phone_number: Optional[str] = Field(None, max_length=32)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class ForgotPasswordRequest(BaseModel):
    email: EmailStr

class CheckAuthRequest(BaseModel):
    token: Optional[str] = None

class RegisteredUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uid: int = Field(..., description="Local user id")
    provider_uid: str = Field(..., alias="providerUid")
    email: EmailStr
    username: str
    phone_number: Optional[str] = None

class RegisterResponse(BaseModel):
    message: str
    user: RegisteredUser

class LoginResponse(BaseModel):
    message: str
    token: str
    id: int

class CheckAuthResponse(BaseModel):
    loggedIn: bool
    user: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    phone_number: Optional[str] = None
    provider_uid: Optional[str] = None
    created_at: datetime

    @field_serializer("created_at")
    def _utc(self, value: datetime) -> datetime:
        return as_utc(value)

class UserEnvelope(BaseModel):
    user: UserOut

class MessageResponse(BaseModel):
    message: str


class NoteCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(..., alias="userId")
    title: str
    content: str
    tags: List[str] = Field(default_factory=list)
    attachments: List[str] = Field(default_factory=list)
    favorite: bool = False
    pinned: bool = False
    in_trash: bool = Field(False, alias="inTrash")

class NoteContentUpdate(BaseModel):
    title: str
    content: str

class NoteStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    favorite: Optional[bool] = None
    pinned: Optional[bool] = None
    in_trash: Optional[bool] = Field(None, alias="inTrash")

class TagRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    note_id: int = Field(..., alias="noteId")
    tag: str

class AttachmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    note_id: int = Field(..., alias="noteId")
    attachment: str

class NoteOut(BaseModel):
    """A note as returned by every note endpoint; flag and timestamp names are camelCase on the wire."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    content: str
    tags: List[str]
    attachments: List[str]
    favorite: bool
    pinned: bool
    in_trash: bool = Field(..., serialization_alias="inTrash")
    created_at: datetime = Field(..., serialization_alias="createdAt")
    modified_at: datetime = Field(..., serialization_alias="modifiedAt")

    @field_serializer("created_at", "modified_at")
    def _utc(self, value: datetime) -> datetime:
        return as_utc(value)
