"""Data models for chat sessions and messages.

These models define the structure of messages and sessions independent of
the storage backend used. All timestamps are timezone-aware UTC.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ..config import DEFAULT_SESSION_TITLE
from ..parsing.models import CodeBlock


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MessageRole(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


class DeliveryState(str, Enum):
    """Whether a message is durably saved."""

    PENDING = "pending"  # Optimistic entry, write in flight
    SAVED = "saved"      # Confirmed by the persistence store
    FAILED = "failed"    # Write failed, visible locally only


class ImageRef(BaseModel):
    """Reference to an uploaded image attached to a message."""

    model_config = ConfigDict(frozen=True)

    url: str
    name: str


class Message(BaseModel):
    """A single chat message.

    `id` is assigned by the persistence store. Optimistic messages carry a
    temporary client id until the store confirms them.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Persisted id, or a temporary client id")
    session_id: str
    role: MessageRole
    content: str = Field(default="", description="Raw message text")
    created_at: datetime = Field(default_factory=utcnow)
    code_blocks: list[CodeBlock] | None = None
    explanation: str | None = None
    image_ref: ImageRef | None = None
    delivery: DeliveryState = DeliveryState.SAVED

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        """Store timestamps as aware UTC."""
        return _as_utc(v)

    @field_serializer("created_at")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to ISO format."""
        return value.isoformat()

    @property
    def is_saved(self) -> bool:
        return self.delivery == DeliveryState.SAVED

    def to_context(self) -> dict[str, str]:
        """Role/content pair used as model context."""
        return {"role": self.role.value, "content": self.content}


class ChatSession(BaseModel):
    """A chat session owned by one user."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    title: str = DEFAULT_SESSION_TITLE
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        """Store timestamps as aware UTC."""
        return _as_utc(v)

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to ISO format."""
        return value.isoformat()
