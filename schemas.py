# backend/schemas.py

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Annotated, List, Optional

import validation


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


# ---------- User-related schemas ----------

class UserRegister(CamelModel):
    name: str
    phone: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not validation.is_valid_name(v):
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def phone_format(cls, v):
        if not validation.is_valid_phone(v):
            raise ValueError(validation.PHONE_FORMAT_MESSAGE)
        return v

    @field_validator("email")
    @classmethod
    def email_format(cls, v):
        # an empty email means "no email"
        if v and not validation.is_valid_email(v):
            raise ValueError("Invalid email format")
        return v or None

    @field_validator("avatar_url")
    @classmethod
    def avatar_url_format(cls, v):
        if v and not validation.is_valid_url(v):
            raise ValueError("Invalid URL format")
        return v or None


class UserUpdate(CamelModel):
    # Only fields present in the body are applied (see model_fields_set)
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not validation.is_valid_name(v):
            raise ValueError("Name cannot be empty")
        return v.strip()

    @field_validator("email")
    @classmethod
    def email_format(cls, v):
        if v and not validation.is_valid_email(v):
            raise ValueError("Invalid email format")
        return v

    @field_validator("avatar_url")
    @classmethod
    def avatar_url_format(cls, v):
        if v and not validation.is_valid_url(v):
            raise ValueError("Invalid URL format")
        return v


class CheckUserRequest(CamelModel):
    phone: str

    @field_validator("phone")
    @classmethod
    def phone_format(cls, v):
        if not validation.is_valid_check_phone(v):
            raise ValueError(validation.CHECK_PHONE_FORMAT_MESSAGE)
        return v


class OtpVerifyRequest(CamelModel):
    phone: str
    otp: str = Field(min_length=1)
    timestamp: int = Field(gt=0, strict=True)

    @field_validator("phone")
    @classmethod
    def phone_format(cls, v):
        if not validation.is_valid_phone(v):
            raise ValueError(validation.PHONE_FORMAT_MESSAGE)
        return v


class UserOut(CamelModel):
    id: int
    name: str
    phone: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime


class UserSummary(CamelModel):
    id: int
    name: str
    phone: str


class CheckUserOut(CamelModel):
    exists: bool
    name: Optional[str] = None
    user: Optional[UserOut] = None


class OtpVerifyOut(CamelModel):
    phone: str
    otp: str
    timestamp: int
    valid: bool
    name: Optional[str] = None
    user_exists: bool
    user: Optional[UserOut] = None


class DeletedUser(CamelModel):
    id: int
    name: str
    phone: str
    email: Optional[str] = None


class DeletedCounts(CamelModel):
    conversations: int = 0
    messages: int = 0
    files: int = 0


class DeleteUserResult(CamelModel):
    success: bool = True
    deleted_user: DeletedUser
    deleted_counts: DeletedCounts


# ---------- Conversation-related schemas ----------

class ConversationOut(CamelModel):
    id: int
    user_id: int
    title: str
    created_at: datetime
    last_message_at: datetime


class ConversationWithUser(ConversationOut):
    user: Optional[UserOut] = None


# ---------- File schemas ----------

class FileOut(CamelModel):
    id: int
    user_id: int
    conversation_id: int
    file_name: str
    file_type: str
    file_size: int
    storage_id: str
    uploaded_at: datetime


class FileWithConversation(FileOut):
    conversation: Optional[ConversationOut] = None


class FileWithDetails(FileWithConversation):
    user: Optional[UserOut] = None


# ---------- Chat message schemas ----------

class MessageMetadata(CamelModel):
    user: str

    @field_validator("user")
    @classmethod
    def phone_format(cls, v):
        if not validation.is_valid_phone(v):
            raise ValueError(validation.PHONE_FORMAT_MESSAGE)
        return v


class MessageContent(CamelModel):
    role: str
    content: str
    file_ids: Optional[List[Annotated[int, Field(gt=0, le=validation.MAX_ID)]]] = None

    @field_validator("role")
    @classmethod
    def role_allowed(cls, v):
        if not validation.is_valid_role(v):
            raise ValueError("Invalid message role. Expected 'user' or 'assistant'")
        return v

    @field_validator("content")
    @classmethod
    def content_not_empty(cls, v):
        if not validation.is_valid_content(v):
            raise ValueError("Message content cannot be empty")
        return v


class MessagePayload(CamelModel):
    metadata: MessageMetadata
    message: MessageContent


class MessageOut(CamelModel):
    id: int
    conversation_id: int
    user_id: int
    role: str
    content: str
    file_ids: Optional[List[int]] = None
    created_at: datetime


class MessageWithUser(MessageOut):
    user: Optional[UserOut] = None
    files: List[FileOut] = []


class MessageWithDetails(MessageWithUser):
    conversation: Optional[ConversationOut] = None


class AppendedMessage(CamelModel):
    message: MessageOut
    conversation: ConversationOut
    user: UserSummary


# ---------- Dashboard ----------

class DashboardStats(CamelModel):
    total_users: int
    total_conversations: int
    total_messages: int
    total_files: int
    recent_users: int
    recent_conversations: int
    recent_messages: int
    recent_files: int
