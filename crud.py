# backend/crud.py

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models
import schemas
import validation
from errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)

DEFAULT_CONVERSATION_TITLE = "Chat Conversation"
RECENT_WINDOW = timedelta(days=7)

# Marks an update_user argument that was not supplied
UNSET = object()


# Store ids are positive integers that fit a signed 64-bit column
def _to_id(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not (value.isascii() and value.isdigit()):
            return None
        value = int(value)
    if isinstance(value, int) and 0 < value <= validation.MAX_ID:
        return value
    return None


def _fetch_by_ids(db: Session, model, ids):
    wanted = {i for i in ids if _to_id(i) is not None and not isinstance(i, str)}
    if not wanted:
        return {}
    rows = db.query(model).filter(model.id.in_(wanted)).all()
    return {row.id: row for row in rows}


def _out(schema, row):
    return schema.model_validate(row) if row is not None else None


# ─── Users ─────────────────────────────────────────────────────────────────────

def list_users(db: Session):
    return (
        db.query(models.User)
          .order_by(models.User.created_at.desc(), models.User.id.desc())
          .all()
    )


def get_user(db: Session, user_id):
    pk = _to_id(user_id)
    if pk is None:
        return None
    return db.get(models.User, pk)


def get_user_by_phone(db: Session, phone: str):
    return db.query(models.User).filter(models.User.phone == phone).first()


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email).first()


def register_user(db: Session, name: str, phone: str, email=None, avatar_url=None):
    # 1) phone format, 2) phone free, 3) email format, 4) email free, 5) name
    if not validation.is_valid_phone(phone):
        raise ServiceError(ErrorKind.INVALID_PHONE_FORMAT, validation.PHONE_FORMAT_MESSAGE)

    if get_user_by_phone(db, phone):
        raise ServiceError(ErrorKind.PHONE_EXISTS, "Phone number already registered")

    if email and not validation.is_valid_email(email):
        raise ServiceError(ErrorKind.INVALID_EMAIL_FORMAT, "Invalid email format")

    if email and get_user_by_email(db, email):
        raise ServiceError(ErrorKind.EMAIL_EXISTS, "Email already registered")

    if not validation.is_valid_name(name):
        raise ServiceError(ErrorKind.INVALID_NAME, "Name cannot be empty")

    user = models.User(
        name=name.strip(),
        phone=phone,
        email=email or None,
        avatar_url=avatar_url or None,
        created_at=datetime.utcnow(),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration
        db.rollback()
        if get_user_by_phone(db, phone):
            raise ServiceError(ErrorKind.PHONE_EXISTS, "Phone number already registered")
        if email and get_user_by_email(db, email):
            raise ServiceError(ErrorKind.EMAIL_EXISTS, "Email already registered")
        raise
    db.refresh(user)

    logger.info("Registered user %s", user.id)
    return user


def update_user(db: Session, user_id, name=UNSET, email=UNSET, avatar_url=UNSET):
    # Empty or None email/avatar_url clears the stored value
    user = get_user(db, user_id)
    if not user:
        raise ServiceError(ErrorKind.USER_NOT_FOUND, "User not found")

    updates = {}

    if name is not UNSET:
        if not validation.is_valid_name(name):
            raise ServiceError(ErrorKind.INVALID_NAME, "Name cannot be empty")
        updates["name"] = name.strip()

    if email is not UNSET:
        if email and not validation.is_valid_email(email):
            raise ServiceError(ErrorKind.INVALID_EMAIL_FORMAT, "Invalid email format")
        if email:
            owner = get_user_by_email(db, email)
            if owner and owner.id != user.id:
                raise ServiceError(
                    ErrorKind.EMAIL_EXISTS, "Email already registered by another user"
                )
        updates["email"] = email or None

    if avatar_url is not UNSET:
        updates["avatar_url"] = avatar_url or None

    for field, value in updates.items():
        setattr(user, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ServiceError(ErrorKind.EMAIL_EXISTS, "Email already registered by another user")
    db.refresh(user)

    logger.info("Updated user %s (%s)", user.id, ", ".join(sorted(updates)) or "no changes")
    return user


def delete_user(db: Session, user_id):
    # Conversations (with their messages and files), then files still indexed
    # by the user, then the user row, all in one transaction
    user = get_user(db, user_id)
    if not user:
        raise ServiceError(ErrorKind.USER_NOT_FOUND, "User not found")

    counts = schemas.DeletedCounts()
    deleted_user = schemas.DeletedUser.model_validate(user)

    try:
        conversations = (
            db.query(models.Conversation)
              .filter(models.Conversation.user_id == user.id)
              .all()
        )
        for conversation in conversations:
            counts.messages += (
                db.query(models.Message)
                  .filter(models.Message.conversation_id == conversation.id)
                  .delete()
            )
            counts.files += (
                db.query(models.File)
                  .filter(models.File.conversation_id == conversation.id)
                  .delete()
            )
            counts.conversations += (
                db.query(models.Conversation)
                  .filter(models.Conversation.id == conversation.id)
                  .delete()
            )

        # Files owned by the user but attached to some other conversation
        counts.files += (
            db.query(models.File)
              .filter(models.File.user_id == user.id)
              .delete()
        )

        db.query(models.User).filter(models.User.id == user.id).delete()
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Cascade delete of user %s rolled back", deleted_user.id)
        raise

    logger.info(
        "Deleted user %s: %d conversations, %d messages, %d files",
        deleted_user.id, counts.conversations, counts.messages, counts.files,
    )
    return schemas.DeleteUserResult(
        success=True, deleted_user=deleted_user, deleted_counts=counts
    )


# ─── Messages ──────────────────────────────────────────────────────────────────

def append_message(db: Session, phone: str, role: str, content: str, file_ids=None):
    # Reuses the user's lowest-id conversation, so this path keeps a single
    # conversation per user
    if not validation.is_valid_phone(phone):
        raise ServiceError(ErrorKind.INVALID_PHONE_FORMAT, validation.PHONE_FORMAT_MESSAGE)
    if not validation.is_valid_role(role):
        raise ServiceError(
            ErrorKind.INVALID_MESSAGE_ROLE, "Invalid message role. Expected 'user' or 'assistant'"
        )
    if not validation.is_valid_content(content):
        raise ServiceError(ErrorKind.INVALID_MESSAGE_CONTENT, "Message content cannot be empty")

    user = get_user_by_phone(db, phone)
    if not user:
        raise ServiceError(ErrorKind.USER_NOT_FOUND, "User not found")

    now = datetime.utcnow()
    conversation = (
        db.query(models.Conversation)
          .filter(models.Conversation.user_id == user.id)
          .order_by(models.Conversation.id.asc())
          .first()
    )
    if conversation is None:
        conversation = models.Conversation(
            user_id=user.id,
            title=DEFAULT_CONVERSATION_TITLE,
            created_at=now,
            last_message_at=now,
        )
        db.add(conversation)
        db.flush()
        logger.info("Opened conversation %s for user %s", conversation.id, user.id)
    else:
        conversation.last_message_at = now

    message = models.Message(
        conversation_id=conversation.id,
        user_id=user.id,
        role=role,
        content=content,
        file_ids=list(file_ids) if file_ids else None,
        created_at=now,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    db.refresh(conversation)

    logger.info("Stored %s message %s in conversation %s", role, message.id, conversation.id)
    return schemas.AppendedMessage(
        message=schemas.MessageOut.model_validate(message),
        conversation=schemas.ConversationOut.model_validate(conversation),
        user=schemas.UserSummary.model_validate(user),
    )


def _join_messages(db: Session, messages, with_conversation=False):
    users = _fetch_by_ids(db, models.User, [m.user_id for m in messages])
    files = _fetch_by_ids(db, models.File, [fid for m in messages for fid in (m.file_ids or [])])
    conversations = {}
    if with_conversation:
        conversations = _fetch_by_ids(
            db, models.Conversation, [m.conversation_id for m in messages]
        )

    schema = schemas.MessageWithDetails if with_conversation else schemas.MessageWithUser
    result = []
    for m in messages:
        related = {
            "user": _out(schemas.UserOut, users.get(m.user_id)),
            # keep the message's order; ids of deleted files are dropped
            "files": [
                schemas.FileOut.model_validate(files[fid])
                for fid in (m.file_ids or [])
                if fid in files
            ],
        }
        if with_conversation:
            related["conversation"] = _out(
                schemas.ConversationOut, conversations.get(m.conversation_id)
            )
        result.append(schema.model_validate(m).model_copy(update=related))
    return result


def list_messages_by_conversation(db: Session, conversation_id):
    pk = _to_id(conversation_id)
    if pk is None:
        return []
    messages = (
        db.query(models.Message)
          .filter(models.Message.conversation_id == pk)
          .order_by(models.Message.created_at.asc(), models.Message.id.asc())
          .all()
    )
    return _join_messages(db, messages)


def list_messages(db: Session):
    messages = (
        db.query(models.Message)
          .order_by(models.Message.created_at.desc(), models.Message.id.desc())
          .all()
    )
    return _join_messages(db, messages, with_conversation=True)


def list_messages_by_user_phone(db: Session, phone: str):
    user = get_user_by_phone(db, phone)
    if not user:
        return []
    conversation_ids = [
        c.id
        for c in db.query(models.Conversation.id)
                   .filter(models.Conversation.user_id == user.id)
                   .all()
    ]
    if not conversation_ids:
        return []
    return (
        db.query(models.Message)
          .filter(models.Message.conversation_id.in_(conversation_ids))
          .order_by(models.Message.created_at.asc(), models.Message.id.asc())
          .all()
    )


# ─── Conversations ─────────────────────────────────────────────────────────────

def list_conversations(db: Session):
    conversations = (
        db.query(models.Conversation)
          .order_by(models.Conversation.created_at.desc(), models.Conversation.id.desc())
          .all()
    )
    users = _fetch_by_ids(db, models.User, [c.user_id for c in conversations])
    return [
        schemas.ConversationWithUser.model_validate(c).model_copy(
            update={"user": _out(schemas.UserOut, users.get(c.user_id))}
        )
        for c in conversations
    ]


def list_conversations_by_user(db: Session, user_id):
    pk = _to_id(user_id)
    if pk is None:
        return []
    return (
        db.query(models.Conversation)
          .filter(models.Conversation.user_id == pk)
          .order_by(models.Conversation.created_at.desc(), models.Conversation.id.desc())
          .all()
    )


def get_conversation(db: Session, conversation_id):
    pk = _to_id(conversation_id)
    if pk is None:
        return None
    conversation = db.get(models.Conversation, pk)
    if conversation is None:
        return None
    user = db.get(models.User, conversation.user_id)
    return schemas.ConversationWithUser.model_validate(conversation).model_copy(
        update={"user": _out(schemas.UserOut, user)}
    )


# ─── Files ─────────────────────────────────────────────────────────────────────

def list_files(db: Session):
    files = (
        db.query(models.File)
          .order_by(models.File.uploaded_at.desc(), models.File.id.desc())
          .all()
    )
    users = _fetch_by_ids(db, models.User, [f.user_id for f in files])
    conversations = _fetch_by_ids(db, models.Conversation, [f.conversation_id for f in files])
    return [
        schemas.FileWithDetails.model_validate(f).model_copy(
            update={
                "user": _out(schemas.UserOut, users.get(f.user_id)),
                "conversation": _out(
                    schemas.ConversationOut, conversations.get(f.conversation_id)
                ),
            }
        )
        for f in files
    ]


def list_files_by_user(db: Session, user_id):
    pk = _to_id(user_id)
    if pk is None:
        return []
    files = (
        db.query(models.File)
          .filter(models.File.user_id == pk)
          .order_by(models.File.uploaded_at.desc(), models.File.id.desc())
          .all()
    )
    conversations = _fetch_by_ids(db, models.Conversation, [f.conversation_id for f in files])
    return [
        schemas.FileWithConversation.model_validate(f).model_copy(
            update={
                "conversation": _out(
                    schemas.ConversationOut, conversations.get(f.conversation_id)
                )
            }
        )
        for f in files
    ]


# ─── Dashboard ─────────────────────────────────────────────────────────────────

def get_dashboard_stats(db: Session, now=None):
    week_ago = (now or datetime.utcnow()) - RECENT_WINDOW
    return schemas.DashboardStats(
        total_users=db.query(models.User).count(),
        total_conversations=db.query(models.Conversation).count(),
        total_messages=db.query(models.Message).count(),
        total_files=db.query(models.File).count(),
        recent_users=db.query(models.User)
                       .filter(models.User.created_at > week_ago).count(),
        recent_conversations=db.query(models.Conversation)
                               .filter(models.Conversation.created_at > week_ago).count(),
        recent_messages=db.query(models.Message)
                          .filter(models.Message.created_at > week_ago).count(),
        recent_files=db.query(models.File)
                       .filter(models.File.uploaded_at > week_ago).count(),
    )
