# backend/message_router.py

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import crud
import schemas
from db import get_db
from errors import ErrorKind
from responses import json_body, success_response, validate_body

router = APIRouter(
    prefix="/messages",
    tags=["messages"]
)

MESSAGE_FIELD_CODES = {
    "user": ErrorKind.INVALID_PHONE_FORMAT,
    "role": ErrorKind.INVALID_MESSAGE_ROLE,
    "content": ErrorKind.INVALID_MESSAGE_CONTENT,
}


# ─── POST /messages ────────────────────────────────────────────────────────────
@router.post("")
def post_message(body=Depends(json_body), db: Session = Depends(get_db)):
    # body: { "metadata": { "user": <phone> }, "message": { role, content } }
    payload = validate_body(schemas.MessagePayload, body, MESSAGE_FIELD_CODES)
    result = crud.append_message(
        db,
        phone=payload.metadata.user,
        role=payload.message.role,
        content=payload.message.content,
        file_ids=payload.message.file_ids,
    )
    return success_response(result)


# ─── GET /messages → every message, newest first ───────────────────────────────
@router.get("")
def list_messages(phone: Optional[str] = None, db: Session = Depends(get_db)):
    if phone:
        # one user's history, oldest first
        messages = crud.list_messages_by_user_phone(db, phone)
        return success_response([schemas.MessageOut.model_validate(m) for m in messages])
    return success_response(crud.list_messages(db))
