# backend/conversation_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import crud
from db import get_db
from errors import ErrorKind, ServiceError
from responses import success_response

router = APIRouter(
    prefix="/conversations",
    tags=["conversations"]
)


# GET /conversations → every conversation with its owner, newest first
@router.get("")
def list_conversations(db: Session = Depends(get_db)):
    return success_response(crud.list_conversations(db))


# GET /conversations/{conv_id} → one conversation with its owner
@router.get("/{conv_id}")
def get_conversation(conv_id: str, db: Session = Depends(get_db)):
    conversation = crud.get_conversation(db, conv_id)
    if not conversation:
        raise ServiceError(ErrorKind.CONVERSATION_NOT_FOUND, "Conversation not found")
    return success_response(conversation)


# GET /conversations/{conv_id}/messages → history, oldest first
@router.get("/{conv_id}/messages")
def get_conversation_messages(conv_id: str, db: Session = Depends(get_db)):
    if not crud.get_conversation(db, conv_id):
        raise ServiceError(ErrorKind.CONVERSATION_NOT_FOUND, "Conversation not found")
    return success_response(crud.list_messages_by_conversation(db, conv_id))
