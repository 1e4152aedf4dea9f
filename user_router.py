# backend/user_router.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import crud
import schemas
import validation
from db import get_db
from errors import ErrorKind, ServiceError
from responses import json_body, success_response, validate_body

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"]
)

# Placeholder passcode policy: every code passes except this one.
# There is no real OTP issuer behind this endpoint yet.
REJECTED_OTP = "4444"


def _phone_kind(err):
    if err["type"] == "missing" or not err.get("input"):
        return ErrorKind.MISSING_PHONE
    return ErrorKind.INVALID_PHONE_FORMAT


REGISTER_FIELD_CODES = {
    "name": ErrorKind.INVALID_NAME,
    "phone": _phone_kind,
    "email": ErrorKind.INVALID_EMAIL_FORMAT,
}

UPDATE_FIELD_CODES = {
    "name": ErrorKind.INVALID_NAME,
    "email": ErrorKind.INVALID_EMAIL_FORMAT,
}


def _require_id(user_id: str) -> str:
    if not user_id or not user_id.strip():
        raise ServiceError(ErrorKind.MISSING_ID, "User ID is required")
    return user_id.strip()


def _require_user(db: Session, user_id: str):
    user = crud.get_user(db, _require_id(user_id))
    if not user:
        raise ServiceError(ErrorKind.USER_NOT_FOUND, "User not found")
    return user


# ─── GET /users ────────────────────────────────────────────────────────────────
@router.get("")
def list_users(db: Session = Depends(get_db)):
    users = crud.list_users(db)
    return success_response([schemas.UserOut.model_validate(u) for u in users])


# ─── POST /users/register ──────────────────────────────────────────────────────
@router.post("/register")
def register_user(body=Depends(json_body), db: Session = Depends(get_db)):
    payload = validate_body(schemas.UserRegister, body, REGISTER_FIELD_CODES)
    user = crud.register_user(
        db,
        name=payload.name,
        phone=payload.phone,
        email=payload.email,
        avatar_url=payload.avatar_url,
    )
    return success_response(schemas.UserOut.model_validate(user))


# ─── GET /users/phone?phone= ───────────────────────────────────────────────────
@router.get("/phone")
def get_user_by_phone(phone: Optional[str] = None, db: Session = Depends(get_db)):
    if not phone:
        raise ServiceError(ErrorKind.MISSING_PHONE, "Phone number is required")
    if not validation.is_valid_phone(phone):
        raise ServiceError(ErrorKind.INVALID_PHONE_FORMAT, validation.PHONE_FORMAT_MESSAGE)

    user = crud.get_user_by_phone(db, phone)
    if not user:
        raise ServiceError(ErrorKind.USER_NOT_FOUND, "User not found")
    return success_response(schemas.UserOut.model_validate(user))


# ─── POST /users/check ─────────────────────────────────────────────────────────
@router.post("/check")
def check_user(body=Depends(json_body), db: Session = Depends(get_db)):
    payload = validate_body(schemas.CheckUserRequest, body)
    user = crud.get_user_by_phone(db, payload.phone)
    logger.info("User check for %s: %s", payload.phone, "found" if user else "not found")
    return success_response(
        schemas.CheckUserOut(
            exists=user is not None,
            name=user.name if user else None,
            user=schemas.UserOut.model_validate(user) if user else None,
        )
    )


# ─── POST /users/otp-verify ────────────────────────────────────────────────────
@router.post("/otp-verify")
def verify_otp(body=Depends(json_body), db: Session = Depends(get_db)):
    payload = validate_body(schemas.OtpVerifyRequest, body)

    is_valid = payload.otp != REJECTED_OTP
    user = crud.get_user_by_phone(db, payload.phone)
    logger.info(
        "OTP verification for %s: %s, user %s",
        payload.phone, "valid" if is_valid else "invalid", user.id if user else "unknown",
    )
    return success_response(
        schemas.OtpVerifyOut(
            phone=payload.phone,
            otp=payload.otp,
            timestamp=payload.timestamp,
            valid=is_valid,
            name=user.name if user else None,
            user_exists=user is not None,
            user=schemas.UserOut.model_validate(user) if user else None,
        )
    )


# ─── GET /users/{user_id} ──────────────────────────────────────────────────────
@router.get("/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db)):
    user = _require_user(db, user_id)
    return success_response(schemas.UserOut.model_validate(user))


# ─── PATCH /users/{user_id} ────────────────────────────────────────────────────
@router.patch("/{user_id}")
def update_user(user_id: str, body=Depends(json_body), db: Session = Depends(get_db)):
    user_id = _require_id(user_id)
    payload = validate_body(schemas.UserUpdate, body, UPDATE_FIELD_CODES)

    # only the fields present in the body are passed on
    changes = {field: getattr(payload, field) for field in payload.model_fields_set}
    user = crud.update_user(db, user_id, **changes)
    return success_response(schemas.UserOut.model_validate(user))


# ─── DELETE /users/{user_id} ───────────────────────────────────────────────────
@router.delete("/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db)):
    result = crud.delete_user(db, _require_id(user_id))
    return success_response(result)


# ─── GET /users/{user_id}/conversations ────────────────────────────────────────
@router.get("/{user_id}/conversations")
def list_user_conversations(user_id: str, db: Session = Depends(get_db)):
    user = _require_user(db, user_id)
    conversations = crud.list_conversations_by_user(db, user.id)
    return success_response([schemas.ConversationOut.model_validate(c) for c in conversations])


# ─── GET /users/{user_id}/files ────────────────────────────────────────────────
@router.get("/{user_id}/files")
def list_user_files(user_id: str, db: Session = Depends(get_db)):
    user = _require_user(db, user_id)
    return success_response(crud.list_files_by_user(db, user.id))
