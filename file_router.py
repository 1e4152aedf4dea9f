# backend/file_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import crud
from db import get_db
from responses import success_response

router = APIRouter(
    prefix="/files",
    tags=["files"]
)


# GET /files → file metadata with owner and conversation, newest first
@router.get("")
def list_files(db: Session = Depends(get_db)):
    return success_response(crud.list_files(db))
