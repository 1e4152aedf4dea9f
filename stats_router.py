# backend/stats_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import crud
from db import get_db
from responses import success_response

router = APIRouter(
    prefix="/stats",
    tags=["stats"]
)


# GET /stats → totals plus what was created in the last 7 days
@router.get("")
def dashboard_stats(db: Session = Depends(get_db)):
    return success_response(crud.get_dashboard_stats(db))
