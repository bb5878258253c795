from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db
from services import schedule
from services.review_service import ReviewService

router = APIRouter(prefix="/api/v1/reviews", tags=["Reviews"])


@router.get("/weekly")
def weekly_review(
    week_of: Optional[date] = None,
    sprint_id: Optional[int] = None,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ReviewService(db).weekly_review(user_id, week_of=week_of, sprint_id=sprint_id)


@router.get("/monthly")
def monthly_review(
    year: Optional[int] = Query(default=None, ge=1970, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    today = schedule.today()
    return ReviewService(db).monthly_review(user_id, year or today.year, month or today.month)


@router.get("/sprints/{sprint_id}")
def sprint_review(sprint_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return ReviewService(db).sprint_review(user_id, sprint_id)
