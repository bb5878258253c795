from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db
from schemas import PromiseLogCreate
from services import schedule
from services.promise_log_service import PromiseLogService

router = APIRouter(prefix="/api/v1/promises", tags=["Promises"])


@router.put("/{promise_id}/logs/{day}")
def log_completion(
    promise_id: int,
    day: date,
    body: PromiseLogCreate,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return PromiseLogService(db).log_completion(
        promise_id, day, body.completed, user_id, daily_log_id=body.daily_log_id
    )


@router.get("/{promise_id}/logs")
def week_logs(
    promise_id: int,
    week_of: Optional[date] = None,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    week_start, _ = schedule.week_bounds(week_of or schedule.today())
    return PromiseLogService(db).get_logs_for_week(promise_id, week_start, user_id=user_id)
