from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db
from errors import ValidationError
from schemas import DailyLogUpsert
from services.daily_log_service import DailyLogService

router = APIRouter(prefix="/api/v1/daily-logs", tags=["Daily Logs"])


@router.put("/{day}")
def upsert_daily_log(
    day: date,
    body: DailyLogUpsert,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if body.date != day:
        raise ValidationError("Body date does not match the path date", field="date")
    return DailyLogService(db).upsert(user_id, body)


@router.get("")
def list_daily_logs(
    start: date,
    end: date,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if end < start:
        raise ValidationError("end must be on or after start", field="end")
    return DailyLogService(db).get_range(user_id, start, end)
