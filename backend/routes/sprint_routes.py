from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth import get_current_user
from database import get_db
from schemas import ReconcileRequest, SprintCreate, SprintDatesUpdate, SprintOut
from services.promise_log_service import PromiseLogService
from services.sprint_goal_service import SprintGoalService
from services.sprint_service import SprintService

router = APIRouter(prefix="/api/v1/sprints", tags=["Sprints"])


@router.post("", status_code=201)
def create_sprint(body: SprintCreate, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    sprint = SprintService(db).create(user_id, body)
    goals = SprintGoalService(db).get_goals(sprint.id, user_id)
    return {"sprint": SprintOut.model_validate(sprint), "goals": goals}


@router.get("/active")
def active_sprint(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    sprint = SprintService(db).get_active(user_id)
    if sprint is None:
        return {"sprint": None, "goals": []}
    goals = SprintGoalService(db).get_goals(sprint.id, user_id)
    return {"sprint": SprintOut.model_validate(sprint), "goals": goals}


@router.get("/{sprint_id}/goals")
def list_goals(sprint_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return SprintGoalService(db).get_goals(sprint_id, user_id)


@router.put("/{sprint_id}/goals")
def reconcile_goals(
    sprint_id: int,
    body: ReconcileRequest,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Replace the sprint's goals/promises with the edited set, all or nothing."""
    service = SprintGoalService(db)
    service.reconcile(sprint_id, user_id, body.goals)
    return service.get_goals(sprint_id, user_id)


@router.patch("/{sprint_id}/dates")
def update_dates(
    sprint_id: int,
    body: SprintDatesUpdate,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    sprint = SprintService(db).update_dates(sprint_id, user_id, body.start_date, body.end_date)
    return SprintOut.model_validate(sprint)


@router.get("/{sprint_id}/logs")
def sprint_logs(sprint_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return PromiseLogService(db).get_logs_for_sprint(sprint_id, user_id=user_id)
