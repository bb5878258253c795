"""
sprint_goal_service.py — Goal/promise reconciliation
Brings a sprint's persisted goals and promises in line with an edited set in
one transaction: an in-memory three-way diff (create / update / delete) is
computed first, then applied with batched statements. A promise whose
schedule changed loses today's completion entry only; its history stays.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from errors import CommitmentError, ConsistencyError, NotFoundError, ValidationError
from models.promise import Promise
from models.promise_log import PromiseLog
from models.sprint import Sprint
from models.sprint_goal import SprintGoal
from schemas import GoalInput, GoalOut, PromiseInput
from services import schedule
from services.cache_service import (
    topic_cache,
    promise_logs_topic,
    sprint_goals_topic,
    sprint_logs_topic,
    user_promise_logs_topic,
)
from services.promise_log_service import PromiseLogService

logger = logging.getLogger(__name__)

MAX_GOALS_PER_SPRINT = 3
MAX_PROMISES_PER_GOAL = 4


@dataclass
class PromisePlan:
    creates: list = field(default_factory=list)  # (sort_order, PromiseInput)
    updates: list = field(default_factory=list)  # (sort_order, Promise, PromiseInput, changed)
    deletes: list = field(default_factory=list)  # promise ids


@dataclass
class GoalPlan:
    # (sort_order, persisted SprintGoal or None, GoalInput), in desired order
    entries: list = field(default_factory=list)
    deletes: list = field(default_factory=list)  # goal ids

    @property
    def creates(self):
        return [e for e in self.entries if e[1] is None]

    @property
    def updates(self):
        return [e for e in self.entries if e[1] is not None]


# ----------------------------------------------------------------------
# Pure planning
# ----------------------------------------------------------------------

def _stored_fields(p: PromiseInput) -> dict:
    """The column values a desired promise will be written with."""
    is_daily = p.type == schedule.PromiseType.DAILY
    return {
        "text": p.text.strip(),
        "type": schedule.PromiseType(p.type).value,
        "schedule_days": schedule.encode_schedule_days(p.schedule_days) if is_daily else None,
        "weekly_target": p.weekly_target if not is_daily else None,
    }


def schedule_changed(current: Promise, desired: PromiseInput) -> bool:
    """Field-by-field comparison of text, type, schedule days and weekly target."""
    wanted = _stored_fields(desired)
    wanted_days = schedule.normalize_schedule_days(desired.schedule_days) if wanted["schedule_days"] else None
    return (
        current.text != wanted["text"]
        or current.type != wanted["type"]
        or schedule.normalize_schedule_days(current.schedule_day_list) != wanted_days
        or current.weekly_target != wanted["weekly_target"]
    )


def validate_goal_set(desired_goals: list[GoalInput]):
    """Shape and type-specific checks for the whole payload, before any write."""
    if not 1 <= len(desired_goals) <= MAX_GOALS_PER_SPRINT:
        raise ValidationError(
            f"A sprint needs between 1 and {MAX_GOALS_PER_SPRINT} goals", field="goals"
        )

    goal_ids = [g.id for g in desired_goals if g.id is not None]
    if len(goal_ids) != len(set(goal_ids)):
        raise ValidationError("The same goal appears more than once", field="goals")

    promise_ids = [p.id for g in desired_goals for p in g.promises if p.id is not None]
    if len(promise_ids) != len(set(promise_ids)):
        raise ValidationError("The same promise appears more than once", field="promises")

    for gi, g in enumerate(desired_goals):
        text = (g.goal_text or "").strip()
        if not text:
            raise ValidationError(f"Goal text must not be empty at goals[{gi}]", field=f"goals[{gi}].goal_text")
        if not 1 <= len(g.promises) <= MAX_PROMISES_PER_GOAL:
            raise ValidationError(
                f"Goal \"{text}\" needs between 1 and {MAX_PROMISES_PER_GOAL} promises",
                field=text,
            )
        for pi, p in enumerate(g.promises):
            schedule.validate_promise_fields(
                p.text, p.type, p.schedule_days, p.weekly_target, location=f"goals[{gi}].promises[{pi}]"
            )


def plan_goal_changes(persisted: list[SprintGoal], desired: list[GoalInput]) -> GoalPlan:
    by_id = {g.id: g for g in persisted}
    plan = GoalPlan()
    for sort_order, g in enumerate(desired):
        if g.id is None:
            plan.entries.append((sort_order, None, g))
            continue
        current = by_id.get(g.id)
        if current is None:
            raise NotFoundError("Goal", g.id)
        plan.entries.append((sort_order, current, g))
    kept = {g.id for g in desired if g.id is not None}
    plan.deletes = [g.id for g in persisted if g.id not in kept]
    return plan


def plan_promise_changes(persisted: list[Promise], desired: list[PromiseInput]) -> PromisePlan:
    by_id = {p.id: p for p in persisted}
    plan = PromisePlan()
    for sort_order, p in enumerate(desired):
        if p.id is None:
            plan.creates.append((sort_order, p))
            continue
        current = by_id.get(p.id)
        if current is None:
            raise NotFoundError("Promise", p.id)
        plan.updates.append((sort_order, current, p, schedule_changed(current, p)))
    kept = {p.id for p in desired if p.id is not None}
    plan.deletes = [p.id for p in persisted if p.id not in kept]
    return plan


def to_promise_defs(goals: list[GoalOut], active_from: Optional[date] = None, active_to: Optional[date] = None) -> list[schedule.PromiseDef]:
    return [
        schedule.PromiseDef(
            id=p.id,
            goal_id=g.id,
            goal_text=g.goal_text,
            text=p.text,
            type=p.type,
            schedule_days=tuple(p.schedule_days) if p.schedule_days else None,
            weekly_target=p.weekly_target,
            active_from=active_from,
            active_to=active_to,
        )
        for g in goals
        for p in g.promises
    ]


# ----------------------------------------------------------------------
# Service
# ----------------------------------------------------------------------

class SprintGoalService:
    def __init__(self, db: Session, cache=None):
        self.db = db
        self.cache = cache if cache is not None else topic_cache
        self.ledger = PromiseLogService(db, self.cache)

    def get_goals(self, sprint_id: int, user_id: int) -> list[GoalOut]:
        owned = self.db.query(Sprint.id).filter_by(id=sprint_id, user_id=user_id).first()
        if owned is None:
            raise NotFoundError("Sprint", sprint_id)

        def load():
            goals = (
                self.db.query(SprintGoal)
                .options(selectinload(SprintGoal.promises))
                .filter_by(sprint_id=sprint_id)
                .order_by(SprintGoal.sort_order.asc())
                .all()
            )
            return [GoalOut.model_validate(g) for g in goals]

        return self.cache.get(sprint_goals_topic(sprint_id), load)

    # ------------------------------------------------------------------
    def reconcile(self, sprint_id: int, user_id: int, desired_goals: list, commit: bool = True):
        """
        Make the sprint's goals/promises match `desired_goals`, all or nothing.

        Raises NotFoundError when the sprint is missing or owned by someone
        else, ValidationError for a bad payload, ConsistencyError when the
        database rejects a statement. With commit=False the caller owns the
        transaction (used when a sprint is created and reconciled together).
        """
        desired = [g if isinstance(g, GoalInput) else GoalInput.model_validate(g) for g in desired_goals]
        touched = set()
        try:
            sprint = (
                self.db.query(Sprint)
                .filter_by(id=sprint_id, user_id=user_id)
                .with_for_update()
                .first()
            )
            if sprint is None:
                raise NotFoundError("Sprint", sprint_id)

            validate_goal_set(desired)

            persisted = (
                self.db.query(SprintGoal)
                .options(selectinload(SprintGoal.promises))
                .filter_by(sprint_id=sprint_id)
                .order_by(SprintGoal.sort_order.asc())
                .all()
            )
            touched = {p.id for g in persisted for p in g.promises}

            goal_plan = plan_goal_changes(persisted, desired)
            promise_plans = [
                plan_promise_changes(current.promises if current is not None else [], g.promises)
                for _, current, g in goal_plan.entries
            ]

            self._delete_goals(goal_plan.deletes)
            for (sort_order, current, g), promise_plan in zip(goal_plan.entries, promise_plans):
                goal = self._apply_goal(sprint_id, sort_order, current, g)
                self._apply_promises(sprint_id, user_id, goal.id, promise_plan)

            sprint.updated_at = datetime.now(timezone.utc)
            if commit:
                self.db.commit()
            else:
                self.db.flush()
        except CommitmentError as e:
            self.db.rollback()
            logger.warning(f"Reconcile of sprint {sprint_id} rejected: {e.detail}")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Reconcile of sprint {sprint_id} rolled back: {e}", exc_info=True)
            raise ConsistencyError("Sprint goals could not be saved; nothing was changed") from e

        self.cache.invalidate(
            sprint_goals_topic(sprint_id),
            sprint_logs_topic(sprint_id),
            user_promise_logs_topic(user_id),
            *(promise_logs_topic(pid) for pid in sorted(touched)),
        )
        logger.info(
            f"Reconciled sprint {sprint_id}: {len(goal_plan.creates)} goals created, "
            f"{len(goal_plan.updates)} kept, {len(goal_plan.deletes)} deleted"
        )

    # ------------------------------------------------------------------
    def _delete_goals(self, goal_ids: list[int]):
        if not goal_ids:
            return
        promise_ids = select(Promise.id).where(Promise.sprint_goal_id.in_(goal_ids))
        self.db.query(PromiseLog).filter(PromiseLog.promise_id.in_(promise_ids)).delete(synchronize_session="fetch")
        self.db.query(Promise).filter(Promise.sprint_goal_id.in_(goal_ids)).delete(synchronize_session="fetch")
        self.db.query(SprintGoal).filter(SprintGoal.id.in_(goal_ids)).delete(synchronize_session="fetch")

    def _apply_goal(self, sprint_id: int, sort_order: int, current: Optional[SprintGoal], g: GoalInput) -> SprintGoal:
        text = g.goal_text.strip()
        if current is None:
            goal = SprintGoal(sprint_id=sprint_id, goal_id=g.goal_id, goal_text=text, sort_order=sort_order)
            self.db.add(goal)
            self.db.flush()
            return goal

        for k, v in (("goal_id", g.goal_id), ("goal_text", text), ("sort_order", sort_order)):
            if getattr(current, k) != v:
                setattr(current, k, v)
        return current

    def _apply_promises(self, sprint_id: int, user_id: int, goal_id: int, plan: PromisePlan):
        if plan.deletes:
            self.db.query(PromiseLog).filter(PromiseLog.promise_id.in_(plan.deletes)).delete(synchronize_session="fetch")
            self.db.query(Promise).filter(Promise.id.in_(plan.deletes)).delete(synchronize_session="fetch")

        now = datetime.now(timezone.utc)
        for sort_order, current, desired, changed in plan.updates:
            if changed:
                # Must run before the new schedule is written
                self.ledger.delete_today_log(current.id, user_id)
                for k, v in _stored_fields(desired).items():
                    setattr(current, k, v)
                current.updated_at = now
            if current.sort_order != sort_order:
                current.sort_order = sort_order

        if plan.creates:
            self.db.execute(
                insert(Promise),
                [
                    {
                        "sprint_id": sprint_id,
                        "sprint_goal_id": goal_id,
                        "sort_order": sort_order,
                        **_stored_fields(desired),
                    }
                    for sort_order, desired in plan.creates
                ],
            )
