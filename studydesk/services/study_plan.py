"""Study plan service for StudyDesk.

Derives the schedule numbers from the deadline, asks the model for a
weekly breakdown, and stores the result.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field, ValidationError as ShapeError
from sqlalchemy.orm import Session

from ..database.models import StudyPlan
from ..errors import GenerationError, NotFoundError, ValidationError
from . import generation

logger = logging.getLogger(__name__)


STUDY_PLAN_PROMPT = """Generate a comprehensive {days_until} day study plan for the course "{course_name}". The plan should be broken down into approximately {week_count} weekly phases. The total available study time is {total_hours} hours, with an average of {hours_per_day} hours per day.

The output MUST be a JSON array of objects.
Each object in the array MUST have the following structure:
{{
  "week": [number, e.g., 1],
  "topic": [string, e.g., "Introduction and Fundamentals"],
  "hours": [number, The estimated hours for this week, ensuring the total hours across all weeks equals {total_hours}],
  "tasks": [array of strings, e.g., ["Read chapters 1-3", "Complete practice exercises"]]
}}"""


class WeekEntry(BaseModel):
    """One weekly phase of a generated plan."""

    week: int = Field(ge=1)
    topic: str
    hours: Union[int, float]
    tasks: list[str]


def parse_deadline(deadline: str) -> datetime:
    """Parse an ISO date or datetime string.

    A bare date means midnight UTC. Aware datetimes are converted to naive
    UTC so they compare with datetime.utcnow().
    """
    try:
        parsed = datetime.fromisoformat(deadline.strip().replace("Z", "+00:00"))
    except (AttributeError, ValueError) as e:
        raise ValidationError(f"Invalid deadline: {deadline!r}") from e

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def compute_schedule(
    deadline: datetime,
    hours_per_day: int,
    now: Optional[datetime] = None,
) -> tuple[int, int, int]:
    """Return (days_until, total_hours, week_count) for a deadline.

    days_until is the number of started days left, rounded up.
    """
    now = now or datetime.utcnow()
    days_until = math.ceil((deadline - now) / timedelta(days=1))
    if days_until <= 0:
        raise ValidationError("Deadline must be in the future")

    total_hours = days_until * hours_per_day
    week_count = math.ceil(days_until / 7)
    return days_until, total_hours, week_count


def validate_week_entries(items: list[dict]) -> list[dict]:
    """Check generated entries against the WeekEntry shape."""
    try:
        return [WeekEntry(**item).model_dump() for item in items]
    except (ShapeError, TypeError) as e:
        raise GenerationError(f"Generated plan has an unexpected shape: {e}") from e


async def generate_study_plan(
    db: Session,
    course_name: Optional[str],
    deadline: Optional[str],
    hours_per_day: Optional[int],
) -> StudyPlan:
    """Generate and persist a study plan."""
    if not course_name or not course_name.strip() or not deadline or not hours_per_day:
        raise ValidationError("Missing required fields")
    if hours_per_day <= 0:
        raise ValidationError("hoursPerDay must be a positive integer")

    deadline_at = parse_deadline(deadline)
    days_until, total_hours, week_count = compute_schedule(deadline_at, hours_per_day)

    prompt = STUDY_PLAN_PROMPT.format(
        course_name=course_name,
        days_until=days_until,
        week_count=week_count,
        total_hours=total_hours,
        hours_per_day=hours_per_day,
    )
    text = await generation.generate(prompt, expect_structured=True)
    weeks = validate_week_entries(generation.parse_structured(text))

    planned_hours = sum(w["hours"] for w in weeks)
    if len(weeks) != week_count or planned_hours != total_hours:
        logger.warning(
            f"Plan for '{course_name}' differs from request: "
            f"{len(weeks)}/{week_count} weeks, {planned_hours}/{total_hours} hours"
        )

    plan = StudyPlan(
        course_name=course_name,
        deadline=deadline_at,
        hours_per_day=hours_per_day,
        days_until=days_until,
        total_hours=total_hours,
        plan=weeks,
        requested_weeks=week_count,
        planned_hours=planned_hours,
        progress=0,
        completed=False,
    )

    db.add(plan)
    db.commit()
    db.refresh(plan)

    logger.info(f"Created study plan {plan.id} for '{course_name}' ({len(weeks)} weeks)")
    return plan


def list_study_plans(db: Session) -> list[StudyPlan]:
    """All study plans, newest first."""
    return db.query(StudyPlan).order_by(
        StudyPlan.created_at.desc(), StudyPlan.id.desc()
    ).all()


def get_study_plan(db: Session, plan_id: int) -> Optional[StudyPlan]:
    return db.query(StudyPlan).filter(StudyPlan.id == plan_id).first()


def update_progress(
    db: Session,
    plan_id: int,
    progress: int,
    completed: bool,
) -> StudyPlan:
    """Write progress and completed verbatim.

    completed is not derived from progress; the caller decides both.
    """
    plan = get_study_plan(db, plan_id)
    if not plan:
        raise NotFoundError("Study plan not found")

    plan.progress = progress
    plan.completed = completed
    db.commit()
    db.refresh(plan)

    return plan


def delete_study_plan(db: Session, plan_id: int) -> None:
    """Delete a plan. Deleting a missing plan is not an error."""
    db.query(StudyPlan).filter(StudyPlan.id == plan_id).delete()
    db.commit()


def serialize_study_plan(plan: StudyPlan) -> dict:
    """Wire shape of a study plan."""
    return {
        "id": plan.id,
        "courseName": plan.course_name,
        "deadline": plan.deadline.date().isoformat(),
        "hoursPerDay": plan.hours_per_day,
        "daysUntil": plan.days_until,
        "totalHours": plan.total_hours,
        "plan": plan.plan or [],
        "requestedWeeks": plan.requested_weeks,
        "plannedHours": plan.planned_hours,
        "progress": plan.progress,
        "completed": bool(plan.completed),
        "createdAt": plan.created_at.isoformat() if plan.created_at else None,
    }
