"""Dashboard statistics for StudyDesk."""

import math

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database.models import FlashcardSet, Note, StudyPlan


def get_dashboard_stats(db: Session) -> dict:
    """Aggregate counts across notes, plans and flashcard sets.

    A plan contributes one task per week entry; its completed tasks are
    the share of those entries covered by its progress percentage.
    """
    total_notes = db.query(func.count(Note.id)).scalar() or 0
    total_flashcards = db.query(func.sum(FlashcardSet.total_count)).scalar() or 0

    plans = db.query(StudyPlan.plan, StudyPlan.progress).all()
    total_tasks = 0
    completed_tasks = 0
    for plan, progress in plans:
        weeks = len(plan or [])
        total_tasks += weeks
        completed_tasks += math.floor((progress or 0) / 100 * weeks)

    return {
        "totalNotes": total_notes,
        "totalStudyPlans": len(plans),
        "totalFlashcards": int(total_flashcards),
        "totalTasks": total_tasks,
        "completedTasks": completed_tasks,
    }
