"""Plain-text export of study plans, notes, chat history and flashcards.

The render_* functions are pure: they take the wire-shape dict of a record
and return flat text. export_record() does the one lookup an export needs
and picks the renderer.

The requested format ("txt", "pdf", "docx", ...) only sets the filename
extension; the content is always plain text.
"""

import re
import time
from typing import Optional

from sqlalchemy.orm import Session

from ..errors import NotFoundError, ValidationError
from .chat import DEFAULT_CONVERSATION_ID, get_history, serialize_message
from .flashcards import get_flashcard_set, serialize_flashcard_set
from .notes import get_note, serialize_note
from .study_plan import get_study_plan, serialize_study_plan

RULE = "=" * 50
DEFAULT_FORMAT = "txt"
EXPORT_TYPES = ("study", "notes", "chat", "flashcards")


def render_study_plan(plan: dict) -> str:
    header = f"STUDY PLAN: {plan['courseName']}\n{RULE}\n\n"
    details = (
        f"Deadline: {plan['deadline']}\n"
        f"Hours per day: {plan['hoursPerDay']}\n"
        f"Total hours: {plan['totalHours']}\n"
        f"Progress: {plan['progress']}%\n\n"
    )
    weeks = "\n".join(
        f"Week {w['week']}: {w['topic']}\n"
        f"Hours: {w['hours']}\n"
        "Tasks:\n" + "\n".join(f"  - {task}" for task in w["tasks"]) + "\n"
        for w in plan["plan"]
    )
    return header + details + weeks + f"\nCreated: {plan['createdAt']}\n"


def render_note(note: dict) -> str:
    header = f"NOTE: {note['title']}\n{RULE}\n\n"
    return header + f"Source: {note['source']}\n\n{note['content']}\n"


def render_chat_history(messages: list[dict]) -> str:
    header = f"CHAT HISTORY\n{RULE}\n\n"
    body = "\n".join(
        f"[{msg['timestamp']}] {msg['role'].upper()}:\n{msg['content']}\n"
        for msg in messages
    )
    return header + body


def render_flashcards(flashcard_set: dict) -> str:
    header = (
        f"FLASHCARDS: {flashcard_set['topic']}\n{RULE}\n\n"
        f"Total Cards: {flashcard_set['totalCount']}\n"
        f"Known: {flashcard_set['knownCount']}\n\n"
    )
    cards = "\n".join(
        f"Card {i}:\n"
        f"Q: {card['question']}\n"
        f"A: {card['answer']}\n"
        f"Status: {'Known' if card['known'] else 'Unknown'}\n"
        for i, card in enumerate(flashcard_set["cards"], 1)
    )
    return header + cards + f"\nCreated: {flashcard_set['createdAt']}\n"


def slugify(title: str) -> str:
    """Replace whitespace runs with hyphens."""
    return re.sub(r"\s+", "-", title.strip())


def build_filename(prefix: str, title: Optional[str], fmt: str, now_ms: Optional[int] = None) -> str:
    """<prefix>-<slug>-<epoch-ms>.<format>, or <prefix>-<epoch-ms>.<format> without a title."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    if title:
        return f"{prefix}-{slugify(title)}-{now_ms}.{fmt}"
    return f"{prefix}-{now_ms}.{fmt}"


def export_record(
    db: Session,
    export_type: str,
    record_id: Optional[int],
    fmt: Optional[str] = None,
    conversation_id: str = DEFAULT_CONVERSATION_ID,
) -> tuple[str, str]:
    """Render one record for download.

    Returns:
        (content, filename)

    Raises:
        ValidationError: unknown export type
        NotFoundError: the record doesn't exist or renders to nothing
    """
    fmt = fmt or DEFAULT_FORMAT

    if export_type not in EXPORT_TYPES:
        raise ValidationError("Invalid export type")

    content = ""
    filename = ""

    if export_type == "study":
        plan = get_study_plan(db, record_id) if record_id is not None else None
        if plan:
            data = serialize_study_plan(plan)
            content = render_study_plan(data)
            filename = build_filename("study-plan", data["courseName"], fmt)

    elif export_type == "notes":
        note = get_note(db, record_id) if record_id is not None else None
        if note:
            data = serialize_note(note)
            content = render_note(data)
            filename = build_filename("note", data["title"], fmt)

    elif export_type == "chat":
        messages = [serialize_message(m) for m in get_history(db, conversation_id)]
        content = render_chat_history(messages)
        filename = build_filename("chat-history", None, fmt)

    elif export_type == "flashcards":
        flashcard_set = get_flashcard_set(db, record_id) if record_id is not None else None
        if flashcard_set:
            data = serialize_flashcard_set(flashcard_set)
            content = render_flashcards(data)
            filename = build_filename("flashcards", data["topic"], fmt)

    if not content:
        raise NotFoundError("Content not found")

    return content, filename
