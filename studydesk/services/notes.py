"""Notes service for StudyDesk.

Three producers share one Note shape:
- PDF upload (mock extraction, content keyed only by file name)
- Local text file upload
- AI-generated notes from a topic and/or source text
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..database.models import Note
from ..errors import ValidationError
from . import generation

logger = logging.getLogger(__name__)


PDF_MOCK_TEMPLATE = """# Notes from {file_name}

## Summary
This is a mock extraction from the uploaded PDF file.

## Key Points
- Point 1: Important concept from the document
- Point 2: Critical information extracted
- Point 3: Summary of main ideas

## Detailed Notes
The document contains valuable information that has been processed and summarized for easy review."""


AI_NOTES_PROMPT = """Generate comprehensive study notes for the topic: "{topic}". Use the following content as a source, if provided: "{content}".

The notes should be formatted clearly using Markdown with sections for a Summary, Key Concepts (as a bulleted list), and Practice Questions (as a numbered list)."""

DEFAULT_AI_TITLE = "AI Generated Notes"


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _save_note(
    db: Session,
    title: str,
    content: str,
    source: str,
    file_name: Optional[str] = None,
) -> Note:
    note = Note(title=title, content=content, source=source, file_name=file_name)
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info(f"Saved {source} note {note.id}: {title}")
    return note


def create_pdf_note(db: Session, file_name: Optional[str]) -> Note:
    """Store placeholder notes for an uploaded PDF.

    No text is extracted; the body depends only on the file name.
    """
    if not file_name:
        raise ValidationError("Missing file name")

    content = PDF_MOCK_TEMPLATE.format(file_name=file_name)
    return _save_note(db, f"Notes from {file_name}", content, "pdf", file_name)


def create_local_file_note(
    db: Session,
    file_name: Optional[str],
    file_content: Optional[str],
) -> Note:
    """Wrap an uploaded text file in a title header and processed footer."""
    if not file_name or not file_content:
        raise ValidationError("Missing file data")

    content = f"# {file_name}\n\n{file_content}\n\n---\n*Processed on {_timestamp()}*"
    return _save_note(db, f"Notes from {file_name}", content, "local_file", file_name)


async def create_ai_note(
    db: Session,
    topic: Optional[str],
    content: Optional[str],
) -> Note:
    """Generate markdown notes with Summary, Key Concepts and Practice Questions."""
    if not topic and not content:
        raise ValidationError("Missing topic or content")

    prompt = AI_NOTES_PROMPT.format(
        topic=topic or "",
        content=content or "No specific content provided, use general knowledge.",
    )
    text = await generation.generate(prompt, expect_structured=False)

    note_content = f"{text}\n\n---\n*Generated by AI on {_timestamp()}*"
    return _save_note(db, topic or DEFAULT_AI_TITLE, note_content, "ai")


def list_notes(db: Session) -> list[Note]:
    """Full notes history, newest first."""
    return db.query(Note).order_by(Note.created_at.desc(), Note.id.desc()).all()


def get_note(db: Session, note_id: int) -> Optional[Note]:
    return db.query(Note).filter(Note.id == note_id).first()


def delete_note(db: Session, note_id: int) -> None:
    """Delete a note. Deleting a missing note is not an error."""
    db.query(Note).filter(Note.id == note_id).delete()
    db.commit()


def serialize_note(note: Note) -> dict:
    return {
        "id": note.id,
        "title": note.title,
        "content": note.content,
        "source": note.source,
        "fileName": note.file_name,
        "createdAt": note.created_at.isoformat() if note.created_at else None,
    }
