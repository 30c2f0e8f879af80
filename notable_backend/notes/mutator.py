"""
Field-level writes to a single note.

tags and attachments are lists stored inside the note row, so adding or
removing one entry is a read-modify-write of the whole list. Two guards keep
concurrent writers from overwriting each other:

* a per-note lock serializes writers inside this process;
* every write is conditional on the `version` that was read, and bumps it, so
  a writer in another process that got there first forces a re-read.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from notable_backend.errors import ConcurrentUpdateError, NoteNotFound, ValidationError
from notable_database.models import Note, utcnow

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5

COLLECTION_FIELDS = {
    "tags": Note.tags,
    "attachments": Note.attachments,
}

# Wire name -> column. Only these may be set through update_note_field.
SCALAR_FIELDS = {
    "title": Note.title,
    "content": Note.content,
    "favorite": Note.favorite,
    "pinned": Note.pinned,
    "inTrash": Note.in_trash,
}


class NoteLocks:
    """Per-note mutexes. An entry lives only while someone holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, list] = {}

    @contextmanager
    def hold(self, note_id: int):
        with self._guard:
            entry = self._locks.get(note_id)
            if entry is None:
                entry = self._locks[note_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[note_id]

    def __len__(self):
        with self._guard:
            return len(self._locks)


note_locks = NoteLocks()


# PUBLIC_INTERFACE
class SetFieldMutator:
    def __init__(self, db: Session, locks: NoteLocks = note_locks):
        self.db = db
        self.locks = locks

    # Collections

    def append(self, note_id: int, field: str, value: str) -> List[str]:
        """Append value to a collection field. Duplicates are kept."""
        return self._rewrite(note_id, field, lambda current: current + [value])

    def remove(self, note_id: int, field: str, value: str) -> List[str]:
        """Drop every entry equal to value."""
        return self._rewrite(note_id, field, lambda current: [v for v in current if v != value])

    def add_tag(self, note_id: int, tag: str) -> List[str]:
        return self.append(note_id, "tags", tag)

    def remove_tag(self, note_id: int, tag: str) -> List[str]:
        return self.remove(note_id, "tags", tag)

    def add_attachment(self, note_id: int, attachment: str) -> List[str]:
        return self.append(note_id, "attachments", attachment)

    def remove_attachment(self, note_id: int, attachment: str) -> List[str]:
        return self.remove(note_id, "attachments", attachment)

    def _rewrite(self, note_id: int, field: str, change: Callable[[List[str]], List[str]]) -> List[str]:
        column = COLLECTION_FIELDS.get(field)
        if column is None:
            raise ValidationError(f"{field} is not a collection field")

        with self.locks.hold(note_id):
            for attempt in range(1, MAX_ATTEMPTS + 1):
                row = self.db.execute(
                    select(column, Note.version).where(Note.id == note_id)
                ).one_or_none()
                if row is None:
                    self.db.rollback()
                    raise NoteNotFound(note_id)

                current, version = row
                updated = change(list(current or []))
                result = self.db.execute(
                    update(Note)
                    .where(Note.id == note_id, Note.version == version)
                    .values({column: updated, Note.modified_at: utcnow(), Note.version: Note.version + 1})
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    self.db.commit()
                    return updated

                self.db.rollback()
                logger.warning("Note %s changed under %s update (attempt %s), retrying", note_id, field, attempt)

        raise ConcurrentUpdateError(f"Note {note_id} is being modified concurrently; try again")

    # Scalar fields

    def update_note_field(self, note_id: int, field: str, value) -> None:
        """Set one whitelisted column and refresh modifiedAt."""
        column = SCALAR_FIELDS.get(field)
        if column is None:
            raise ValidationError(f"Unknown note field: {field}")

        with self.locks.hold(note_id):
            result = self.db.execute(
                update(Note)
                .where(Note.id == note_id)
                .values({column: value, Note.modified_at: utcnow(), Note.version: Note.version + 1})
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise NoteNotFound(note_id)
            self.db.commit()

    def update_content(self, note_id: int, title: str, content: str) -> None:
        """Replace title and content, each as its own field update."""
        self.update_note_field(note_id, "title", title)
        self.update_note_field(note_id, "content", content)

    def update_status(
        self,
        note_id: int,
        favorite: Optional[bool] = None,
        pinned: Optional[bool] = None,
        in_trash: Optional[bool] = None,
    ) -> None:
        """Apply each provided flag independently; omitted flags are left alone."""
        flags = {"favorite": favorite, "pinned": pinned, "inTrash": in_trash}
        for field, value in flags.items():
            if value is not None:
                self.update_note_field(note_id, field, value)
