import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notable_backend.errors import NoteNotFound, UserNotFound
from notable_database.models import Note, utcnow

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class NoteRepository:
    """Create, read and delete notes. Field-level writes go through SetFieldMutator."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: int,
        title: str,
        content: str,
        tags: Optional[Iterable[str]] = None,
        attachments: Optional[Iterable[str]] = None,
        favorite: bool = False,
        pinned: bool = False,
        in_trash: bool = False,
    ) -> Note:
        now = utcnow()
        note = Note(
            user_id=user_id,
            title=title,
            content=content,
            tags=list(tags or []),
            attachments=list(attachments or []),
            favorite=favorite,
            pinned=pinned,
            in_trash=in_trash,
            created_at=now,
            modified_at=now,
            version=1,
        )
        self.db.add(note)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise UserNotFound(f"User {user_id} not found") from exc
        self.db.refresh(note)
        logger.info("Created note id=%s user_id=%s", note.id, user_id)
        return note

    def get(self, note_id: int) -> Note:
        note = self.db.get(Note, note_id)
        if note is None:
            raise NoteNotFound(note_id)
        return note

    def list_all(self) -> List[Note]:
        return self.db.query(Note).order_by(Note.id).all()

    def list_for_user(self, user_id: int) -> List[Note]:
        return self.db.query(Note).filter(Note.user_id == user_id).order_by(Note.id).all()

    def list_filtered(
        self,
        user_id: int,
        favorite: Optional[bool] = None,
        has_tags: bool = False,
        no_tags: bool = False,
        in_trash: Optional[bool] = None,
    ) -> List[Note]:
        """
        Notes of one user matching every given predicate.

        Tag presence is checked in Python: JSON length functions differ
        between SQLite, MySQL and PostgreSQL.
        """
        query = self.db.query(Note).filter(Note.user_id == user_id)
        if favorite is not None:
            query = query.filter(Note.favorite == favorite)
        if in_trash is not None:
            query = query.filter(Note.in_trash == in_trash)
        notes = query.order_by(Note.id).all()
        if has_tags:
            notes = [n for n in notes if n.tags]
        if no_tags:
            notes = [n for n in notes if not n.tags]
        return notes

    def distinct_tags(self, user_id: int) -> List[str]:
        """Every tag used by the user, once each, in first-seen order."""
        rows = self.db.query(Note.tags).filter(Note.user_id == user_id).order_by(Note.id).all()
        seen = {}
        for (tags,) in rows:
            for tag in tags or []:
                seen.setdefault(tag, None)
        return list(seen)

    def delete(self, note_id: int) -> None:
        """Permanent delete. A missing id is not an error."""
        deleted = self.db.query(Note).filter(Note.id == note_id).delete(synchronize_session=False)
        self.db.commit()
        logger.info("Deleted note id=%s rows=%s", note_id, deleted)
