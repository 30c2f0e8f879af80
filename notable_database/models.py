from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Boolean, JSON
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, timezone

Base = declarative_base()

# PUBLIC_INTERFACE
def utcnow():
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# PUBLIC_INTERFACE
class User(Base):
    """
    SQLAlchemy model for a local user.

    The password credential is not stored here; it lives with the identity
    provider, referenced through provider_uid.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(64), nullable=False)
    phone_number = Column(String(32), nullable=True)
    provider_uid = Column(String(128), unique=True, index=True, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    notes = relationship("Note", back_populates="owner")

# PUBLIC_INTERFACE
class Note(Base):
    """
    SQLAlchemy model for a note.

    tags and attachments are JSON lists embedded in the row. version is bumped
    by every mutation and used as a compare-and-swap token.
    """
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    attachments = Column(JSON, nullable=False, default=list)
    favorite = Column(Boolean, nullable=False, default=False)
    pinned = Column(Boolean, nullable=False, default=False)
    in_trash = Column("inTrash", Boolean, nullable=False, default=False)
    created_at = Column("createdAt", DateTime, default=utcnow)
    modified_at = Column("modifiedAt", DateTime, default=utcnow)
    version = Column(Integer, nullable=False, default=1)

    owner = relationship("User", back_populates="notes")

# PUBLIC_INTERFACE
class ProviderAccount(Base):
    """
    Credential record owned by the local identity provider.

    Written through its own session factory so it commits independently of
    the users table.
    """
    __tablename__ = "provider_accounts"

    uid = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(256), nullable=False)
    created_at = Column(DateTime, default=utcnow)
