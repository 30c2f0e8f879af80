"""
FastAPI dependencies: database session, auth services and the session gate.
"""
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from notable_backend.auth.credential_store import CredentialStore, LocalCredentialStore
from notable_backend.auth.identity_bridge import IdentityBridge
from notable_backend.auth.mailer import LoggingResetEmailSender, ResetEmailSender
from notable_backend.auth.session_tokens import SessionClaims, SessionTokenService
from notable_backend.config import get_settings
from notable_backend.errors import Unauthorized
from notable_backend.notes.mutator import SetFieldMutator
from notable_backend.notes.repository import NoteRepository
from notable_database.db import SessionLocal

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/users/login", auto_error=False)


# DATABASE Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache(maxsize=1)
def get_token_service() -> SessionTokenService:
    settings = get_settings()
    return SessionTokenService(settings.signing_keys, settings.jwt_key_id, ttl=settings.session_ttl)


@lru_cache(maxsize=1)
def get_credential_store() -> CredentialStore:
    settings = get_settings()
    return LocalCredentialStore(SessionLocal, settings.provider_secret, settings.password_reset_url)


def get_mailer() -> ResetEmailSender:
    return LoggingResetEmailSender()


def get_identity_bridge(
    db=Depends(get_db),
    credentials: CredentialStore = Depends(get_credential_store),
    tokens: SessionTokenService = Depends(get_token_service),
    mailer: ResetEmailSender = Depends(get_mailer),
) -> IdentityBridge:
    return IdentityBridge(db, credentials, tokens, mailer)


def get_note_repository(db=Depends(get_db)) -> NoteRepository:
    return NoteRepository(db)


def get_note_mutator(db=Depends(get_db)) -> SetFieldMutator:
    return SetFieldMutator(db)


# PUBLIC_INTERFACE
def get_current_session(
    token: Optional[str] = Depends(oauth2_scheme),
    tokens: SessionTokenService = Depends(get_token_service),
) -> SessionClaims:
    """Validates the bearer session token. Fails closed on anything but a valid, unexpired token."""
    if not token:
        raise Unauthorized("No token, authorization denied")
    try:
        return tokens.verify(token)
    except Unauthorized as exc:
        logger.info("Rejected session token: %s", exc.message)
        raise
