"""
Bridges the identity provider and the local users table.

A caller holds two identities: the provider uid, used only while logging in,
and the local user id, which is what the session token carries and what the
rest of the service sees.

Login walks UNAUTHENTICATED -> PROVIDER_VERIFYING -> LOCAL_LOOKUP ->
SESSION_ISSUED, or stops in REJECTED at whichever step failed.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from notable_backend.auth.credential_store import CredentialStore
from notable_backend.auth.mailer import ResetEmailSender
from notable_backend.auth.session_tokens import SessionClaims, SessionTokenService
from notable_backend.errors import NotableError, ProviderError, StoreError, UserNotFound
from notable_database.models import User

logger = logging.getLogger(__name__)


class AuthState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    PROVIDER_VERIFYING = "provider_verifying"
    LOCAL_LOOKUP = "local_lookup"
    SESSION_ISSUED = "session_issued"
    REJECTED = "rejected"


class AuthAttempt:
    """One pass through the login state machine."""

    def __init__(self, email: str):
        self.email = email
        self.state = AuthState.UNAUTHENTICATED

    def advance(self, state: AuthState) -> None:
        logger.debug("Login %s: %s -> %s", self.email, self.state.value, state.value)
        self.state = state

    def reject(self, exc: Exception) -> None:
        logger.info("Login rejected for %s during %s: %s", self.email, self.state.value, exc)
        self.state = AuthState.REJECTED


@dataclass(frozen=True)
class Registration:
    provider_uid: str
    user: User


@dataclass(frozen=True)
class LoginResult:
    token: str
    user_id: int
    state: AuthState


# User lookup helpers
def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()

def get_user_by_provider_uid(db: Session, uid: str) -> Optional[User]:
    return db.query(User).filter(User.provider_uid == uid).first()


# PUBLIC_INTERFACE
class IdentityBridge:
    def __init__(
        self,
        db: Session,
        credentials: CredentialStore,
        tokens: SessionTokenService,
        mailer: ResetEmailSender,
    ):
        self.db = db
        self.credentials = credentials
        self.tokens = tokens
        self.mailer = mailer

    def register(self, email: str, username: str, password: str, phone_number: Optional[str]) -> Registration:
        """
        Create the provider credential, then the local user row.

        If the local insert fails, the provider credential is deleted again so
        the two stores do not diverge, and the insert error is raised.
        """
        provider_uid = self.credentials.create_credential(email, password)
        user = User(email=email, username=username, phone_number=phone_number, provider_uid=provider_uid)
        self.db.add(user)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Local user insert failed for %s; removing provider credential %s", email, provider_uid)
            self._compensate(provider_uid)
            if isinstance(exc, IntegrityError):
                raise ProviderError("A user with this email already exists.") from exc
            raise StoreError(str(exc)) from exc
        self.db.refresh(user)
        logger.info("Registered user id=%s provider_uid=%s", user.id, provider_uid)
        return Registration(provider_uid=provider_uid, user=user)

    def _compensate(self, provider_uid: str) -> None:
        try:
            self.credentials.delete_credential(provider_uid)
        except (NotableError, SQLAlchemyError):
            # The original insert error is what the caller gets; this one is only logged.
            logger.exception("Could not remove provider credential %s; stores have diverged", provider_uid)

    def login(self, email: str, password: str) -> LoginResult:
        attempt = AuthAttempt(email)
        try:
            attempt.advance(AuthState.PROVIDER_VERIFYING)
            assertion = self.credentials.sign_in(email, password)
            identity = self.credentials.verify_assertion(assertion)

            attempt.advance(AuthState.LOCAL_LOOKUP)
            user = get_user_by_email(self.db, identity.email)
            if user is None:
                raise UserNotFound("User not found in local database")

            token = self.tokens.issue(user.id, user.email)
            attempt.advance(AuthState.SESSION_ISSUED)
        except NotableError as exc:
            attempt.reject(exc)
            raise
        return LoginResult(token=token, user_id=user.id, state=attempt.state)

    def check(self, token: str) -> SessionClaims:
        """Session check is purely local; the provider is not consulted."""
        return self.tokens.verify(token)

    def forgot_password(self, email: str) -> None:
        link = self.credentials.generate_reset_link(email)
        self.mailer.send_reset_email(email, link)

    def resolve_provider_user(self, assertion: str) -> User:
        """Map a provider assertion to the local user registered with that provider uid."""
        identity = self.credentials.verify_assertion(assertion)
        user = get_user_by_provider_uid(self.db, identity.uid)
        if user is None:
            raise UserNotFound("User not found")
        return user
