"""
Identity provider adapter.

`CredentialStore` is the contract the identity bridge talks to. The provider
owns passwords; callers only ever see provider uids, short-lived assertions
and reset links. `LocalCredentialStore` is a self-hosted provider backed by
the provider_accounts table.
"""
import abc
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable
from urllib.parse import urlencode

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notable_backend.errors import InvalidAssertion, ProviderError
from notable_database.models import ProviderAccount

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ASSERTION_TTL = timedelta(minutes=5)
RESET_CODE_TTL = timedelta(hours=1)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class ProviderIdentity:
    uid: str
    email: str


# PUBLIC_INTERFACE
class CredentialStore(abc.ABC):
    """Operations the identity provider exposes to this service."""

    @abc.abstractmethod
    def create_credential(self, email: str, password: str) -> str:
        """Create a provider account and return its uid."""

    @abc.abstractmethod
    def sign_in(self, email: str, password: str) -> str:
        """Run the provider's password check and return a provider assertion."""

    @abc.abstractmethod
    def verify_assertion(self, assertion: str) -> ProviderIdentity:
        """Exchange an assertion for the verified provider identity."""

    @abc.abstractmethod
    def generate_reset_link(self, email: str) -> str:
        """Return a password-reset URL for the account registered under email."""

    @abc.abstractmethod
    def delete_credential(self, uid: str) -> None:
        """Remove a provider account. Missing uids are ignored."""


# PUBLIC_INTERFACE
class LocalCredentialStore(CredentialStore):
    """
    Provider accounts in their own table, bcrypt-hashed passwords, and
    HS256-signed assertions/reset codes.

    Each call opens and commits its own session from session_factory, so the
    provider never shares a transaction with the caller.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        secret: str,
        reset_url: str,
        assertion_ttl: timedelta = ASSERTION_TTL,
    ):
        self._session_factory = session_factory
        self._secret = secret
        self._reset_url = reset_url
        self._assertion_ttl = assertion_ttl

    def _find(self, session: Session, email: str):
        return session.execute(
            select(ProviderAccount).where(ProviderAccount.email == email)
        ).scalar_one_or_none()

    def _sign(self, account: ProviderAccount, purpose: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        claims = {"uid": account.uid, "email": account.email, "typ": purpose, "iat": now, "exp": now + ttl}
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def create_credential(self, email: str, password: str) -> str:
        if not password:
            raise ProviderError("The password must be a non-empty string.")
        with self._session_factory() as session:
            if self._find(session, email) is not None:
                raise ProviderError("The email address is already in use by another account.")
            account = ProviderAccount(
                uid=uuid.uuid4().hex,
                email=email,
                password_hash=pwd_context.hash(password),
            )
            session.add(account)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ProviderError("The email address is already in use by another account.") from exc
            logger.info("Provider account created uid=%s", account.uid)
            return account.uid

    def sign_in(self, email: str, password: str) -> str:
        with self._session_factory() as session:
            account = self._find(session, email)
            if account is None or not pwd_context.verify(password, account.password_hash):
                raise ProviderError("Invalid email or password.")
            return self._sign(account, "assertion", self._assertion_ttl)

    def verify_assertion(self, assertion: str) -> ProviderIdentity:
        try:
            claims = jwt.decode(assertion, self._secret, algorithms=[ALGORITHM])
        except JWTError as exc:
            raise InvalidAssertion(f"Invalid provider assertion: {exc}") from exc
        if claims.get("typ") != "assertion":
            raise InvalidAssertion("Invalid provider assertion: wrong token type")
        return ProviderIdentity(uid=claims["uid"], email=claims["email"])

    def generate_reset_link(self, email: str) -> str:
        with self._session_factory() as session:
            account = self._find(session, email)
            if account is None:
                raise ProviderError("There is no user record corresponding to the provided identifier.")
            code = self._sign(account, "reset", RESET_CODE_TTL)
        return f"{self._reset_url}?{urlencode({'mode': 'resetPassword', 'oobCode': code})}"

    def delete_credential(self, uid: str) -> None:
        with self._session_factory() as session:
            account = session.get(ProviderAccount, uid)
            if account is None:
                return
            session.delete(account)
            session.commit()
            logger.info("Provider account deleted uid=%s", uid)
