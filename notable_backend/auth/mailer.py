import abc
import logging

logger = logging.getLogger(__name__)


class ResetEmailSender(abc.ABC):
    """Delivers password-reset links to users."""

    @abc.abstractmethod
    def send_reset_email(self, email: str, link: str) -> None:
        ...


class LoggingResetEmailSender(ResetEmailSender):
    """Writes the reset link to the log instead of sending mail. Development use."""

    def send_reset_email(self, email: str, link: str) -> None:
        logger.info("Password reset requested for %s: %s", email, link)
