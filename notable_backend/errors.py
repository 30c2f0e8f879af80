"""
Service-level exceptions. Each carries the HTTP status the API layer answers with.
"""
from typing import Any, List, Optional


class NotableError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(NotableError):
    status_code = 401


class InvalidToken(Unauthorized):
    pass


class MalformedToken(InvalidToken):
    pass


class ExpiredToken(Unauthorized):
    pass


class ValidationError(NotableError):
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []


class NotFound(NotableError):
    status_code = 404


class NoteNotFound(NotFound):
    def __init__(self, note_id: int):
        super().__init__(f"Note {note_id} not found")
        self.note_id = note_id


class UserNotFound(NotFound):
    pass


class ProviderError(NotableError):
    """Identity provider failure; the message is passed through verbatim."""
    status_code = 400


class InvalidAssertion(ProviderError):
    pass


class ConcurrentUpdateError(NotableError):
    status_code = 409


class StoreError(NotableError):
    status_code = 500
