# src/todolingo/errors.py

"""
Error taxonomy.

Every failure a user can trigger derives from TodoLingoError, so connectors
can catch one type, log it and print friendly_error_message(exc).
"""

from __future__ import annotations


class TodoLingoError(Exception):
    """Base class for all expected (user-facing) failures."""


class ValidationError(TodoLingoError):
    """Missing or malformed input."""


class StorageError(TodoLingoError):
    """The key-value store could not be read or written."""


# ---- auth ----


class AuthError(TodoLingoError):
    pass


class DuplicateUsername(AuthError):
    def __init__(self, username: str) -> None:
        super().__init__(f"Username already exists: {username}")
        self.username = username


class InvalidCredentials(AuthError):
    def __init__(self) -> None:
        super().__init__("Invalid username or password")


class NotAuthenticated(AuthError):
    def __init__(self) -> None:
        super().__init__("Not logged in")


# ---- tasks ----


class TaskNotFound(TodoLingoError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class TranslationNotFound(TodoLingoError):
    def __init__(self, task_id: str, language: str, available: list[str] | None = None) -> None:
        super().__init__(f"No {language!r} translation for task {task_id}")
        self.task_id = task_id
        self.language = language
        self.available = list(available or [])


# ---- completion gateway ----


class GatewayError(TodoLingoError):
    """Base for failures talking to the hosted completion API."""

    status_code: int = 500
    public_message: str = "Request to the language model failed. Please try again."


class InvalidApiKey(GatewayError):
    status_code = 401
    public_message = "Invalid OpenAI API key. Please check your API key and try again."


class RateLimited(GatewayError):
    status_code = 429
    public_message = "OpenAI API rate limit exceeded. Please try again later."


class QuotaExceeded(GatewayError):
    status_code = 402
    public_message = "OpenAI API quota exceeded. Please check your OpenAI account."


class GatewayFailure(GatewayError):
    status_code = 500


class UnparsableResponse(GatewayFailure):
    public_message = "Could not parse subtasks from response."


def friendly_error_message(err: BaseException) -> str:
    if isinstance(err, GatewayError):
        detail = str(err).strip()
        if isinstance(err, GatewayFailure) and detail and detail != err.public_message:
            return f"{err.public_message} ({detail})"
        return err.public_message
    if isinstance(err, StorageError):
        return f"Could not save your data: {err}"
    msg = str(err).strip()
    return msg or err.__class__.__name__
