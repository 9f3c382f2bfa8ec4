# src/todolingo/core/auth.py

"""
Local accounts and the session marker.

The session is advisory client-side state: whoever can read the storage file
can impersonate any user. Passwords are only kept as SHA-256 digests.
"""

from __future__ import annotations

import logging

from ..errors import InvalidCredentials, NotAuthenticated, ValidationError
from ..llm.gateway import validate_api_key
from ..storage.models import CurrentUser
from .state import AppState

logger = logging.getLogger(__name__)

MIN_USERNAME_LEN = 3
MIN_PASSWORD_LEN = 6


def _validate_registration(username: str, password: str) -> None:
    if not username.strip() or not password.strip():
        raise ValidationError("Please fill in all fields")
    if len(username.strip()) < MIN_USERNAME_LEN:
        raise ValidationError(f"Username must be at least {MIN_USERNAME_LEN} characters long")
    if len(password) < MIN_PASSWORD_LEN:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LEN} characters long")


def _start_session(state: AppState, user_id: str, username: str) -> CurrentUser:
    current = CurrentUser(id=user_id, username=username, is_logged_in=True)
    state.store.set_current_user(current)
    state.current_user = current
    return current


def register(state: AppState, username: str, password: str) -> CurrentUser:
    """Create an account and log it in. Raises DuplicateUsername / ValidationError."""
    _validate_registration(username, password)
    user = state.store.create_user(username.strip(), password)
    logger.info("Registered username=%s", user.username)
    return _start_session(state, user.id, user.username)


def login(state: AppState, username: str, password: str) -> CurrentUser:
    if not username.strip() or not password.strip():
        raise ValidationError("Please fill in all fields")
    user = state.store.authenticate(username.strip(), password)
    if user is None:
        logger.info("Login failed username=%s", username.strip())
        raise InvalidCredentials()
    logger.info("Logged in username=%s", user.username)
    return _start_session(state, user.id, user.username)


def logout(state: AppState) -> None:
    if state.current_user is not None:
        logger.info("Logged out username=%s", state.current_user.username)
    state.current_user = None
    state.store.set_current_user(None)


def restore_session(state: AppState) -> CurrentUser | None:
    """Pick up the session marker left by a previous run (if any)."""
    current = state.store.get_current_user()
    if current is not None and current.is_logged_in:
        state.current_user = current
        logger.info("Restored session username=%s", current.username)
        return current
    state.current_user = None
    return None


def require_user(state: AppState) -> CurrentUser:
    if state.current_user is None:
        raise NotAuthenticated()
    return state.current_user


def set_api_key(state: AppState, key: str | None) -> None:
    """Save (or with None/"" clear) the OpenAI key. Non-empty keys must start with "sk-"."""
    key = (key or "").strip()
    if key and not validate_api_key(key):
        raise ValidationError('Please enter a valid OpenAI API key (starts with "sk-")')
    state.store.set_api_key(key or None)
    state.api_key = key or None
