"""State transitions for the signed-in user.

XP updates are optimistic: the new user is shown immediately as ``PENDING``
and later settles to ``CONFIRMED`` or ``FAILED_KEPT_LOCAL`` depending on the
remote write. A failed write never rolls the local user back.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from skillquest.core.models import User


class SyncStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED_KEPT_LOCAL = "failed-kept-locally"


@dataclass(frozen=True, slots=True)
class AuthState:
    user: User | None = None
    sync_status: SyncStatus = SyncStatus.IDLE
    loading: bool = False
    error: str | None = None
    initialized: bool = False


def mark_initialized(state: AuthState) -> AuthState:
    return replace(state, initialized=True, loading=True)


def begin_auth(state: AuthState) -> AuthState:
    return replace(state, loading=True, error=None)


def user_resolved(state: AuthState, user: User | None) -> AuthState:
    """A sign-in (or identity change) finished; ``None`` means nobody is signed in."""
    return replace(state, user=user, sync_status=SyncStatus.IDLE, loading=False)


def auth_settled(state: AuthState) -> AuthState:
    """Stop loading without touching the user (cancelled sign-in, repeated identity event)."""
    return replace(state, loading=False)


def auth_failed(state: AuthState, message: str) -> AuthState:
    return replace(state, loading=False, error=message)


def user_enriched(state: AuthState, user: User) -> AuthState:
    """Apply stored profile data, unless the user changed or an XP update already landed."""
    if state.user is None or state.user.id != user.id:
        return state
    if state.sync_status is not SyncStatus.IDLE:
        return state
    return replace(state, user=user)


def user_refreshed(state: AuthState, user: User) -> AuthState:
    if state.user is None or state.user.id != user.id:
        return state
    return replace(state, user=user)


def user_update_pending(state: AuthState, user: User) -> AuthState:
    return replace(state, user=user, sync_status=SyncStatus.PENDING)


def user_sync_confirmed(state: AuthState, user: User) -> AuthState:
    if state.user != user or state.sync_status is not SyncStatus.PENDING:
        return state
    return replace(state, sync_status=SyncStatus.CONFIRMED)


def user_sync_failed(state: AuthState, user: User) -> AuthState:
    if state.user != user or state.sync_status is not SyncStatus.PENDING:
        return state
    return replace(state, sync_status=SyncStatus.FAILED_KEPT_LOCAL)


def user_signed_out(state: AuthState) -> AuthState:
    return AuthState(initialized=state.initialized)


def clear_error(state: AuthState) -> AuthState:
    return replace(state, error=None)
