"""Identity provider interface and an in-memory provider for development and tests.

Only the result contract of an identity provider matters to SkillQuest:
sign-in yields claims (id, email, display name, photo) or ``None`` when the
user cancelled, and genuine failures raise ``AuthenticationError``.
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import logging
import secrets
from typing import Callable, Protocol
from uuid import uuid4

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthenticationError(Exception):
    """Raised when the identity provider rejects or fails an operation."""


@dataclass(frozen=True, slots=True)
class IdentityClaims:
    id: str
    email: str | None
    display_name: str | None = None
    photo_url: str | None = None


IdentityListener = Callable[["IdentityClaims | None"], None]


class IdentityProvider(Protocol):
    async def sign_in_with_popup(self) -> IdentityClaims | None:
        """Federated sign-in; ``None`` means the user closed the popup."""

    async def sign_in_with_password(self, email: str, password: str) -> IdentityClaims:
        ...

    async def sign_up(self, email: str, password: str, display_name: str) -> IdentityClaims:
        """Create an account and assign its display name before returning."""

    async def sign_out(self) -> None:
        ...

    def on_identity_changed(self, callback: IdentityListener) -> Callable[[], None]:
        """Invoke ``callback`` with the current identity now and on every change; returns an unsubscribe."""


@dataclass(slots=True)
class _Account:
    claims: IdentityClaims
    salt: str
    password_hash: str


def _hash_password(password: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()


class InMemoryIdentityProvider:
    """Keeps accounts in memory; the popup flow returns preconfigured claims."""

    def __init__(self, popup_claims: IdentityClaims | None = None) -> None:
        self._accounts: dict[str, _Account] = {}
        self._popup_claims = popup_claims
        self._current: IdentityClaims | None = None
        self._listeners: list[IdentityListener] = []

    @property
    def current_identity(self) -> IdentityClaims | None:
        return self._current

    def set_popup_claims(self, claims: IdentityClaims | None) -> None:
        self._popup_claims = claims

    async def sign_in_with_popup(self) -> IdentityClaims | None:
        if self._popup_claims is None:
            return None
        self._set_current(self._popup_claims)
        return self._popup_claims

    async def sign_in_with_password(self, email: str, password: str) -> IdentityClaims:
        account = self._accounts.get(email.strip().lower())
        if account is None or account.password_hash != _hash_password(password, account.salt):
            raise AuthenticationError("Email sign-in failed: invalid credentials")
        self._set_current(account.claims)
        return account.claims

    async def sign_up(self, email: str, password: str, display_name: str) -> IdentityClaims:
        key = email.strip().lower()
        if key in self._accounts:
            raise AuthenticationError("Email sign-up failed: email already in use")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthenticationError(
                f"Email sign-up failed: password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        salt = secrets.token_hex(8)
        claims = IdentityClaims(id=uuid4().hex, email=email.strip(), display_name=display_name)
        self._accounts[key] = _Account(claims=claims, salt=salt, password_hash=_hash_password(password, salt))
        self._set_current(claims)
        return claims

    async def sign_out(self) -> None:
        self._set_current(None)

    def on_identity_changed(self, callback: IdentityListener) -> Callable[[], None]:
        self._listeners.append(callback)
        callback(self._current)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_current(self, claims: IdentityClaims | None) -> None:
        self._current = claims
        for listener in list(self._listeners):
            try:
                listener(claims)
            except Exception:
                logger.error("Identity listener failed", exc_info=True)
