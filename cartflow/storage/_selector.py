"""
Backend selection — a pure function of authentication state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from cartflow.storage._backend import StorageBackend

logger = logging.getLogger(__name__)

type AuthListener = Callable[[bool], None]
"""Called synchronously with the new is_authenticated value."""


class AuthState:
    """
    Observable "is a user session active" signal.

    Token storage and verification live elsewhere; this only carries the bit.
    """

    def __init__(self, authenticated: bool = False) -> None:
        self._authenticated = authenticated
        self._listeners: list[AuthListener] = []

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register listener; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set(self, authenticated: bool) -> None:
        if authenticated == self._authenticated:
            return
        self._authenticated = authenticated
        for listener in list(self._listeners):
            listener(authenticated)

    def login(self) -> None:
        self.set(True)

    def logout(self) -> None:
        self.set(False)


class BackendSelector:
    """
    Resolves the active StorageBackend.

    Called before every cart operation; never cached by callers, so a
    login/logout is visible to the very next operation.
    """

    def __init__(
        self,
        auth: AuthState,
        local: StorageBackend,
        remote: StorageBackend,
    ) -> None:
        self._auth = auth
        self._local = local
        self._remote = remote

    @property
    def auth(self) -> AuthState:
        return self._auth

    @property
    def local(self) -> StorageBackend:
        return self._local

    @property
    def remote(self) -> StorageBackend:
        return self._remote

    def resolve(self) -> StorageBackend:
        backend = self._remote if self._auth.is_authenticated else self._local
        logger.debug("Resolved cart backend: %s", backend.kind.value)
        return backend


__all__ = ("AuthListener", "AuthState", "BackendSelector")
