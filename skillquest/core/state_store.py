"""Reactive holder for one piece of locally-held state.

State objects are immutable; every change goes through a reducer, a plain
function ``(state, *args) -> new_state``, so each transition can be tested
without a store instance.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, TypeVar

S = TypeVar("S")

logger = logging.getLogger(__name__)


class StateStore(Generic[S]):
    def __init__(self, initial: S) -> None:
        self._state = initial
        self._listeners: list[Callable[[S], None]] = []

    @property
    def state(self) -> S:
        return self._state

    def dispatch(self, reducer: Callable[..., S], *args: Any, **kwargs: Any) -> S:
        new_state = reducer(self._state, *args, **kwargs)
        if new_state is not self._state:
            self._state = new_state
            self._notify()
        return new_state

    def subscribe(self, listener: Callable[[S], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.error("State listener failed", exc_info=True)
