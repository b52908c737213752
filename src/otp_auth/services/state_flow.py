"""Observable holder for the current ``AuthState``."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Callable

from otp_auth.models.auth_state import AuthState

logger = logging.getLogger(__name__)

Subscriber = Callable[[AuthState], None]


class StateFlow:
    """Holds one state value and broadcasts every change.

    * New subscribers are immediately handed the current value.
    * Setting a value equal to the current one is not a change and is
      not broadcast.
    * Updates and deliveries happen under one lock, so every subscriber
      sees the same sequence of states.
    """

    def __init__(self, initial: AuthState) -> None:
        self._value = initial
        self._subscribers: list[Subscriber] = []
        self._lock = threading.RLock()

    @property
    def value(self) -> AuthState:
        return self._value

    def emit(self, state: AuthState) -> None:
        """Replace the current value and notify subscribers synchronously."""
        if not isinstance(state, AuthState):
            raise TypeError(f"Not an AuthState: {state!r}")
        with self._lock:
            if state == self._value:
                return
            self._value = state
            for subscriber in list(self._subscribers):
                self._notify(subscriber, state)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register *subscriber*, replay the current value, return an unsubscribe hook."""
        with self._lock:
            self._subscribers.append(subscriber)
            self._notify(subscriber, self._value)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    async def watch(self) -> AsyncIterator[AuthState]:
        """Yield the current state, then every later one, inside the running loop.

        Usage::

            async for state in flow.watch():
                render(state)
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[AuthState] = asyncio.Queue()
        unsubscribe = self.subscribe(
            lambda state: loop.call_soon_threadsafe(queue.put_nowait, state)
        )
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @staticmethod
    def _notify(subscriber: Subscriber, state: AuthState) -> None:
        try:
            subscriber(state)
        except Exception:
            logger.exception("State subscriber %r failed on %r", subscriber, state)
