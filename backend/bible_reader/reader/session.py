from __future__ import annotations

import logging
from typing import Callable

from bible_reader.core.auth import UserContext

logger = logging.getLogger(__name__)

AuthListener = Callable[[UserContext | None], None]


class AuthSession:
    """Explicit sign-in state handed to a reader at construction time.

    Listeners are called on every sign-in/sign-out transition (a change of
    user id), not when the same user's token is refreshed.
    """

    def __init__(self, user: UserContext | None = None) -> None:
        self._user = user
        self._listeners: list[AuthListener] = []

    @property
    def current_user(self) -> UserContext | None:
        return self._user

    def get_current_user(self) -> UserContext | None:
        return self._user

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_user(self, user: UserContext | None) -> None:
        previous = self._user.user_id if self._user else None
        current = user.user_id if user else None
        self._user = user
        if previous == current:
            return
        logger.info(f"Auth transition {previous or '-'} -> {current or '-'}")
        for listener in list(self._listeners):
            listener(user)

    def sign_in(self, user: UserContext) -> None:
        self.set_user(user)

    def sign_out(self) -> None:
        self.set_user(None)
