"""Holds the current stream session and its lifecycle status.

Transitions:
    UNINITIALIZED --begin_create--> CREATING --set--> LIVE
    CREATING --clear--> UNINITIALIZED     (create failed)
    LIVE --clear--> UNINITIALIZED         (dispatch failed)

Sessions are never edited in place; set() replaces the whole object.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .params import Session, SessionStatus

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, on_status_change: Callable[[SessionStatus], None] | None = None):
        self._session: Session | None = None
        self._status = SessionStatus.UNINITIALIZED
        self._listeners: list[Callable[[SessionStatus], None]] = []
        if on_status_change is not None:
            self._listeners.append(on_status_change)

    @property
    def status(self) -> SessionStatus:
        return self._status

    def current(self) -> Session | None:
        return self._session

    def begin_create(self) -> None:
        self._set_status(SessionStatus.CREATING)

    def set(self, session: Session) -> None:
        if self._session is not None and self._session.id != session.id:
            logger.info(f"Retiring stream {self._session.id} in favour of {session.id}")
        self._session = session.model_copy(update={"status": SessionStatus.LIVE})
        self._set_status(SessionStatus.LIVE)

    def clear(self) -> None:
        if self._session is not None:
            logger.info(f"Discarding stream {self._session.id}")
        self._session = None
        self._set_status(SessionStatus.UNINITIALIZED)

    def add_listener(self, callback: Callable[[SessionStatus], None]) -> None:
        self._listeners.append(callback)

    def _set_status(self, status: SessionStatus) -> None:
        if status == self._status:
            return
        self._status = status
        for callback in self._listeners:
            try:
                callback(status)
            except Exception as e:
                logger.error(f"Error in session status listener: {e}")
