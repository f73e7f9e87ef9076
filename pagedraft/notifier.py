"""Synchronous change notification after committed document mutations."""

import logging
from enum import IntEnum
from typing import Callable

from .model import Document

logger = logging.getLogger(__name__)

Listener = Callable[[Document], None]


class Stage(IntEnum):
    """Notification stages, delivered in ascending order."""

    STATS = 10
    PAGINATION = 20
    RENDER = 30


class ChangeNotifier:
    """Calls subscribers in stage order, then registration order within a stage."""

    def __init__(self):
        self._subscribers: list[tuple[Stage, int, Listener]] = []
        self._sequence = 0

    def subscribe(self, stage: Stage, listener: Listener) -> Callable[[], None]:
        """Register `listener` for `stage`; returns a function that unsubscribes it."""
        entry = (Stage(stage), self._sequence, listener)
        self._sequence += 1
        self._subscribers.append(entry)
        self._subscribers.sort(key=lambda item: (item[0], item[1]))

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def notify(self, document: Document) -> None:
        for stage, _, listener in list(self._subscribers):
            logger.debug(f"Notifying {stage.name.lower()} subscriber")
            listener(document)

    def __len__(self) -> int:
        return len(self._subscribers)
