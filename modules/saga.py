"""Compensating-action helper for multi-step store operations."""

from __future__ import annotations

from typing import Callable

from loguru import logger


class Saga:
    """Track compensations for completed steps and undo them on failure.

    Use as a context manager. Each completed step registers its undo action
    with :meth:`on_rollback`; if the block raises, the registered actions run
    in reverse order and the original exception propagates. A failing
    compensation is logged and does not replace the original error.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._compensations: list[tuple[str, Callable[[], None]]] = []

    def on_rollback(self, label: str, action: Callable[[], None]) -> None:
        self._compensations.append((label, action))

    def rollback(self) -> None:
        while self._compensations:
            label, action = self._compensations.pop()
            try:
                action()
                logger.info("{}: compensated {}", self.name, label)
            except Exception:
                logger.exception("{}: compensation {} failed", self.name, label)

    def __enter__(self) -> "Saga":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            logger.warning("{} failed: {}; rolling back", self.name, exc)
            self.rollback()
        else:
            self._compensations.clear()
        return False
