"""Per-resource scheduling of reconciliation cycles."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from ..config import OperatorConfig

logger = logging.getLogger(__name__)


@dataclass
class _Slot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    pending: bool = False
    args: tuple[Any, ...] = ()


class PollScheduler:
    """Runs reconcile cycles so that two cycles for one key never overlap.

    A trigger that arrives while a cycle for the same key is in flight is
    coalesced: the in-flight runner repeats the cycle once more when it
    finishes, however many triggers arrived meanwhile, using the arguments
    of the latest trigger.
    """

    def __init__(self, reconcile_fn: Callable[..., Any], config: OperatorConfig) -> None:
        self._reconcile = reconcile_fn
        self.config = config
        self._slots: dict[str, _Slot] = {}
        self._slots_lock = threading.Lock()

    def _slot(self, key: str) -> _Slot:
        with self._slots_lock:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = _Slot()
            return slot

    def trigger(self, key: str, *args: Any) -> bool:
        """Run a cycle for ``key`` now, or mark it pending if one is running.

        Returns:
            True if this call ran at least one cycle, False if it was
            handed to the runner already in flight
        """
        slot = self._slot(key)
        slot.args = args
        slot.pending = True
        ran = False

        # Re-check after release: a trigger may land between the inner
        # loop ending and the lock being released
        while slot.pending:
            if not slot.lock.acquire(blocking=False):
                logger.debug(f"Cycle for {key} in flight, coalescing trigger")
                return ran
            try:
                while slot.pending:
                    slot.pending = False
                    ran = True
                    self._reconcile(*slot.args)
            finally:
                slot.lock.release()

        return ran

    def is_running(self, key: str) -> bool:
        with self._slots_lock:
            slot = self._slots.get(key)
        return slot is not None and slot.lock.locked()

    def interval_for(self, request_interval_millis: int | None, backend_type: str) -> int:
        """Effective polling interval for a resource, in milliseconds."""
        return self.config.interval_for(backend_type, request_interval_millis)

    def forget(self, key: str) -> None:
        """Drop scheduling state for a deleted resource."""
        with self._slots_lock:
            self._slots.pop(key, None)

    def update_config(self, config: OperatorConfig) -> None:
        """Replace configuration; intervals change from the next tick."""
        self.config = config

    def __len__(self) -> int:
        with self._slots_lock:
            return len(self._slots)
