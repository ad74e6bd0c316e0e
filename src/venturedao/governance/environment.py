"""
External collaborators of the governance engine.

The engine reads time from a :class:`Clock` and moves value out through a
:class:`ValueTransfer`. Production code plugs in real implementations; tests
use :class:`ManualClock` and :class:`InMemoryLedger`.
"""

import logging

logger = logging.getLogger(__name__)
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from ..errors.exceptions import TransferError, VentureDAOError


class Clock(ABC):
    """Monotonic source of integer seconds."""

    @abstractmethod
    def now(self) -> int:
        """Return the current time in whole seconds."""
        pass


class SystemClock(Clock):
    """Wall clock, floored to whole seconds and never moving backwards."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock(Clock):
    """Clock advanced explicitly by the caller."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock cannot start before zero")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move the clock forward and return the new time."""
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        """Jump to an absolute time no earlier than the current one."""
        if timestamp < self._now:
            raise ValueError("Clock cannot move backwards")
        self._now = timestamp


class ValueTransfer(ABC):
    """Moves value from the engine to an external destination."""

    @abstractmethod
    def transfer(self, destination: str, amount: int) -> None:
        """Send ``amount`` to ``destination``; raise on failure."""
        pass


class InMemoryLedger(ValueTransfer):
    """Records outgoing transfers as balances keyed by destination.

    ``fail_with`` makes the next transfers raise the given exception and
    ``on_transfer`` runs before the destination is credited, which lets a
    recipient call back into the engine while a transfer is in flight.
    """

    def __init__(self):
        self.balances: Dict[str, int] = {}
        self.transfers: List[Tuple[str, int]] = []
        self.fail_with: Optional[Exception] = None
        self.on_transfer: Optional[Callable[[str, int], None]] = None

    def transfer(self, destination: str, amount: int) -> None:
        if self.fail_with is not None:
            raise self.fail_with

        if self.on_transfer is not None:
            self.on_transfer(destination, amount)

        if amount < 0:
            raise TransferError(
                f"Cannot transfer negative amount {amount}",
                destination=destination,
                amount=amount,
            )

        self.balances[destination] = self.balances.get(destination, 0) + amount
        self.transfers.append((destination, amount))
        logger.debug(f"Transferred {amount} to {destination}")

    def balance_of(self, destination: str) -> int:
        """Total value received by a destination."""
        return self.balances.get(destination, 0)

    def total_transferred(self) -> int:
        return sum(amount for _, amount in self.transfers)


def send_value(transfer: ValueTransfer, destination: str, amount: int) -> None:
    """Run an outbound transfer, wrapping foreign failures in TransferError."""
    try:
        transfer.transfer(destination, amount)
    except VentureDAOError:
        raise
    except Exception as e:
        raise TransferError(
            f"Transfer of {amount} to {destination} failed: {e}",
            destination=destination,
            amount=amount,
            cause=e,
        ) from e
