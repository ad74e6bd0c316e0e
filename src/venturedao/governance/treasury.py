"""
Treasury management for the governance system.

Funds are held in three segregated categories, one per proposal type. Each
category has its own balance and an optional deposit cap; value leaves a
category only through the execution of an approved proposal.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors.exceptions import ErrorCode, ResourceError, ValidationError
from .core import Capability, TreasuryCategory, is_integer_amount
from .environment import Clock, SystemClock
from .journal import ChangeJournal
from .observability import EventType, GovernanceEvents
from .security import AccessGate


@dataclass
class TreasuryBalance:
    """Balance and cap for one treasury category."""

    category: TreasuryCategory
    balance: int = 0
    limit: Optional[int] = None
    total_deposited: int = 0
    total_disbursed: int = 0
    last_updated: Optional[int] = None

    def headroom(self) -> Optional[int]:
        """Remaining deposit capacity, or None when uncapped."""
        if self.limit is None:
            return None
        return max(self.limit - self.balance, 0)

    def add_balance(self, amount: int, timestamp: int) -> None:
        """Add to treasury balance."""
        self.balance += amount
        self.total_deposited += amount
        self.last_updated = timestamp

    def subtract_balance(self, amount: int, timestamp: int) -> bool:
        """Subtract from treasury balance."""
        if self.balance >= amount:
            self.balance -= amount
            self.total_disbursed += amount
            self.last_updated = timestamp
            return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "balance": self.balance,
            "limit": self.limit,
            "total_deposited": self.total_deposited,
            "total_disbursed": self.total_disbursed,
            "last_updated": self.last_updated,
        }


class Treasury:
    """Segregated, capped treasury."""

    def __init__(
        self,
        access_gate: AccessGate,
        events: GovernanceEvents,
        clock: Optional[Clock] = None,
        limits: Optional[Dict[TreasuryCategory, Optional[int]]] = None,
        journal: Optional[ChangeJournal] = None,
    ):
        self.access_gate = access_gate
        self.events = events
        self.clock = clock or SystemClock()
        self.journal = journal or ChangeJournal()

        limits = limits or {}
        self.balances: Dict[TreasuryCategory, TreasuryBalance] = {
            category: TreasuryBalance(category=category, limit=limits.get(category))
            for category in TreasuryCategory
        }

    def _account(self, category: TreasuryCategory) -> TreasuryBalance:
        if not isinstance(category, TreasuryCategory):
            raise ValidationError(
                f"Unknown treasury category: {category!r}",
                error_code=ErrorCode.INVALID_CATEGORY,
                field="category",
                value=category,
            )
        return self.balances[category]

    def deposit(
        self, category: TreasuryCategory, amount: int, depositor: Optional[str] = None
    ) -> int:
        """Deposit into a category; returns the new category balance."""
        account = self._account(category)
        if not is_integer_amount(amount) or amount <= 0:
            raise ValidationError(
                "Deposit must be a positive integer",
                error_code=ErrorCode.INVALID_AMOUNT,
                field="amount",
                value=amount,
                expected="> 0",
            )

        if account.limit is not None and account.balance + amount > account.limit:
            raise ResourceError(
                f"Deposit of {amount} would exceed the {category.value} limit of {account.limit}",
                error_code=ErrorCode.EXCEEDS_LIMIT,
                available=account.headroom(),
                requested=amount,
            )

        self.journal.record(self.balances, category)
        account.add_balance(amount, self.clock.now())
        self.events.emit_event(
            EventType.TREASURY_DEPOSIT,
            principal=depositor,
            metadata={
                "category": category.value,
                "amount": amount,
                "balance": account.balance,
            },
        )
        logger.info(f"Deposited {amount} into {category.value}, balance {account.balance}")
        return account.balance

    def set_limit(self, caller: str, category: TreasuryCategory, limit: Optional[int]) -> None:
        """Set a category's deposit cap; None removes the cap."""
        self.access_gate.require(caller, Capability.ADMIN, "set_treasury_limit")
        account = self._account(category)

        if limit is not None and (not is_integer_amount(limit) or limit < 0):
            raise ValidationError(
                "Treasury limit must be a non-negative integer or None",
                error_code=ErrorCode.INVALID_AMOUNT,
                field="limit",
                value=limit,
            )

        old_limit = account.limit
        self.journal.record(self.balances, category)
        account.limit = limit
        self.events.emit_event(
            EventType.TREASURY_LIMIT_UPDATED,
            principal=caller,
            metadata={"category": category.value, "old_limit": old_limit, "new_limit": limit},
        )
        logger.info(f"Treasury limit for {category.value} set to {limit}")

    def debit(self, category: TreasuryCategory, amount: int) -> int:
        """Remove funds for an executed proposal; returns the new balance."""
        account = self._account(category)
        self.journal.record(self.balances, category)
        if not account.subtract_balance(amount, self.clock.now()):
            raise ResourceError(
                f"{category.value} holds {account.balance}, cannot debit {amount}",
                error_code=ErrorCode.INSUFFICIENT_FUNDS,
                available=account.balance,
                requested=amount,
            )
        return account.balance

    def balance(self, category: TreasuryCategory) -> int:
        return self._account(category).balance

    def limit(self, category: TreasuryCategory) -> Optional[int]:
        return self._account(category).limit

    def total_balance(self) -> int:
        return sum(account.balance for account in self.balances.values())

    def get_treasury_statistics(self) -> Dict[str, Any]:
        """Get treasury statistics."""
        return {
            "total_balance": self.total_balance(),
            "total_deposited": sum(a.total_deposited for a in self.balances.values()),
            "total_disbursed": sum(a.total_disbursed for a in self.balances.values()),
            "categories": {
                category.value: account.to_dict()
                for category, account in self.balances.items()
            },
        }
