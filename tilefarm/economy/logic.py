import logging
from typing import Dict, List, Optional, Sequence

from ..common.clock import Clock, now_ms
from ..common.config_manager import ConfigManager
from ..events.bus import EventBus
from ..events.models import CoinsChanged, PurchaseAttempted
from .models import EconomyStatistics, LedgerEntry, PurchaseValidation, TransactionResult

logger = logging.getLogger(__name__)


class Economy:
    """
    Coin ledger

    The balance only moves through spend() and earn(); each successful call
    appends one LedgerEntry and publishes economy:coins-changed. The balance
    always equals the last entry's balance_after, or the seed when the
    history is empty. History keeps the newest ``ledger_history_limit``
    entries.
    """

    def __init__(self, bus: EventBus, config: Optional[ConfigManager] = None, clock: Optional[Clock] = None):
        self.bus = bus
        self.config = config or ConfigManager()
        self.clock = clock or now_ms
        self.starting_balance = self.config.starting_coins
        self.history_limit = self.config.ledger_history_limit
        self.seed = self.starting_balance
        self.balance = self.seed
        self.history: List[LedgerEntry] = []

    # ========== transactions ==========

    def _apply(self, delta: int, reason: str) -> TransactionResult:
        before = self.balance
        after = before + delta
        self.history.append(LedgerEntry(
            timestamp=self.clock(), delta=delta, reason=reason,
            balance_before=before, balance_after=after,
        ))
        if len(self.history) > self.history_limit:
            del self.history[:len(self.history) - self.history_limit]
        self.balance = after
        self.bus.publish(CoinsChanged(
            timestamp=self.clock(), old_amount=before, new_amount=after, delta=delta, reason=reason,
        ))
        return TransactionResult(success=True, new_balance=after, delta=delta, reason=reason)

    def spend(self, amount: int, reason: str = "coins spent") -> TransactionResult:
        if amount <= 0:
            return TransactionResult(success=False, new_balance=self.balance, reason="amount must be positive")
        if amount > self.balance:
            return TransactionResult(
                success=False, new_balance=self.balance,
                reason=f"insufficient funds: need {amount}, have {self.balance}",
            )
        return self._apply(-amount, reason)

    def earn(self, amount: int, reason: str = "coins earned") -> TransactionResult:
        if amount <= 0:
            return TransactionResult(success=False, new_balance=self.balance, reason="amount must be positive")
        return self._apply(amount, reason)

    def can_afford(self, cost: int) -> PurchaseValidation:
        return PurchaseValidation(
            can_afford=self.balance >= cost,
            current_balance=self.balance,
            cost=cost,
            shortfall=max(0, cost - self.balance),
        )

    def attempt_purchase(self, item: str, cost: int) -> TransactionResult:
        validation = self.can_afford(cost)
        self.bus.publish(PurchaseAttempted(
            timestamp=self.clock(), item=item, cost=cost, success=validation.can_afford,
        ))
        if not validation.can_afford:
            return TransactionResult(
                success=False, new_balance=self.balance,
                reason=f"cannot afford {item}: need {cost}, have {self.balance} (short {validation.shortfall})",
            )
        return self.spend(cost, f"purchased {item}")

    def process_sale(self, item: str, price: int) -> TransactionResult:
        return self.earn(price, f"sold {item}")

    # ========== lifecycle ==========

    def restore(self, balance: int, history: Optional[Sequence[LedgerEntry]] = None):
        """
        Load path: replace balance and history without publishing.

        A history that is not one unbroken chain ending at ``balance`` is
        dropped and the balance becomes the new seed.

        Args:
            balance: the balance to restore
            history: saved ledger entries, oldest first

        Raises:
            ValueError: balance is negative
        """
        if balance < 0:
            raise ValueError(f"balance must be non-negative, got {balance}")
        entries = list(history or [])[-self.history_limit:]
        if entries and entries[-1].balance_after != balance:
            logger.warning(f"ledger history ends at {entries[-1].balance_after}, not {balance}; discarding it")
            entries = []
        for prev, entry in zip(entries, entries[1:]):
            if entry.balance_before != prev.balance_after:
                logger.warning(
                    f"ledger history breaks at {entry.timestamp}: {prev.balance_after} then {entry.balance_before}; "
                    f"discarding it"
                )
                entries = []
                break
        self.history = entries
        self.seed = entries[0].balance_before if entries else balance
        self.balance = balance

    def reset(self):
        self.seed = self.starting_balance
        self.balance = self.seed
        self.history = []

    # ========== statistics ==========

    def total_income(self) -> int:
        return sum(e.delta for e in self.history if e.delta > 0)

    def total_expenses(self) -> int:
        return -sum(e.delta for e in self.history if e.delta < 0)

    def income_by_category(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for e in self.history:
            if e.delta > 0:
                out[e.reason] = out.get(e.reason, 0) + e.delta
        return out

    def expenses_by_category(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for e in self.history:
            if e.delta < 0:
                out[e.reason] = out.get(e.reason, 0) - e.delta
        return out

    def recent_transactions(self, count: int = 10) -> List[LedgerEntry]:
        if count <= 0:
            return []
        return list(reversed(self.history[-count:]))

    def statistics(self) -> EconomyStatistics:
        income = self.total_income()
        expenses = self.total_expenses()
        sizes = [abs(e.delta) for e in self.history]
        return EconomyStatistics(
            current_balance=self.balance,
            total_income=income,
            total_expenses=expenses,
            net_profit=income - expenses,
            transaction_count=len(self.history),
            average_transaction_size=sum(sizes) / len(sizes) if sizes else 0.0,
            biggest_income=max((e.delta for e in self.history if e.delta > 0), default=0),
            biggest_expense=max((-e.delta for e in self.history if e.delta < 0), default=0),
            income_by_category=self.income_by_category(),
            expenses_by_category=self.expenses_by_category(),
        )
