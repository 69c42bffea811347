from typing import Dict

from pydantic import BaseModel, Field, model_validator


class LedgerEntry(BaseModel):
    timestamp: int
    delta: int
    reason: str
    balance_before: int = Field(ge=0)
    balance_after: int = Field(ge=0)

    @model_validator(mode="after")
    def _balances_add_up(self):
        if self.balance_after != self.balance_before + self.delta:
            raise ValueError(
                f"ledger entry does not add up: {self.balance_before} + {self.delta} != {self.balance_after}"
            )
        return self


class TransactionResult(BaseModel):
    success: bool
    new_balance: int
    delta: int = 0
    reason: str = ""


class PurchaseValidation(BaseModel):
    can_afford: bool
    current_balance: int
    cost: int
    shortfall: int = 0


class EconomyStatistics(BaseModel):
    current_balance: int
    total_income: int = 0
    total_expenses: int = 0
    net_profit: int = 0
    transaction_count: int = 0
    average_transaction_size: float = 0.0
    biggest_income: int = 0
    biggest_expense: int = 0
    income_by_category: Dict[str, int] = Field(default_factory=dict)
    expenses_by_category: Dict[str, int] = Field(default_factory=dict)
