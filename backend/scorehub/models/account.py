"""Account ledger models: every coin or point movement leaves an immutable record."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TransactionType(str, Enum):
    BET_PLACED = "BET_PLACED"
    BET_WON = "BET_WON"
    BET_REFUND = "BET_REFUND"


class AccountTransactionInDB(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    type: TransactionType
    amount: float  # positive = credit, negative = debit
    balance_after: float
    reference_type: Optional[str] = None  # "bet" | "bet_batch"
    reference_id: Optional[str] = None
    description: str
    created_at: datetime


class PointsTransactionInDB(BaseModel):
    user_id: str
    points: int
    reference_type: Optional[str] = None  # "prediction"
    reference_id: Optional[str] = None
    description: str
    created_at: datetime
