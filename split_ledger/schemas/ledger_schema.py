"""
Immutable records consumed and produced by the balance engine.

All amounts are integer minor units in a single currency per computation.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class SplitPolicy(str, Enum):
    equal = "equal"
    exact = "exact"
    percentage = "percentage"
    shares = "shares"


class RemainderRule(str, Enum):
    # one extra minor unit to each of the first N participants
    spread_first = "spread_first"
    # the last participant takes whatever rounding leaves over
    last_absorbs = "last_absorbs"


class Split(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    amount: int


class SplitParticipant(BaseModel):
    """
    One participant of an allocation.

    `value` is interpreted per policy: the exact amount in minor units, the
    percentage, or the share weight. It is ignored for equal splits.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    value: Optional[Decimal] = None


class ExpenseRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    group_id: str
    total_amount: int
    currency: str
    payer_id: str
    split_policy: SplitPolicy = SplitPolicy.equal
    splits: Tuple[Split, ...] = ()


class SettlementRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    group_id: str
    from_user_id: str
    to_user_id: str
    amount: int
    currency: str


class PairwiseDebt(BaseModel):
    """A directed amount owed, always debtor -> creditor."""
    model_config = ConfigDict(frozen=True)

    from_user_id: str
    to_user_id: str
    amount: int
    currency: str


class SuggestedPayment(PairwiseDebt):
    """A payment from the minimal settle-up plan."""
