from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum
from split_ledger.schemas.ledger_schema import SplitPolicy, RemainderRule


class ExpenseCategory(str, Enum):
    food = "food"
    transport = "transport"
    accommodation = "accommodation"
    activities = "activities"
    shopping = "shopping"
    utilities = "utilities"
    entertainment = "entertainment"
    health = "health"
    other = "other"


class ExpenseParticipantIn(BaseModel):
    user_id: str
    # exact: amount in major units, percentage: percent, shares: weight, equal: unused
    value: Optional[Decimal] = None


class ExpenseBase(BaseModel):
    description: str = Field(..., max_length=200)
    amount: Decimal = Field(..., gt=0)
    notes: Optional[str] = None
    category: ExpenseCategory = ExpenseCategory.other


class ExpenseCreate(ExpenseBase):
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    paid_by: Optional[str] = None
    split_policy: SplitPolicy = SplitPolicy.equal
    participants: List[ExpenseParticipantIn] = Field(..., min_length=1)
    remainder_rule: Optional[RemainderRule] = None
    # when the expense happened, defaults to the time it is recorded
    date: Optional[datetime] = None


class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(None, max_length=200)
    amount: Optional[Decimal] = Field(None, gt=0)
    notes: Optional[str] = None
    category: Optional[ExpenseCategory] = None
    date: Optional[datetime] = None
    paid_by: Optional[str] = None
    split_policy: Optional[SplitPolicy] = None
    participants: Optional[List[ExpenseParticipantIn]] = Field(None, min_length=1)
    remainder_rule: Optional[RemainderRule] = None


class ExpenseSplitOut(BaseModel):
    user_id: str
    amount: Decimal


class ExpenseOut(ExpenseBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    group_id: str
    currency: str
    paid_by: str
    split_policy: SplitPolicy
    remainder_rule: Optional[RemainderRule] = None
    date: datetime
    created_by: str
    created_at: datetime
    updated_at: datetime
    splits: List[ExpenseSplitOut] = []
