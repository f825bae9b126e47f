from pydantic import BaseModel
from typing import List
from decimal import Decimal
from split_ledger.schemas.settlement_schema import PaymentOut


class MemberBalance(BaseModel):
    user_id: str
    # positive: is owed money, negative: owes money
    amount: Decimal


class GroupBalances(BaseModel):
    group_id: str
    currency: str
    net_balances: List[MemberBalance]
    debts: List[PaymentOut]
