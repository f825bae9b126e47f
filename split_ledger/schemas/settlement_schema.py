from pydantic import BaseModel, Field, ConfigDict, model_validator
from datetime import datetime
from decimal import Decimal


class SettlementBase(BaseModel):
    from_user_id: str
    to_user_id: str
    amount: Decimal = Field(..., gt=0)


class SettlementCreate(SettlementBase):
    method: str = Field("cash", max_length=30)

    @model_validator(mode="after")
    def check_distinct_users(self):
        if self.from_user_id == self.to_user_id:
            raise ValueError("A settlement needs two different users")
        return self


class SettlementOut(SettlementBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    group_id: str
    currency: str
    method: str
    created_by: str
    settled_at: datetime


class PaymentOut(BaseModel):
    """A debt or suggested payment, debtor -> creditor, in major units"""
    from_user_id: str
    to_user_id: str
    amount: Decimal
    currency: str
