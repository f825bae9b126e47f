import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, BigInteger, Integer, Text, ForeignKey
from sqlalchemy.orm import relationship
from split_ledger.db.database import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    group_id = Column(String, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(200), nullable=False)
    amount = Column(BigInteger, nullable=False)  # Minor units
    currency = Column(String(3), nullable=False)
    paid_by = Column(String, nullable=False, index=True)  # Reference to user service
    split_policy = Column(String(20), nullable=False)
    remainder_rule = Column(String(20), nullable=True)  # None: policy default at allocation time
    category = Column(String(30), nullable=False, default="other")
    notes = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    splits = relationship(
        "ExpenseSplit",
        order_by="ExpenseSplit.position",
        cascade="all, delete-orphan",
        lazy="selectin"
    )


class ExpenseSplit(Base):
    __tablename__ = "expense_splits"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    expense_id = Column(String, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)  # Reference to user service
    amount = Column(BigInteger, nullable=False)  # Minor units
    position = Column(Integer, nullable=False)  # Participant order as supplied at allocation
