import uuid
from sqlalchemy.sql import func
from sqlalchemy import Column, String, DateTime, BigInteger, ForeignKey, CheckConstraint
from split_ledger.db.database import Base


class Settlement(Base):
    __tablename__ = "settlements"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_settlement_amount_positive"),
        CheckConstraint("from_user_id <> to_user_id", name="ck_settlement_distinct_users"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    group_id = Column(String, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    from_user_id = Column(String, nullable=False, index=True)  # Reference to user service
    to_user_id = Column(String, nullable=False, index=True)  # Reference to user service
    amount = Column(BigInteger, nullable=False)  # Minor units
    currency = Column(String(3), nullable=False)
    method = Column(String(30), nullable=False, default="cash")
    created_by = Column(String, nullable=False)
    settled_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
