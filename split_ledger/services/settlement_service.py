import logging
from sqlalchemy.orm import Session
from fastapi import HTTPException
from typing import List, Optional
from split_ledger.models.groups import Group
from split_ledger.models.settlements import Settlement
from split_ledger.schemas.ledger_schema import SettlementRecord
from split_ledger.schemas.settlement_schema import SettlementCreate, SettlementOut
from split_ledger.services.group_service import require_members
from split_ledger.utils.money import from_minor_units, to_minor_units

logger = logging.getLogger(__name__)


def create_settlement(db: Session, group: Group, settlement_data: SettlementCreate, user_id: str) -> Settlement:
    """Record a cash settlement between two members"""
    # Users can only create settlements they're involved in
    if user_id not in [settlement_data.from_user_id, settlement_data.to_user_id]:
        raise HTTPException(status_code=403, detail="You can only create settlements you're involved in")

    require_members(db, group.id, [settlement_data.from_user_id, settlement_data.to_user_id])

    amount = to_minor_units(settlement_data.amount, group.currency)
    if amount <= 0:
        raise HTTPException(status_code=400, detail=f"Settlement amount rounds to zero in {group.currency}")

    settlement = Settlement(
        group_id=group.id,
        from_user_id=settlement_data.from_user_id,
        to_user_id=settlement_data.to_user_id,
        amount=amount,
        currency=group.currency,
        method=settlement_data.method,
        created_by=user_id
    )
    db.add(settlement)
    db.commit()
    db.refresh(settlement)

    logger.info(
        f"Recorded settlement {settlement.id} in group {group.id}: "
        f"{settlement.from_user_id} -> {settlement.to_user_id} {amount} {group.currency}"
    )
    return settlement


def get_group_settlements(db: Session, group_id: str) -> List[Settlement]:
    """Get all settlements for a group"""
    return db.query(Settlement).filter(Settlement.group_id == group_id)\
        .order_by(Settlement.settled_at, Settlement.id).all()


def get_settlement(db: Session, settlement_id: str) -> Optional[Settlement]:
    """Get a settlement by ID"""
    return db.query(Settlement).filter(Settlement.id == settlement_id).first()


def to_settlement_record(settlement: Settlement) -> SettlementRecord:
    return SettlementRecord(
        id=settlement.id,
        group_id=settlement.group_id,
        from_user_id=settlement.from_user_id,
        to_user_id=settlement.to_user_id,
        amount=settlement.amount,
        currency=settlement.currency
    )


def serialize_settlement(settlement: Settlement) -> SettlementOut:
    return SettlementOut(
        id=settlement.id,
        group_id=settlement.group_id,
        from_user_id=settlement.from_user_id,
        to_user_id=settlement.to_user_id,
        amount=from_minor_units(settlement.amount, settlement.currency),
        currency=settlement.currency,
        method=settlement.method,
        created_by=settlement.created_by,
        settled_at=settlement.settled_at
    )
