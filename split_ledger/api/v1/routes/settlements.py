from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from split_ledger.api.deps import get_current_user_id
from split_ledger.db.database import get_db
from split_ledger.services.settlement_service import (
    create_settlement, get_group_settlements, serialize_settlement
)
from split_ledger.services.balance_service import get_group_balances, get_suggested_payments
from split_ledger.services.group_service import get_member_group
from split_ledger.schemas.settlement_schema import SettlementCreate, SettlementOut, PaymentOut
from split_ledger.schemas.balance_schema import GroupBalances

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.post("/groups/{group_id}", response_model=SettlementOut)
def create_new_settlement(
    group_id: str,
    settlement_data: SettlementCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Record a manual settlement"""
    group = get_member_group(db, group_id, user_id)
    return serialize_settlement(create_settlement(db, group, settlement_data, user_id))


@router.get("/groups/{group_id}", response_model=List[SettlementOut])
def get_group_settlements_list(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all settlements for a group"""
    group = get_member_group(db, group_id, user_id)
    return [serialize_settlement(settlement) for settlement in get_group_settlements(db, group.id)]


@router.get("/groups/{group_id}/balances", response_model=GroupBalances)
def get_group_balance_summary(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get net balances and itemized debts for all group members"""
    group = get_member_group(db, group_id, user_id)
    return get_group_balances(db, group)


@router.get("/groups/{group_id}/optimize", response_model=List[PaymentOut])
def get_optimized_settlements(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get the minimal set of suggested payments"""
    group = get_member_group(db, group_id, user_id)
    return get_suggested_payments(db, group)
