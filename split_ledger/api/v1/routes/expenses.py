from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from split_ledger.api.deps import get_current_user_id
from split_ledger.db.database import get_db
from split_ledger.services.expense_service import (
    create_expense, get_group_expense, get_group_expenses, update_expense, delete_expense,
    serialize_expense
)
from split_ledger.services.group_service import get_member_group
from split_ledger.schemas.expense_schema import ExpenseCreate, ExpenseUpdate, ExpenseOut

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.post("/groups/{group_id}", response_model=ExpenseOut)
def create_new_expense(
    group_id: str,
    expense_data: ExpenseCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new expense, splitting it by the requested policy"""
    group = get_member_group(db, group_id, user_id)
    return serialize_expense(create_expense(db, group, expense_data, user_id))


@router.get("/groups/{group_id}", response_model=List[ExpenseOut])
def get_group_expenses_list(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all expenses for a group, with their splits"""
    group = get_member_group(db, group_id, user_id)
    return [serialize_expense(expense) for expense in get_group_expenses(db, group.id)]


@router.get("/groups/{group_id}/{expense_id}", response_model=ExpenseOut)
def get_expense_details(
    group_id: str,
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get one expense with its splits"""
    group = get_member_group(db, group_id, user_id)
    return serialize_expense(get_group_expense(db, group.id, expense_id))


@router.put("/groups/{group_id}/{expense_id}", response_model=ExpenseOut)
def update_existing_expense(
    group_id: str,
    expense_id: str,
    update_data: ExpenseUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Edit an expense"""
    group = get_member_group(db, group_id, user_id)
    expense = get_group_expense(db, group.id, expense_id)
    return serialize_expense(update_expense(db, expense, update_data, user_id))


@router.delete("/groups/{group_id}/{expense_id}")
def delete_existing_expense(
    group_id: str,
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete an expense"""
    group = get_member_group(db, group_id, user_id)
    delete_expense(db, get_group_expense(db, group.id, expense_id), user_id)
    return {"message": "Expense deleted successfully"}
