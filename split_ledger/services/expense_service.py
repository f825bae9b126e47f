import logging
from sqlalchemy.orm import Session
from fastapi import HTTPException
from typing import List, Optional
from split_ledger.models.expenses import Expense, ExpenseSplit
from split_ledger.models.groups import Group
from split_ledger.schemas.expense_schema import (
    ExpenseCreate, ExpenseUpdate, ExpenseOut, ExpenseSplitOut, ExpenseParticipantIn
)
from split_ledger.schemas.ledger_schema import (
    ExpenseRecord, RemainderRule, Split, SplitParticipant, SplitPolicy
)
from split_ledger.services.group_service import require_members
from split_ledger.utils.money import from_minor_units, to_minor_units
from split_ledger.utils.split_allocation import allocate

logger = logging.getLogger(__name__)


def _to_split_participants(
    participants: List[ExpenseParticipantIn],
    policy: SplitPolicy,
    currency: str
) -> List[SplitParticipant]:
    """Exact amounts arrive in major units; everything else is passed through"""
    result = []
    for participant in participants:
        value = participant.value
        if policy == SplitPolicy.exact and value is not None:
            value = to_minor_units(value, currency)
        result.append(SplitParticipant(user_id=participant.user_id, value=value))
    return result


def allocate_splits(
    amount: int,
    policy: SplitPolicy,
    participants: List[ExpenseParticipantIn],
    currency: str,
    remainder_rule: Optional[RemainderRule] = None
) -> List[Split]:
    """Run the allocation engine on API input"""
    return allocate(
        amount,
        policy,
        _to_split_participants(participants, policy, currency),
        remainder_rule=remainder_rule
    )


def _store_splits(expense: Expense, splits: List[Split]) -> None:
    expense.splits = [
        ExpenseSplit(user_id=split.user_id, amount=split.amount, position=position)
        for position, split in enumerate(splits)
    ]


def create_expense(db: Session, group: Group, expense_data: ExpenseCreate, user_id: str) -> Expense:
    """Create a new expense and store the allocated splits"""
    currency = (expense_data.currency or group.currency).upper()
    if currency != group.currency:
        raise HTTPException(
            status_code=400,
            detail=f"Expense currency {currency} differs from group currency {group.currency}; "
                   f"convert the amount before recording it"
        )

    paid_by = expense_data.paid_by or user_id
    require_members(db, group.id, [paid_by] + [p.user_id for p in expense_data.participants])

    amount = to_minor_units(expense_data.amount, currency)
    splits = allocate_splits(
        amount, expense_data.split_policy, expense_data.participants, currency, expense_data.remainder_rule
    )

    expense = Expense(
        group_id=group.id,
        description=expense_data.description,
        amount=amount,
        currency=currency,
        paid_by=paid_by,
        split_policy=expense_data.split_policy.value,
        remainder_rule=expense_data.remainder_rule.value if expense_data.remainder_rule else None,
        category=expense_data.category.value,
        notes=expense_data.notes,
        created_by=user_id
    )
    if expense_data.date:
        expense.date = expense_data.date
    _store_splits(expense, splits)
    db.add(expense)
    db.commit()
    db.refresh(expense)

    logger.info(f"Created expense {expense.id} in group {group.id}: {amount} {currency} paid by {paid_by}")
    return expense


def get_expense(db: Session, expense_id: str) -> Optional[Expense]:
    """Get an expense by ID"""
    return db.query(Expense).filter(Expense.id == expense_id).first()


def get_group_expenses(db: Session, group_id: str) -> List[Expense]:
    """Get all expenses for a group"""
    return db.query(Expense).filter(Expense.group_id == group_id)\
        .order_by(Expense.created_at, Expense.id).all()


def get_group_expense(db: Session, group_id: str, expense_id: str) -> Expense:
    """Get an expense of a group or fail with 404"""
    expense = get_expense(db, expense_id)
    if not expense or expense.group_id != group_id:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


def update_expense(db: Session, expense: Expense, update_data: ExpenseUpdate, user_id: str) -> Expense:
    """
    Edit an expense (payer or creator only).

    Changing the amount, policy, participants or remainder rule re-runs the
    allocation so the stored splits always add up to the stored amount. The
    payer does not affect the splits and is swapped in place.
    """
    if user_id not in (expense.paid_by, expense.created_by):
        raise HTTPException(status_code=403, detail="Only the payer or creator can update this expense")

    changes = update_data.model_dump(exclude_unset=True)
    if "description" in changes:
        expense.description = update_data.description
    if "notes" in changes:
        expense.notes = update_data.notes
    if update_data.category:
        expense.category = update_data.category.value
    if update_data.date:
        expense.date = update_data.date

    if update_data.paid_by and update_data.paid_by != expense.paid_by:
        require_members(db, expense.group_id, [update_data.paid_by])
        expense.paid_by = update_data.paid_by

    reallocate = {"amount", "split_policy", "participants", "remainder_rule"} & changes.keys()
    if reallocate:
        policy = update_data.split_policy or SplitPolicy(expense.split_policy)
        remainder_rule = update_data.remainder_rule or (
            RemainderRule(expense.remainder_rule) if expense.remainder_rule else None
        )
        if update_data.participants is not None:
            participants = update_data.participants
        elif policy == SplitPolicy.equal:
            participants = [ExpenseParticipantIn(user_id=split.user_id) for split in expense.splits]
        elif policy == SplitPolicy(expense.split_policy) == SplitPolicy.exact and "amount" not in changes:
            # the stored splits are already the exact amounts
            participants = [
                ExpenseParticipantIn(user_id=split.user_id, value=from_minor_units(split.amount, expense.currency))
                for split in expense.splits
            ]
        else:
            raise HTTPException(
                status_code=400,
                detail=f"Participants with values are required to re-split a {policy.value} expense"
            )

        require_members(db, expense.group_id, [p.user_id for p in participants])

        amount = to_minor_units(update_data.amount, expense.currency) if update_data.amount else expense.amount
        splits = allocate_splits(amount, policy, participants, expense.currency, remainder_rule)

        expense.amount = amount
        expense.split_policy = policy.value
        expense.remainder_rule = remainder_rule.value if remainder_rule else None
        _store_splits(expense, splits)

    db.commit()
    db.refresh(expense)
    logger.info(f"Updated expense {expense.id} ({', '.join(sorted(changes)) or 'no fields'})")
    return expense


def delete_expense(db: Session, expense: Expense, user_id: str) -> None:
    """Delete an expense (payer or creator only)"""
    if user_id not in (expense.paid_by, expense.created_by):
        raise HTTPException(status_code=403, detail="Only the payer or creator can delete this expense")

    db.delete(expense)
    db.commit()
    logger.info(f"Deleted expense {expense.id} from group {expense.group_id}")


def to_expense_record(expense: Expense) -> ExpenseRecord:
    """Convert a stored expense into the engine's immutable record"""
    return ExpenseRecord(
        id=expense.id,
        group_id=expense.group_id,
        total_amount=expense.amount,
        currency=expense.currency,
        payer_id=expense.paid_by,
        split_policy=SplitPolicy(expense.split_policy),
        splits=tuple(Split(user_id=split.user_id, amount=split.amount) for split in expense.splits)
    )


def serialize_expense(expense: Expense) -> ExpenseOut:
    """Build the API view of an expense, amounts in major units"""
    return ExpenseOut(
        id=expense.id,
        group_id=expense.group_id,
        description=expense.description,
        amount=from_minor_units(expense.amount, expense.currency),
        notes=expense.notes,
        currency=expense.currency,
        paid_by=expense.paid_by,
        split_policy=SplitPolicy(expense.split_policy),
        remainder_rule=RemainderRule(expense.remainder_rule) if expense.remainder_rule else None,
        category=expense.category,
        date=expense.date,
        created_by=expense.created_by,
        created_at=expense.created_at,
        updated_at=expense.updated_at,
        splits=[
            ExpenseSplitOut(user_id=split.user_id, amount=from_minor_units(split.amount, expense.currency))
            for split in expense.splits
        ]
    )
