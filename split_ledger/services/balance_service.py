"""
Balance views of a group.

Every call loads the group's complete history in one session and recomputes
from scratch; nothing derived is stored, so there is no cache to invalidate
when an expense or settlement is written.
"""
import logging
from sqlalchemy.orm import Session
from typing import List, Tuple
from split_ledger.models.groups import Group
from split_ledger.schemas.balance_schema import GroupBalances, MemberBalance
from split_ledger.schemas.ledger_schema import ExpenseRecord, PairwiseDebt, SettlementRecord
from split_ledger.schemas.settlement_schema import PaymentOut
from split_ledger.services.expense_service import get_group_expenses, to_expense_record
from split_ledger.services.group_service import get_group_members
from split_ledger.services.settlement_service import get_group_settlements, to_settlement_record
from split_ledger.utils.balances import aggregate
from split_ledger.utils.min_cash_flow import simplify
from split_ledger.utils.money import from_minor_units
from split_ledger.utils.pairwise import resolve

logger = logging.getLogger(__name__)


def load_group_snapshot(db: Session, group_id: str) -> Tuple[List[ExpenseRecord], List[SettlementRecord]]:
    """
    Read every expense and settlement of a group as engine records.

    Both queries run inside the session's current transaction, so a balance
    computation never sees half of a concurrent write.
    """
    expenses = [to_expense_record(expense) for expense in get_group_expenses(db, group_id)]
    settlements = [to_settlement_record(settlement) for settlement in get_group_settlements(db, group_id)]
    return expenses, settlements


def _to_payment_out(debt: PairwiseDebt) -> PaymentOut:
    return PaymentOut(
        from_user_id=debt.from_user_id,
        to_user_id=debt.to_user_id,
        amount=from_minor_units(debt.amount, debt.currency),
        currency=debt.currency
    )


def get_group_balances(db: Session, group: Group) -> GroupBalances:
    """Net balance per member plus the itemized pairwise debts"""
    expenses, settlements = load_group_snapshot(db, group.id)
    members = [member.user_id for member in get_group_members(db, group.id)]

    balances = aggregate(expenses, settlements, members=members)
    debts = resolve(expenses, settlements)

    logger.debug(f"Computed balances for group {group.id}: {balances}")
    return GroupBalances(
        group_id=group.id,
        currency=group.currency,
        net_balances=[
            MemberBalance(user_id=user_id, amount=from_minor_units(amount, group.currency))
            for user_id, amount in sorted(balances.items())
        ],
        debts=[_to_payment_out(debt) for debt in debts]
    )


def get_suggested_payments(db: Session, group: Group) -> List[PaymentOut]:
    """Minimal set of payments that would settle the whole group"""
    expenses, settlements = load_group_snapshot(db, group.id)
    balances = aggregate(expenses, settlements)
    return [_to_payment_out(payment) for payment in simplify(balances, group.currency)]
