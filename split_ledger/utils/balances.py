"""
Balance Aggregation Module

Folds a group's full expense and settlement history into one signed net
balance per user:

- Positive balance: user is owed money (creditor)
- Negative balance: user owes money (debtor)

The fold is a plain sum of adjustments, so the result does not depend on the
order in which records are processed. Amounts are integer minor units, which
makes the zero-sum postcondition exact rather than tolerance based.

Example Usage:
    from split_ledger.utils.balances import aggregate

    balances = aggregate(expenses, settlements)
    # {"A": 2000, "B": -2000}
"""

import logging
from typing import Dict, Iterable, Optional, Sequence

from split_ledger.core.config import settings
from split_ledger.schemas.ledger_schema import ExpenseRecord, SettlementRecord
from split_ledger.utils.errors import InvariantViolation, ValidationError

logger = logging.getLogger(__name__)


def check_zero_sum(balances: Dict[str, int]) -> None:
    """
    Assert that the balances of a group sum to exactly zero.

    Raises:
        InvariantViolation: If money was created or destroyed
    """
    total = sum(balances.values())
    if total != 0:
        raise InvariantViolation(
            f"Balances not zero-sum: total={total}. "
            f"This indicates unbalanced expense data."
        )


def validate_settlement(settlement: SettlementRecord) -> None:
    """Reject settlements that pay oneself or move a non-positive amount."""
    if settlement.from_user_id == settlement.to_user_id:
        raise ValidationError(
            f"Settlement {settlement.id} pays {settlement.from_user_id} to themselves"
        )
    if settlement.amount <= 0:
        raise ValidationError(
            f"Settlement {settlement.id} amount must be positive, got {settlement.amount}",
            expected="> 0",
            actual=settlement.amount
        )


def check_expense(expense: ExpenseRecord) -> None:
    """
    Verify a stored expense still satisfies sum(splits) == total.

    A mismatch cannot come from user input (allocation guarantees it), so it is
    reported as corrupted history rather than as a validation problem.
    """
    split_sum = sum(split.amount for split in expense.splits)
    if split_sum != expense.total_amount:
        raise InvariantViolation(
            f"Expense {expense.id} splits sum to {split_sum}, expected {expense.total_amount}"
        )


def check_snapshot(
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord]
) -> Optional[str]:
    """
    Validate the shape of a history snapshot and return its single currency.

    Raises:
        ValidationError: If the snapshot is too large, mixes currencies or holds an invalid settlement
        InvariantViolation: If a stored expense does not add up
    """
    record_count = len(expenses) + len(settlements)
    if record_count > settings.max_records:
        raise ValidationError(
            f"Snapshot too large: {record_count} records (limit {settings.max_records})",
            expected=settings.max_records,
            actual=record_count
        )

    currencies = {expense.currency for expense in expenses} | {s.currency for s in settlements}
    if len(currencies) > 1:
        raise ValidationError(
            f"Balances are computed in one currency, got {sorted(currencies)}. "
            f"Convert amounts before aggregating."
        )

    for expense in expenses:
        check_expense(expense)
    for settlement in settlements:
        validate_settlement(settlement)

    return currencies.pop() if currencies else None


def aggregate(
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord],
    members: Optional[Iterable[str]] = None
) -> Dict[str, int]:
    """
    Calculate the net balance of every user from a group's history.

    Net balance = total_paid - total_share + settlements_paid - settlements_received

    Args:
        expenses: Every expense of the group, with its stored splits
        settlements: Every settlement of the group
        members: Optional user ids reported with a zero balance even when idle

    Returns:
        Dictionary mapping user_id -> net balance in minor units

    Raises:
        ValidationError: If the snapshot is malformed (see check_snapshot)
        InvariantViolation: If the resulting balances do not sum to zero

    Example:
        >>> aggregate([expense_a_paid_100_split_a_b], [])
        {'A': 5000, 'B': -5000}
    """
    check_snapshot(expenses, settlements)

    balances: Dict[str, int] = {}
    for user_id in members or ():
        balances[user_id] = 0

    for expense in expenses:
        balances[expense.payer_id] = balances.get(expense.payer_id, 0) + expense.total_amount
        for split in expense.splits:
            balances[split.user_id] = balances.get(split.user_id, 0) - split.amount

    for settlement in settlements:
        # paying reduces what the sender owes, receiving reduces what the recipient is owed
        balances[settlement.from_user_id] = balances.get(settlement.from_user_id, 0) + settlement.amount
        balances[settlement.to_user_id] = balances.get(settlement.to_user_id, 0) - settlement.amount

    check_zero_sum(balances)

    logger.debug(
        f"Aggregated {len(expenses)} expenses and {len(settlements)} settlements "
        f"into {len(balances)} balances"
    )
    return balances
