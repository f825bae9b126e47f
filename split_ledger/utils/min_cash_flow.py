"""
Min-Cash-Flow Algorithm Module

This module reduces a group's net balances to a short list of suggested
payments that settle everyone.

The algorithm works by:
1. Separating users into creditors (positive balance) and debtors (negative balance)
2. Repeatedly matching the largest creditor with the largest debtor
3. Paying the smaller of the two amounts and keeping whatever is left in play

Ties between equal amounts are broken by ascending user id, so the same
balances always produce the same payments.

The greedy matching is not guaranteed to find the fewest possible payments
(that problem is NP-hard in general); it never needs more than
len(non-zero balances) - 1 payments and is accepted for that reason.

Time Complexity: O(n log n) with two heaps
Space Complexity: O(n)

Example Usage:
    from split_ledger.utils.balances import aggregate
    from split_ledger.utils.min_cash_flow import simplify

    balances = aggregate(expenses, settlements)
    payments = simplify(balances, "USD")

    # Result: [SuggestedPayment(from_user_id="C", to_user_id="A", amount=7000, currency="USD"), ...]
"""

import heapq
import logging
from typing import Dict, List, Optional, Tuple

from split_ledger.core.config import settings
from split_ledger.schemas.ledger_schema import SuggestedPayment
from split_ledger.utils.balances import check_zero_sum

logger = logging.getLogger(__name__)

# (-amount, user_id): heapq is a min-heap, negating gives largest first
HeapEntry = Tuple[int, str]


def split_creditors_debtors(balances: Dict[str, int]) -> Tuple[List[HeapEntry], List[HeapEntry]]:
    """
    Build the creditor and debtor heaps from signed balances.

    Both heaps hold absolute amounts; zero balances are left out.
    """
    creditors = [(-balance, user_id) for user_id, balance in balances.items() if balance > 0]
    debtors = [(balance, user_id) for user_id, balance in balances.items() if balance < 0]
    heapq.heapify(creditors)
    heapq.heapify(debtors)
    return creditors, debtors


def simplify(
    balances: Dict[str, int],
    currency: str,
    max_iterations: Optional[int] = None
) -> List[SuggestedPayment]:
    """
    Minimize the number of payments needed to settle all balances.

    Edge Cases Handled:
    - Empty balances or a single settled user: returns []
    - All balances zero: returns []
    - Sum of balances != 0: raises InvariantViolation
    - max_iterations exceeded: raises RuntimeError

    Args:
        balances: Dictionary mapping user_id -> net balance in minor units
        currency: Currency of the balances, copied onto every payment
        max_iterations: Upper bound on matching steps (default: settings.max_iterations)

    Returns:
        Suggested payments in the order they were matched

    Raises:
        InvariantViolation: If balances don't sum to zero
        RuntimeError: If max_iterations exceeded

    Example:
        >>> simplify({"A": 8000, "B": -1000, "C": -7000}, "USD")
        [SuggestedPayment(from_user_id='C', to_user_id='A', amount=7000, currency='USD'),
         SuggestedPayment(from_user_id='B', to_user_id='A', amount=1000, currency='USD')]
    """
    check_zero_sum(balances)

    if len(balances) < 2:
        return []

    if max_iterations is None:
        max_iterations = settings.max_iterations

    creditors, debtors = split_creditors_debtors(balances)
    payments: List[SuggestedPayment] = []
    iterations = 0

    while creditors and debtors:
        iterations += 1

        # Safety check: prevent runaway loops on pathological input
        if iterations > max_iterations:
            raise RuntimeError(
                f"Settlement loop exceeded max_iterations ({max_iterations}). "
                f"This may indicate malformed input."
            )

        negative_credit, creditor_id = heapq.heappop(creditors)
        negative_debt, debtor_id = heapq.heappop(debtors)
        credit_amount = -negative_credit
        debt_amount = -negative_debt

        amount = min(credit_amount, debt_amount)
        payments.append(SuggestedPayment(
            from_user_id=debtor_id,
            to_user_id=creditor_id,
            amount=amount,
            currency=currency
        ))
        logger.debug(f"Step {iterations}: {debtor_id} pays {creditor_id} {amount}")

        if credit_amount > amount:
            heapq.heappush(creditors, (-(credit_amount - amount), creditor_id))
        if debt_amount > amount:
            heapq.heappush(debtors, (-(debt_amount - amount), debtor_id))

    return payments
