"""
Pairwise Resolution Module

Builds the itemized "who owes whom" view of a group. Every expense split
that is not the payer's own share puts a debt on the pair
{split user, payer}; every settlement moves the pair the other way. Netting
happens only once all records are accumulated, so the result does not
depend on processing order.

The netted pair graph is then cleared of directed cycles: when A owes B,
B owes C and C owes A, the smallest debt on the cycle is removed from every
edge of it. Edges stay on pairs that actually shared an expense, no amount
grows, and every user's net position is unchanged. The result is checked
against aggregate() so this view can never disagree with the balances.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from split_ledger.schemas.ledger_schema import ExpenseRecord, PairwiseDebt, SettlementRecord
from split_ledger.utils.balances import aggregate
from split_ledger.utils.errors import InvariantViolation

logger = logging.getLogger(__name__)

Pair = Tuple[str, str]


def accumulate_pairs(
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord]
) -> Dict[Pair, int]:
    """
    Sum signed amounts per unordered pair.

    Pairs are keyed (low, high) by user id; a positive value means `low`
    owes `high`, a negative value means `high` owes `low`.
    """
    pairs: Dict[Pair, int] = {}

    def add_debt(debtor: str, creditor: str, amount: int) -> None:
        if debtor < creditor:
            key, signed = (debtor, creditor), amount
        else:
            key, signed = (creditor, debtor), -amount
        pairs[key] = pairs.get(key, 0) + signed

    for expense in expenses:
        for split in expense.splits:
            if split.user_id != expense.payer_id:
                add_debt(split.user_id, expense.payer_id, split.amount)

    for settlement in settlements:
        add_debt(settlement.to_user_id, settlement.from_user_id, settlement.amount)

    return pairs


def _directed_edges(pairs: Dict[Pair, int]) -> Dict[Pair, int]:
    edges: Dict[Pair, int] = {}
    for (low, high), net in pairs.items():
        if net > 0:
            edges[(low, high)] = net
        elif net < 0:
            edges[(high, low)] = -net
    return edges


def _find_cycle(edges: Dict[Pair, int]) -> Optional[List[str]]:
    """Return the nodes of one directed cycle, or None; traversal order is by user id."""
    graph: Dict[str, List[str]] = {}
    for debtor, creditor in sorted(edges):
        graph.setdefault(debtor, []).append(creditor)

    state: Dict[str, int] = {}  # 1 = on the current path, 2 = finished
    for start in sorted(graph):
        if start in state:
            continue
        path = [start]
        state[start] = 1
        stack = [iter(graph.get(start, []))]
        while stack:
            following = next(stack[-1], None)
            if following is None:
                state[path.pop()] = 2
                stack.pop()
                continue
            if state.get(following) == 1:
                return path[path.index(following):]
            if following not in state:
                state[following] = 1
                path.append(following)
                stack.append(iter(graph.get(following, [])))
    return None


def cancel_cycles(edges: Dict[Pair, int]) -> Dict[Pair, int]:
    """
    Remove every directed cycle from a debt graph.

    Each pass drops at least one edge, so this runs at most len(edges) times.
    """
    edges = dict(edges)
    while True:
        cycle = _find_cycle(edges)
        if cycle is None:
            return edges

        cycle_edges = [(cycle[i], cycle[(i + 1) % len(cycle)]) for i in range(len(cycle))]
        smallest = min(edges[edge] for edge in cycle_edges)
        logger.debug(f"Cancelling {smallest} around cycle {cycle}")
        for edge in cycle_edges:
            edges[edge] -= smallest
            if edges[edge] == 0:
                del edges[edge]


def _check_against_balances(edges: Dict[Pair, int], balances: Dict[str, int]) -> None:
    seen = set()
    for debtor, creditor in edges:
        pair = frozenset((debtor, creditor))
        if pair in seen:
            raise InvariantViolation(f"Two debts emitted for the pair {sorted(pair)}")
        seen.add(pair)

    derived: Dict[str, int] = {}
    for (debtor, creditor), amount in edges.items():
        derived[debtor] = derived.get(debtor, 0) - amount
        derived[creditor] = derived.get(creditor, 0) + amount

    for user_id in set(derived) | set(balances):
        if derived.get(user_id, 0) != balances.get(user_id, 0):
            raise InvariantViolation(
                f"Pairwise debts give {user_id} a net of {derived.get(user_id, 0)}, "
                f"balances say {balances.get(user_id, 0)}"
            )


def resolve(
    expenses: Sequence[ExpenseRecord],
    settlements: Sequence[SettlementRecord]
) -> List[PairwiseDebt]:
    """
    Calculate the itemized debts between pairs of users.

    Args:
        expenses: Every expense of the group, with its stored splits
        settlements: Every settlement of the group

    Returns:
        At most one PairwiseDebt per pair, sorted by (from_user_id, to_user_id)

    Raises:
        ValidationError: If the snapshot is malformed
        InvariantViolation: If the pairwise view disagrees with aggregate()
    """
    balances = aggregate(expenses, settlements)
    records = list(expenses) + list(settlements)
    currency = records[0].currency if records else None

    edges = cancel_cycles(_directed_edges(accumulate_pairs(expenses, settlements)))
    _check_against_balances(edges, balances)

    return [
        PairwiseDebt(from_user_id=debtor, to_user_id=creditor, amount=amount, currency=currency)
        for (debtor, creditor), amount in sorted(edges.items())
    ]
