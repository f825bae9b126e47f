"""
Split Allocation Module

Turns an expense total plus a split policy into per-participant shares that
sum exactly to the total. Every amount is an integer number of minor units,
so the only rounding happens when a proportional share is converted back to
whole units, and the leftover units are handed out by an explicit rule:

- spread_first: one extra unit to each of the first N participants
  (default for equal splits)
- last_absorbs: the last participant in the supplied order takes the
  residue (default for percentage and shares splits)

The per-policy defaults preserve the historical behaviour. Passing
`remainder_rule`, or setting `default_remainder_rule` in the settings,
applies one rule to every policy.

Example Usage:
    from split_ledger.utils.split_allocation import allocate

    allocate(1000, SplitPolicy.equal, ["A", "B", "C"])
    # [Split(user_id='A', amount=334), Split(user_id='B', amount=333),
    #  Split(user_id='C', amount=333)]
"""

import logging
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import List, Optional, Sequence, Union

from split_ledger.core.config import settings
from split_ledger.schemas.ledger_schema import (
    RemainderRule, Split, SplitParticipant, SplitPolicy
)
from split_ledger.utils.errors import InvariantViolation, ValidationError

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

ParticipantInput = Union[SplitParticipant, str]


def allocate(
    total: int,
    policy: Union[SplitPolicy, str],
    participants: Sequence[ParticipantInput],
    remainder_rule: Optional[Union[RemainderRule, str]] = None
) -> List[Split]:
    """
    Allocate `total` minor units among `participants` according to `policy`.

    Args:
        total: Expense total in minor units
        policy: equal, exact, percentage or shares
        participants: Ordered participants; plain user ids are accepted for equal splits
        remainder_rule: Overrides which participants receive the rounding residue

    Returns:
        One Split per participant, in the supplied order, summing exactly to `total`

    Raises:
        ValidationError: If the input cannot be allocated (see the per-policy helpers)
        InvariantViolation: If the computed shares do not add up to `total`
    """
    policy = SplitPolicy(policy)
    members = _normalize_participants(participants)
    _validate_common(total, members)
    rule = _resolve_rule(policy, remainder_rule)

    if policy == SplitPolicy.equal:
        amounts = _allocate_equal(total, len(members), rule)
    elif policy == SplitPolicy.exact:
        amounts = _allocate_exact(total, members)
    elif policy == SplitPolicy.percentage:
        amounts = _allocate_percentage(total, members, rule)
    else:
        amounts = _allocate_shares(total, members, rule)

    if sum(amounts) != total or any(amount < 0 for amount in amounts):
        raise InvariantViolation(
            f"{policy.value} allocation produced {amounts} for total {total}"
        )

    logger.debug(f"Allocated {total} by {policy.value} ({rule.value if rule else 'as given'}): {amounts}")
    return [Split(user_id=member.user_id, amount=amount) for member, amount in zip(members, amounts)]


def _normalize_participants(participants: Sequence[ParticipantInput]) -> List[SplitParticipant]:
    return [
        SplitParticipant(user_id=p) if isinstance(p, str) else p
        for p in participants
    ]


def _validate_common(total: int, members: List[SplitParticipant]) -> None:
    if total < 0:
        raise ValidationError(f"Expense total cannot be negative, got {total}")
    if not members:
        raise ValidationError("A split needs at least one participant")
    if len(members) > settings.max_participants:
        raise ValidationError(
            f"Too many participants: {len(members)} (limit {settings.max_participants})",
            expected=settings.max_participants,
            actual=len(members)
        )

    seen = set()
    for member in members:
        if member.user_id in seen:
            raise ValidationError(f"Participant {member.user_id} appears more than once")
        seen.add(member.user_id)


def _resolve_rule(
    policy: SplitPolicy,
    remainder_rule: Optional[Union[RemainderRule, str]]
) -> Optional[RemainderRule]:
    if policy == SplitPolicy.exact:
        return None
    if remainder_rule is not None:
        return RemainderRule(remainder_rule)
    if settings.default_remainder_rule:
        return RemainderRule(settings.default_remainder_rule)
    if policy == SplitPolicy.equal:
        return RemainderRule.spread_first
    return RemainderRule.last_absorbs


def _allocate_equal(total: int, count: int, rule: RemainderRule) -> List[int]:
    base, remainder = divmod(total, count)
    if rule == RemainderRule.last_absorbs:
        amounts = [base] * count
        amounts[-1] += remainder
        return amounts
    return [base + 1 if index < remainder else base for index in range(count)]


def _allocate_exact(total: int, members: List[SplitParticipant]) -> List[int]:
    amounts = []
    for member in members:
        if member.value is None:
            raise ValidationError(f"Exact split is missing an amount for {member.user_id}")
        if member.value != member.value.to_integral_value():
            raise ValidationError(
                f"Exact amount for {member.user_id} must be a whole number of minor units, got {member.value}"
            )
        if member.value < 0:
            raise ValidationError(f"Split amount for {member.user_id} cannot be negative")
        amounts.append(int(member.value))

    actual = sum(amounts)
    if actual != total:
        raise ValidationError(
            f"Split amounts must sum to the expense total: sum={actual}, expected={total}",
            expected=total,
            actual=actual
        )
    return amounts


def _allocate_percentage(total: int, members: List[SplitParticipant], rule: RemainderRule) -> List[int]:
    percentages = []
    for member in members:
        if member.value is None:
            raise ValidationError(f"Percentage split is missing a percentage for {member.user_id}")
        if member.value < 0:
            raise ValidationError(f"Percentage for {member.user_id} cannot be negative")
        percentages.append(member.value)

    actual = sum(percentages)
    tolerance = settings.percentage_tolerance
    if abs(actual - HUNDRED) > tolerance:
        raise ValidationError(
            f"Percentages must sum to 100 (±{tolerance}): sum={actual}, expected=100",
            expected=HUNDRED,
            actual=actual
        )

    # divide by the stated sum so both rules agree inside the tolerance
    if rule == RemainderRule.last_absorbs:
        return _last_absorbs(total, percentages, actual)
    return _spread_first(total, percentages, actual)


def _allocate_shares(total: int, members: List[SplitParticipant], rule: RemainderRule) -> List[int]:
    weights = []
    for member in members:
        if member.value is None:
            raise ValidationError(f"Shares split is missing a weight for {member.user_id}")
        if member.value <= 0:
            raise ValidationError(f"Share weight for {member.user_id} must be positive, got {member.value}")
        weights.append(member.value)

    total_weight = sum(weights)
    if rule == RemainderRule.last_absorbs:
        return _last_absorbs(total, weights, total_weight)
    return _spread_first(total, weights, total_weight)


def _last_absorbs(total: int, weights: List[Decimal], divisor: Decimal) -> List[int]:
    amounts = []
    allocated = 0
    for weight in weights[:-1]:
        share = int((Decimal(total) * weight / divisor).to_integral_value(rounding=ROUND_HALF_UP))
        # rounding up several shares must not push the residue below zero
        share = min(share, total - allocated)
        amounts.append(share)
        allocated += share
    amounts.append(total - allocated)
    return amounts


def _spread_first(total: int, weights: List[Decimal], divisor: Decimal) -> List[int]:
    amounts = [
        int((Decimal(total) * weight / divisor).to_integral_value(rounding=ROUND_FLOOR))
        for weight in weights
    ]
    remainder = total - sum(amounts)

    # zero-weight participants never receive residue
    for index, weight in enumerate(weights):
        if remainder <= 0:
            break
        if weight > 0:
            amounts[index] += 1
            remainder -= 1
    return amounts
