"""
Integration Tests for the Service Layer

Runs the group, expense, settlement and balance services against an
in-memory database.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from fastapi import HTTPException
from split_ledger.schemas.expense_schema import (
    ExpenseCategory, ExpenseCreate, ExpenseParticipantIn, ExpenseUpdate
)
from split_ledger.schemas.group_schema import GroupCreate
from split_ledger.schemas.ledger_schema import RemainderRule, SplitPolicy
from split_ledger.schemas.settlement_schema import SettlementCreate
from split_ledger.services.balance_service import (
    get_group_balances, get_suggested_payments, load_group_snapshot
)
from split_ledger.services.expense_service import (
    create_expense, delete_expense, get_group_expenses, serialize_expense, to_expense_record, update_expense
)
from split_ledger.services.group_service import (
    add_member_to_group, create_group, get_group_members, get_member_group, is_group_member
)
from split_ledger.services.settlement_service import create_settlement, get_group_settlements
from split_ledger.utils.errors import ValidationError


def people(*user_ids, values=None):
    values = values or {}
    return [ExpenseParticipantIn(user_id=user_id, value=values.get(user_id)) for user_id in user_ids]


def split_amounts(expense):
    return [(split.user_id, split.amount) for split in expense.splits]


@pytest.fixture
def group(db_session):
    """Group created by alice with bob and carol as members."""
    trip = create_group(db_session, GroupCreate(name="Trip"), "alice")
    add_member_to_group(db_session, trip.id, "bob")
    add_member_to_group(db_session, trip.id, "carol")
    return trip


@pytest.mark.integration
class TestGroupService:
    """Test group membership."""

    def test_creator_is_member(self, db_session):
        trip = create_group(db_session, GroupCreate(name="Trip", currency="eur"), "alice")
        assert trip.currency == "EUR"
        assert is_group_member(db_session, trip.id, "alice")
        assert [m.user_id for m in get_group_members(db_session, trip.id)] == ["alice"]

    def test_default_currency(self, group):
        assert group.currency == "USD"

    def test_duplicate_member(self, db_session, group):
        with pytest.raises(HTTPException) as exc_info:
            add_member_to_group(db_session, group.id, "bob")
        assert exc_info.value.status_code == 400

    def test_non_member_access(self, db_session, group):
        with pytest.raises(HTTPException) as exc_info:
            get_member_group(db_session, group.id, "mallory")
        assert exc_info.value.status_code == 403

    def test_unknown_group(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            get_member_group(db_session, "missing", "alice")
        assert exc_info.value.status_code == 404


@pytest.mark.integration
class TestExpenseService:
    """Test expense creation and editing."""

    def test_equal_split_stored_in_minor_units(self, db_session, group):
        data = ExpenseCreate(description="Taxi", amount=Decimal("10.00"), participants=people("alice", "bob", "carol"))
        expense = create_expense(db_session, group, data, "alice")
        assert expense.amount == 1000
        assert expense.paid_by == "alice"
        assert split_amounts(expense) == [("alice", 334), ("bob", 333), ("carol", 333)]

    def test_exact_split(self, db_session, group):
        data = ExpenseCreate(
            description="Dinner",
            amount=Decimal("50.00"),
            split_policy=SplitPolicy.exact,
            participants=people("alice", "bob", values={"alice": Decimal("30.00"), "bob": Decimal("20.00")})
        )
        expense = create_expense(db_session, group, data, "alice")
        assert split_amounts(expense) == [("alice", 3000), ("bob", 2000)]

    def test_exact_mismatch(self, db_session, group):
        data = ExpenseCreate(
            description="Dinner",
            amount=Decimal("50.00"),
            split_policy=SplitPolicy.exact,
            participants=people("alice", "bob", values={"alice": Decimal("30.00"), "bob": Decimal("15.00")})
        )
        with pytest.raises(ValidationError) as exc_info:
            create_expense(db_session, group, data, "alice")
        assert (exc_info.value.expected, exc_info.value.actual) == (5000, 4500)
        assert get_group_expenses(db_session, group.id) == []

    def test_percentage_split(self, db_session, group):
        data = ExpenseCreate(
            description="Hotel",
            amount=Decimal("10.00"),
            split_policy=SplitPolicy.percentage,
            participants=people(
                "alice", "bob", "carol",
                values={"alice": Decimal("33.33"), "bob": Decimal("33.33"), "carol": Decimal("33.34")}
            )
        )
        expense = create_expense(db_session, group, data, "bob")
        assert expense.paid_by == "bob"
        assert split_amounts(expense) == [("alice", 333), ("bob", 333), ("carol", 334)]

    def test_shares_split_with_other_payer(self, db_session, group):
        data = ExpenseCreate(
            description="Groceries",
            amount=Decimal("9.99"),
            paid_by="carol",
            split_policy=SplitPolicy.shares,
            participants=people("alice", "bob", values={"alice": Decimal(2), "bob": Decimal(1)})
        )
        expense = create_expense(db_session, group, data, "alice")
        assert expense.paid_by == "carol"
        assert expense.created_by == "alice"
        assert split_amounts(expense) == [("alice", 666), ("bob", 333)]

    def test_currency_mismatch(self, db_session, group):
        data = ExpenseCreate(description="Museum", amount=Decimal("20"), currency="EUR", participants=people("alice"))
        with pytest.raises(HTTPException) as exc_info:
            create_expense(db_session, group, data, "alice")
        assert exc_info.value.status_code == 400

    def test_non_member_participant(self, db_session, group):
        data = ExpenseCreate(description="Taxi", amount=Decimal("10"), participants=people("alice", "mallory"))
        with pytest.raises(HTTPException) as exc_info:
            create_expense(db_session, group, data, "alice")
        assert exc_info.value.status_code == 400

    def test_update_amount_reallocates(self, db_session, group):
        data = ExpenseCreate(description="Taxi", amount=Decimal("10.00"), participants=people("alice", "bob", "carol"))
        expense = create_expense(db_session, group, data, "alice")

        updated = update_expense(db_session, expense, ExpenseUpdate(amount=Decimal("20.00")), "alice")
        assert updated.amount == 2000
        assert split_amounts(updated) == [("alice", 667), ("bob", 667), ("carol", 666)]

    def test_update_description_keeps_splits(self, db_session, group):
        data = ExpenseCreate(description="Taxi", amount=Decimal("10.00"), participants=people("alice", "bob"))
        expense = create_expense(db_session, group, data, "alice")

        updated = update_expense(db_session, expense, ExpenseUpdate(description="Airport taxi"), "alice")
        assert updated.description == "Airport taxi"
        assert split_amounts(updated) == [("alice", 500), ("bob", 500)]

    def test_update_weighted_needs_participants(self, db_session, group):
        data = ExpenseCreate(
            description="Hotel",
            amount=Decimal("100"),
            split_policy=SplitPolicy.shares,
            participants=people("alice", "bob", values={"alice": Decimal(1), "bob": Decimal(3)})
        )
        expense = create_expense(db_session, group, data, "alice")
        with pytest.raises(HTTPException) as exc_info:
            update_expense(db_session, expense, ExpenseUpdate(amount=Decimal("80")), "alice")
        assert exc_info.value.status_code == 400

    def test_change_payer_keeps_weighted_splits(self, db_session, group):
        data = ExpenseCreate(
            description="Tickets",
            amount=Decimal("10.00"),
            split_policy=SplitPolicy.exact,
            participants=people("alice", "bob", values={"alice": Decimal("7.00"), "bob": Decimal("3.00")})
        )
        expense = create_expense(db_session, group, data, "alice")

        updated = update_expense(db_session, expense, ExpenseUpdate(paid_by="bob"), "alice")
        assert updated.paid_by == "bob"
        assert split_amounts(updated) == [("alice", 700), ("bob", 300)]

    def test_change_payer_to_non_member(self, db_session, group):
        data = ExpenseCreate(description="Taxi", amount=Decimal("10.00"), participants=people("alice", "bob"))
        expense = create_expense(db_session, group, data, "alice")
        with pytest.raises(HTTPException) as exc_info:
            update_expense(db_session, expense, ExpenseUpdate(paid_by="mallory"), "alice")
        assert exc_info.value.status_code == 400

    def test_remainder_rule_only_edit_of_exact_expense(self, db_session, group):
        data = ExpenseCreate(
            description="Tickets",
            amount=Decimal("10.00"),
            split_policy=SplitPolicy.exact,
            participants=people("alice", "bob", values={"alice": Decimal("7.00"), "bob": Decimal("3.00")})
        )
        expense = create_expense(db_session, group, data, "alice")

        updated = update_expense(db_session, expense, ExpenseUpdate(remainder_rule=RemainderRule.last_absorbs), "alice")
        assert updated.remainder_rule == "last_absorbs"
        assert split_amounts(updated) == [("alice", 700), ("bob", 300)]

    def test_stored_remainder_rule_survives_resplit(self, db_session, group):
        data = ExpenseCreate(
            description="Taxi",
            amount=Decimal("10.00"),
            remainder_rule=RemainderRule.last_absorbs,
            participants=people("alice", "bob", "carol")
        )
        expense = create_expense(db_session, group, data, "alice")
        assert expense.remainder_rule == "last_absorbs"
        assert split_amounts(expense) == [("alice", 333), ("bob", 333), ("carol", 334)]

        updated = update_expense(db_session, expense, ExpenseUpdate(amount=Decimal("20.00")), "alice")
        assert split_amounts(updated) == [("alice", 666), ("bob", 666), ("carol", 668)]

    def test_category_and_date(self, db_session, group):
        when = datetime(2024, 3, 1, 19, 30, tzinfo=timezone.utc)
        data = ExpenseCreate(
            description="Dinner",
            amount=Decimal("40"),
            category=ExpenseCategory.food,
            date=when,
            participants=people("alice", "bob")
        )
        expense = create_expense(db_session, group, data, "alice")
        assert expense.category == "food"
        assert expense.date.replace(tzinfo=None) == when.replace(tzinfo=None)

        out = serialize_expense(expense)
        assert out.category == ExpenseCategory.food

        updated = update_expense(db_session, expense, ExpenseUpdate(category=ExpenseCategory.entertainment), "alice")
        assert updated.category == "entertainment"

    def test_default_category_and_date(self, db_session, group):
        data = ExpenseCreate(description="Taxi", amount=Decimal("10.00"), participants=people("alice"))
        expense = create_expense(db_session, group, data, "alice")
        assert expense.category == "other"
        assert expense.date is not None

    def test_only_payer_or_creator_edits(self, db_session, group):
        data = ExpenseCreate(description="Taxi", amount=Decimal("10.00"), participants=people("alice", "bob"))
        expense = create_expense(db_session, group, data, "alice")
        with pytest.raises(HTTPException) as exc_info:
            update_expense(db_session, expense, ExpenseUpdate(description="Mine now"), "bob")
        assert exc_info.value.status_code == 403
        with pytest.raises(HTTPException):
            delete_expense(db_session, expense, "carol")

    def test_delete(self, db_session, group):
        data = ExpenseCreate(description="Taxi", amount=Decimal("10.00"), participants=people("alice", "bob"))
        expense = create_expense(db_session, group, data, "alice")
        delete_expense(db_session, expense, "alice")
        assert get_group_expenses(db_session, group.id) == []

    def test_engine_record(self, db_session, group):
        data = ExpenseCreate(description="Taxi", amount=Decimal("10.00"), participants=people("alice", "bob", "carol"))
        record = to_expense_record(create_expense(db_session, group, data, "alice"))
        assert record.total_amount == 1000
        assert record.payer_id == "alice"
        assert sum(split.amount for split in record.splits) == record.total_amount


@pytest.mark.integration
class TestSettlementService:
    """Test settlement recording."""

    def test_record_settlement(self, db_session, group):
        data = SettlementCreate(from_user_id="bob", to_user_id="alice", amount=Decimal("3.33"))
        settlement = create_settlement(db_session, group, data, "bob")
        assert settlement.amount == 333
        assert settlement.currency == "USD"
        assert settlement.method == "cash"
        assert len(get_group_settlements(db_session, group.id)) == 1

    def test_third_party_cannot_record(self, db_session, group):
        data = SettlementCreate(from_user_id="bob", to_user_id="alice", amount=Decimal("5"))
        with pytest.raises(HTTPException) as exc_info:
            create_settlement(db_session, group, data, "carol")
        assert exc_info.value.status_code == 403

    def test_non_member_counterparty(self, db_session, group):
        data = SettlementCreate(from_user_id="bob", to_user_id="mallory", amount=Decimal("5"))
        with pytest.raises(HTTPException) as exc_info:
            create_settlement(db_session, group, data, "bob")
        assert exc_info.value.status_code == 400

    def test_amount_rounding_to_zero(self, db_session, group):
        data = SettlementCreate(from_user_id="bob", to_user_id="alice", amount=Decimal("0.001"))
        with pytest.raises(HTTPException) as exc_info:
            create_settlement(db_session, group, data, "bob")
        assert exc_info.value.status_code == 400


@pytest.mark.integration
class TestBalanceService:
    """Test balance views computed from the stored history."""

    def test_empty_group(self, db_session, group):
        balances = get_group_balances(db_session, group)
        assert [(b.user_id, b.amount) for b in balances.net_balances] == [
            ("alice", Decimal("0")), ("bob", Decimal("0")), ("carol", Decimal("0"))
        ]
        assert balances.debts == []
        assert get_suggested_payments(db_session, group) == []

    def test_balances_after_expense_and_settlement(self, db_session, group):
        add_member_to_group(db_session, group.id, "dave")
        data = ExpenseCreate(description="Taxi", amount=Decimal("10.00"), participants=people("alice", "bob", "carol"))
        create_expense(db_session, group, data, "alice")
        create_settlement(
            db_session, group, SettlementCreate(from_user_id="bob", to_user_id="alice", amount=Decimal("3.33")), "bob"
        )

        balances = get_group_balances(db_session, group)
        assert balances.currency == "USD"
        assert {b.user_id: b.amount for b in balances.net_balances} == {
            "alice": Decimal("3.33"),
            "bob": Decimal("0"),
            "carol": Decimal("-3.33"),
            "dave": Decimal("0"),
        }
        assert [(d.from_user_id, d.to_user_id, d.amount) for d in balances.debts] == [
            ("carol", "alice", Decimal("3.33"))
        ]

        payments = get_suggested_payments(db_session, group)
        assert [(p.from_user_id, p.to_user_id, p.amount) for p in payments] == [
            ("carol", "alice", Decimal("3.33"))
        ]

    def test_chain_simplified(self, db_session, group):
        """bob owes alice and carol owes bob: one payment from carol to alice."""
        create_expense(
            db_session, group,
            ExpenseCreate(description="Lunch", amount=Decimal("20"), participants=people("bob")), "alice"
        )
        create_expense(
            db_session, group,
            ExpenseCreate(description="Coffee", amount=Decimal("20"), participants=people("carol")), "bob"
        )

        debts = get_group_balances(db_session, group).debts
        assert [(d.from_user_id, d.to_user_id) for d in debts] == [("bob", "alice"), ("carol", "bob")]

        payments = get_suggested_payments(db_session, group)
        assert [(p.from_user_id, p.to_user_id, p.amount) for p in payments] == [
            ("carol", "alice", Decimal("20.00"))
        ]

    def test_snapshot(self, db_session, group):
        data = ExpenseCreate(description="Taxi", amount=Decimal("10.00"), participants=people("alice", "bob"))
        create_expense(db_session, group, data, "alice")
        create_settlement(
            db_session, group, SettlementCreate(from_user_id="bob", to_user_id="alice", amount=Decimal("1")), "bob"
        )
        expenses, settlements = load_group_snapshot(db_session, group.id)
        assert [e.total_amount for e in expenses] == [1000]
        assert [(s.from_user_id, s.to_user_id, s.amount) for s in settlements] == [("bob", "alice", 100)]
