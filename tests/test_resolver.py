import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List

import pytest

from school_fees.api.v1.fees.resolver import (
    ActivityState,
    AdjustmentSnapshot,
    DisableEntry,
    FeeSnapshot,
    Money,
    YearSnapshot,
    applicable_adjustments,
    index_years,
    is_active,
    resolve_amount,
    resolve_discount,
    scope_applies,
)


@pytest.fixture()
def years() -> Dict[str, YearSnapshot]:
    return {
        str(n): YearSnapshot(id=uuid.uuid4(), name=str(n), sequence_number=n)
        for n in range(2022, 2027)
    }


@pytest.fixture()
def all_years(years: Dict[str, YearSnapshot]) -> List[YearSnapshot]:
    return list(years.values())


def _fee(amount="100000", **kwargs) -> FeeSnapshot:
    return FeeSnapshot(
        id=kwargs.pop("id", uuid.uuid4()),
        name=kwargs.pop("name", "Tuition"),
        money=Money.charge(amount),
        category=kwargs.pop("category", "Tuition Fee"),
        **kwargs,
    )


def _adj(fee, adjustment_type, amount, period, start, end=None, created_at=None) -> AdjustmentSnapshot:
    return AdjustmentSnapshot(
        id=uuid.uuid4(),
        fee_item_id=fee.id,
        adjustment_type=adjustment_type,
        amount=Decimal(amount),
        effective_period_type=period,
        start_year_id=start.id,
        end_year_id=end.id if end else None,
        created_at=created_at or datetime(2024, 1, 1),
    )


@pytest.fixture()
def compounding(years):
    fee = _fee()
    a = _adj(fee, "increase", "20000", "from_year_onwards", years["2024"], created_at=datetime(2024, 1, 1))
    b = _adj(fee, "decrease", "5000", "specific_year", years["2024"], created_at=datetime(2024, 6, 1))
    return fee, [b, a]


# --- Money ---
def test_money_keeps_magnitude_and_direction() -> None:
    credit = Money(amount=Decimal("-10000"), direction="credit")
    assert credit.amount == Decimal("10000")
    assert credit.signed == Decimal("-10000")
    assert Money.charge("250.50").signed == Decimal("250.50")


# --- Amount resolution ---
def test_no_adjustments_returns_base(all_years, years) -> None:
    fee = _fee()
    assert resolve_amount(fee, years["2024"].id, [], all_years) == Decimal("100000")


def test_missing_or_unknown_target_year_returns_base(all_years, compounding) -> None:
    fee, adjustments = compounding
    assert resolve_amount(fee, None, adjustments, all_years) == Decimal("100000")
    assert resolve_amount(fee, uuid.uuid4(), adjustments, all_years) == Decimal("100000")


def test_adjustments_compound_in_chronological_order(all_years, years, compounding) -> None:
    fee, adjustments = compounding
    assert resolve_amount(fee, years["2024"].id, adjustments, all_years) == Decimal("115000")
    assert resolve_amount(fee, years["2025"].id, adjustments, all_years) == Decimal("120000")
    assert resolve_amount(fee, years["2023"].id, adjustments, all_years) == Decimal("100000")


def test_resolution_is_idempotent(all_years, years, compounding) -> None:
    fee, adjustments = compounding
    first = resolve_amount(fee, years["2024"].id, adjustments, all_years)
    second = resolve_amount(fee, years["2024"].id, adjustments, all_years)
    assert first == second == Decimal("115000")


def test_other_fees_adjustments_are_ignored(all_years, years) -> None:
    fee, other = _fee(), _fee()
    adjustments = [_adj(other, "increase", "500", "from_year_onwards", years["2022"])]
    assert resolve_amount(fee, years["2024"].id, adjustments, all_years) == Decimal("100000")


@pytest.mark.parametrize(
    "target, expected",
    [("2022", "1000"), ("2023", "1500"), ("2025", "1500"), ("2026", "1000")],
)
def test_year_range_bounds_are_inclusive(all_years, years, target, expected) -> None:
    fee = _fee("1000")
    adjustments = [_adj(fee, "increase", "500", "year_range", years["2023"], years["2025"])]
    assert resolve_amount(fee, years[target].id, adjustments, all_years) == Decimal(expected)


def test_year_range_with_unresolved_end_never_applies(all_years, years) -> None:
    fee = _fee("1000")
    adj = _adj(fee, "increase", "500", "year_range", years["2023"])
    adj = adj.model_copy(update={"end_year_id": uuid.uuid4()})
    assert resolve_amount(fee, years["2024"].id, [adj], all_years) == Decimal("1000")


def test_unresolved_start_year_is_excluded(all_years, years) -> None:
    fee = _fee("1000")
    adj = _adj(fee, "increase", "500", "from_year_onwards", years["2023"])
    adj = adj.model_copy(update={"start_year_id": uuid.uuid4()})
    assert resolve_amount(fee, years["2024"].id, [adj], all_years) == Decimal("1000")


def test_result_is_not_clamped(all_years, years) -> None:
    fee = _fee("1000")
    adjustments = [_adj(fee, "decrease", "1500", "specific_year", years["2024"])]
    assert resolve_amount(fee, years["2024"].id, adjustments, all_years) == Decimal("-500")


def test_ordering_uses_sequence_number_not_name() -> None:
    early = YearSnapshot(id=uuid.uuid4(), name="Foundation", sequence_number=1)
    late = YearSnapshot(id=uuid.uuid4(), name="Alpha", sequence_number=2)
    by_id = index_years([early, late])
    assert scope_applies("from_year_onwards", early.id, None, late.id, by_id)
    assert not scope_applies("from_year_onwards", late.id, None, early.id, by_id)


def test_specific_year_matches_identity_only(years) -> None:
    twin = YearSnapshot(id=uuid.uuid4(), name="2024 (bis)", sequence_number=years["2024"].sequence_number)
    by_id = index_years(list(years.values()) + [twin])
    assert scope_applies("specific_year", years["2024"].id, None, years["2024"].id, by_id)
    assert not scope_applies("specific_year", years["2024"].id, None, twin.id, by_id)


def test_unknown_period_type_never_applies(years) -> None:
    by_id = index_years(years.values())
    assert not scope_applies("whenever", years["2022"].id, None, years["2024"].id, by_id)
    assert not scope_applies(None, years["2022"].id, None, years["2024"].id, by_id)


def test_equal_timestamps_keep_ledger_order(years) -> None:
    fee = _fee()
    stamp = datetime(2024, 3, 1)
    first = _adj(fee, "increase", "1", "from_year_onwards", years["2022"], created_at=stamp)
    second = _adj(fee, "decrease", "2", "from_year_onwards", years["2022"], created_at=stamp)
    selected = applicable_adjustments(fee.id, years["2024"].id, [first, second], index_years(years.values()))
    assert [a.id for a in selected] == [first.id, second.id]


# --- Active status ---
def test_active_state_is_active(all_years, years) -> None:
    assert is_active(_fee(), years["2024"].id, all_years)


def test_status_gates_stale_history(all_years, years) -> None:
    history = [DisableEntry(disable_type="immediate_indefinite", created_at=datetime(2022, 1, 1))]
    fee = _fee(state=ActivityState.from_history("active", history))
    assert is_active(fee, years["2024"].id, all_years)


def test_immediate_disable_is_inactive_everywhere(all_years, years) -> None:
    fee = _fee(state=ActivityState(is_active=False, disable_type="immediate_indefinite"))
    assert not any(is_active(fee, y.id, all_years) for y in all_years)
    assert not is_active(fee, None, all_years)


def test_from_year_onwards_disable(all_years, years) -> None:
    fee = _fee(state=ActivityState(is_active=False, disable_type="from_year_onwards", start_year_id=years["2024"].id))
    assert is_active(fee, years["2023"].id, all_years)
    assert not is_active(fee, years["2024"].id, all_years)
    assert not is_active(fee, years["2026"].id, all_years)


def test_year_range_disable_is_temporary(all_years, years) -> None:
    fee = _fee(
        state=ActivityState(
            is_active=False,
            disable_type="year_range",
            start_year_id=years["2023"].id,
            end_year_id=years["2024"].id,
        )
    )
    assert is_active(fee, years["2022"].id, all_years)
    assert not is_active(fee, years["2023"].id, all_years)
    assert not is_active(fee, years["2024"].id, all_years)
    assert is_active(fee, years["2025"].id, all_years)


def test_disabled_without_scope_is_inactive(all_years, years) -> None:
    fee = _fee(state=ActivityState(is_active=False))
    assert not is_active(fee, years["2024"].id, all_years)


def test_state_from_history_uses_latest_entry(years) -> None:
    history = [
        DisableEntry(disable_type="immediate_indefinite", created_at=datetime(2022, 1, 1)),
        DisableEntry(action="enable", disable_type="immediate_indefinite", created_at=datetime(2022, 6, 1)),
        DisableEntry(
            disable_type="year_range",
            start_year_id=years["2023"].id,
            end_year_id=years["2024"].id,
            created_at=datetime(2023, 1, 1),
        ),
    ]
    state = ActivityState.from_history("disabled", history)
    assert not state.is_active
    assert state.disable_type == "year_range"
    assert state.start_year_id == years["2023"].id
    assert ActivityState.from_history("disabled", []) == ActivityState(is_active=False)


# --- Discounts ---
def test_discount_nets_against_resolved_linked_fee(all_years, years, compounding) -> None:
    fee, adjustments = compounding
    discount = FeeSnapshot(
        id=uuid.uuid4(),
        name="Sibling discount",
        money=Money(amount=Decimal("-10000"), direction="credit"),
        category="Discount",
        linked_fee_id=fee.id,
    )
    resolution = resolve_discount(discount, [fee, discount], adjustments, all_years, years["2024"].id)
    assert resolution is not None
    assert resolution.linked_fee_id == fee.id
    assert resolution.linked_amount == Decimal("115000")
    assert resolution.net_amount == Decimal("105000")


def test_unlinked_discount_yields_none(all_years, years) -> None:
    unlinked = FeeSnapshot(id=uuid.uuid4(), name="Bursary", money=Money.credit("500"), category="Discount")
    dangling = unlinked.model_copy(update={"linked_fee_id": uuid.uuid4()})
    assert resolve_discount(unlinked, [unlinked], [], all_years, years["2024"].id) is None
    assert resolve_discount(dangling, [dangling], [], all_years, years["2024"].id) is None


def test_non_discount_yields_none(all_years, years) -> None:
    fee = _fee()
    other = _fee(linked_fee_id=fee.id)
    assert resolve_discount(other, [fee, other], [], all_years, years["2024"].id) is None
