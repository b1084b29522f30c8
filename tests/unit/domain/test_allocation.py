"""Tests for allocation math: per-item recompute and schedule aggregates."""

import math

import pytest

from milestones.domain.allocation import (
    AllocationSet,
    aggregate,
    compute_amount,
    create_item,
    parse_amount,
    with_field,
)
from milestones.domain.exceptions import ItemNotFoundError, ValidationError
from milestones.domain.models import AllocationItem, AllocationMode


def _percent(item_id, percent, amount=0.0, sort_order=0):
    return AllocationItem(
        id=item_id,
        label=f"Item {item_id}",
        mode=AllocationMode.PERCENTAGE,
        percent_of_total=percent,
        computed_amount=amount,
        sort_order=sort_order,
    )


def _fixed(item_id, fixed, sort_order=0):
    return AllocationItem(
        id=item_id,
        label=f"Item {item_id}",
        mode=AllocationMode.FIXED,
        fixed_amount=fixed,
        computed_amount=fixed,
        sort_order=sort_order,
    )


def _remaining(item_id, amount=0.0, sort_order=0):
    return AllocationItem(
        id=item_id,
        label=f"Item {item_id}",
        mode=AllocationMode.REMAINING,
        computed_amount=amount,
        sort_order=sort_order,
    )


class TestParseAmount:
    """Test tolerant parsing of driving inputs."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, 0.0),
            ("", 0.0),
            ("  ", 0.0),
            ("abc", 0.0),
            ("12.5", 12.5),
            (" 40 ", 40.0),
            (7, 7.0),
            (2.5, 2.5),
            ("-5", -5.0),
            (float("nan"), 0.0),
            (float("inf"), 0.0),
            ("inf", 0.0),
            (True, 0.0),
        ],
    )
    def test_parse_amount(self, value, expected):
        assert parse_amount(value) == expected


class TestComputeAmount:
    """Test per-mode amount derivation."""

    def test_percentage_of_grand_total(self):
        assert compute_amount(_percent("1", 25.0), 10000.0) == pytest.approx(2500.0)

    def test_negative_percent_computes_zero(self):
        assert compute_amount(_percent("1", -10.0), 10000.0) == 0.0

    def test_missing_percent_computes_zero(self):
        assert compute_amount(_percent("1", None), 10000.0) == 0.0

    def test_fixed_ignores_grand_total(self):
        assert compute_amount(_fixed("1", 3000.0), 10000.0) == 3000.0
        assert compute_amount(_fixed("1", 3000.0), 0.0) == 3000.0

    def test_remaining_takes_what_others_leave(self):
        assert compute_amount(_remaining("1"), 10000.0, other_total=6500.0) == 3500.0

    def test_remaining_never_negative(self):
        assert compute_amount(_remaining("1"), 10000.0, other_total=12000.0) == 0.0


class TestCreateItem:
    """Test new item defaults."""

    def test_defaults(self):
        item = create_item(label="Milestone 1", sort_order=0)
        assert item.is_local
        assert item.mode == AllocationMode.PERCENTAGE
        assert item.percent_of_total == 0.0
        assert item.fixed_amount is None
        assert item.computed_amount == 0.0
        assert item.dirty is True


class TestWithField:
    """Test single-field edits."""

    def test_percent_edit_recomputes_amount(self):
        updated = with_field(_percent("1", 10.0, 1000.0), "percent_of_total", "25", 10000.0)
        assert updated.percent_of_total == 25.0
        assert updated.computed_amount == pytest.approx(2500.0)
        assert updated.dirty is True

    def test_partial_input_is_zero(self):
        updated = with_field(_percent("1", 10.0, 1000.0), "percent_of_total", "", 10000.0)
        assert updated.percent_of_total == 0.0
        assert updated.computed_amount == 0.0

    def test_negative_percent_is_kept_but_computes_zero(self):
        updated = with_field(_percent("1", 10.0), "percent_of_total", "-5", 10000.0)
        assert updated.percent_of_total == -5.0
        assert updated.computed_amount == 0.0

    def test_percent_over_hundred_is_allowed(self):
        updated = with_field(_percent("1", 10.0), "percent_of_total", 150, 1000.0)
        assert updated.computed_amount == pytest.approx(1500.0)

    def test_negative_fixed_is_clamped(self):
        updated = with_field(_fixed("1", 100.0), "fixed_amount", "-40", 10000.0)
        assert updated.fixed_amount == 0.0
        assert updated.computed_amount == 0.0

    def test_percent_on_fixed_item_is_rejected(self):
        with pytest.raises(ValidationError, match="percentage mode"):
            with_field(_fixed("1", 100.0), "percent_of_total", "10", 10000.0)

    def test_fixed_on_percent_item_is_rejected(self):
        with pytest.raises(ValidationError, match="fixed mode"):
            with_field(_percent("1", 10.0), "fixed_amount", "10", 10000.0)

    def test_unknown_field_is_rejected(self):
        with pytest.raises(ValidationError, match="cannot be edited"):
            with_field(_percent("1", 10.0), "computed_amount", 5, 10000.0)

    def test_switch_to_fixed_seeds_zero_and_drops_percent(self):
        updated = with_field(_percent("1", 10.0, 1000.0), "mode", "fixed", 10000.0)
        assert updated.mode == AllocationMode.FIXED
        assert updated.percent_of_total is None
        assert updated.fixed_amount == 0.0
        assert updated.computed_amount == 0.0

    def test_switch_to_remaining_nulls_driving_fields(self):
        updated = with_field(
            _percent("1", 10.0, 1000.0), "mode", AllocationMode.REMAINING, 10000.0,
            other_total=4000.0,
        )
        assert updated.mode == AllocationMode.REMAINING
        assert updated.percent_of_total is None
        assert updated.fixed_amount is None
        assert updated.computed_amount == 6000.0

    def test_invalid_mode_is_rejected(self):
        with pytest.raises(ValidationError, match="Invalid allocation mode"):
            with_field(_percent("1", 10.0), "mode", "split", 10000.0)

    def test_label_and_due_date(self):
        item = with_field(_percent("1", 10.0), "label", "Deposit", 10000.0)
        item = with_field(item, "due_on", "2026-03-01", 10000.0)
        assert item.label == "Deposit"
        assert item.due_on == "2026-03-01"

    def test_clearing_due_date(self):
        item = with_field(_percent("1", 10.0), "due_on", "2026-03-01", 10000.0)
        assert with_field(item, "due_on", "", 10000.0).due_on is None

    def test_same_value_is_still_dirty(self):
        updated = with_field(_percent("1", 10.0, 1000.0), "percent_of_total", 10, 10000.0)
        assert updated.dirty is True
        assert not updated.differs_from(_percent("1", 10.0, 1000.0))


class TestAggregate:
    """Test schedule totals."""

    def test_totals(self):
        items = [_percent("1", 30.0, 3000.0), _fixed("2", 2000.0)]
        summary = aggregate(items, 10000.0)

        assert summary.allocated_total == 5000.0
        assert summary.allocated_percent == pytest.approx(50.0)
        assert summary.remaining == 5000.0
        assert summary.is_complete is False
        assert summary.item_count == 2

    def test_archived_items_do_not_count(self):
        archived = AllocationItem(id="3", label="Old", computed_amount=999.0, archived=True)
        summary = aggregate([_fixed("1", 1000.0), archived], 1000.0)

        assert summary.allocated_total == 1000.0
        assert summary.item_count == 1
        assert summary.is_complete is True

    def test_complete_within_a_cent(self):
        summary = aggregate([_fixed("1", 999.995)], 1000.0)
        assert summary.is_complete is True

    def test_over_allocated_reports_negative_remaining(self):
        summary = aggregate([_fixed("1", 1200.0)], 1000.0)
        assert summary.remaining == -200.0
        assert summary.is_complete is False

    def test_zero_grand_total_has_zero_percent(self):
        summary = aggregate([_fixed("1", 500.0)], 0.0)
        assert summary.allocated_percent == 0.0
        assert not math.isnan(summary.allocated_percent)

    def test_empty_schedule(self):
        summary = aggregate([], 0.0)
        assert summary.allocated_total == 0.0
        assert summary.is_complete is True
        assert summary.item_count == 0


class TestAllocationSet:
    """Test the ordered item set."""

    def test_of_drops_archived_items(self):
        archived = AllocationItem(id="2", label="Old", archived=True)
        allocation = AllocationSet.of([_fixed("1", 10.0), archived], 100.0)
        assert [item.id for item in allocation.items] == ["1"]

    def test_get_unknown_item(self):
        with pytest.raises(ItemNotFoundError):
            AllocationSet(items=(_fixed("1", 10.0),)).get("nope")

    def test_with_item_keeps_position(self):
        allocation = AllocationSet(items=(_fixed("1", 10.0), _fixed("2", 20.0)))
        updated = allocation.with_item(_fixed("1", 15.0))
        assert [item.id for item in updated.items] == ["1", "2"]
        assert updated.get("1").fixed_amount == 15.0

    def test_other_total(self):
        allocation = AllocationSet(items=(_fixed("1", 10.0), _fixed("2", 20.0)))
        assert allocation.other_total("1") == 20.0

    def test_remaining_item_balances_schedule(self):
        allocation = AllocationSet(
            items=(_percent("1", 30.0, 3000.0), _remaining("2", 0.0)),
            grand_total=10000.0,
        ).recompute_remaining()

        remaining = allocation.get("2")
        assert remaining.computed_amount == 7000.0
        assert remaining.dirty is True
        assert allocation.summary().is_complete is True

    def test_unchanged_remaining_item_stays_clean(self):
        allocation = AllocationSet(
            items=(_percent("1", 30.0, 3000.0), _remaining("2", 7000.0)),
            grand_total=10000.0,
        ).recompute_remaining()
        assert allocation.get("2").dirty is False

    def test_several_remaining_items_are_computed_in_order(self):
        allocation = AllocationSet(
            items=(_fixed("1", 4000.0), _remaining("2"), _remaining("3")),
            grand_total=10000.0,
        ).recompute_remaining()

        assert allocation.get("2").computed_amount == 6000.0
        assert allocation.get("3").computed_amount == 0.0

    def test_grand_total_change_recomputes_percentages_not_fixed(self):
        allocation = AllocationSet(
            items=(_percent("1", 10.0, 1000.0), _fixed("2", 500.0), _remaining("3", 8500.0)),
            grand_total=10000.0,
        ).with_grand_total(20000.0)

        assert allocation.get("1").computed_amount == pytest.approx(2000.0)
        assert allocation.get("1").dirty is True
        assert allocation.get("2").computed_amount == 500.0
        assert allocation.get("2").dirty is False
        assert allocation.get("3").computed_amount == pytest.approx(17500.0)
        assert allocation.summary().is_complete is True


class TestSortOrderEdits:
    """Test sort_order stays within the stored INTEGER range."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("3", 3),
            (2.9, 2),
            ("", 0),
            ("1e300", 2**63 - 1),
            ("-1e300", -(2**63)),
            (10**30, 2**63 - 1),
        ],
    )
    def test_sort_order(self, value, expected):
        updated = with_field(_fixed("1", 10.0), "sort_order", value, 100.0)
        assert updated.sort_order == expected
