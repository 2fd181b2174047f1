"""
Unit tests for the movement validator.
"""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from deepstaq.models import StockMovementType
from deepstaq.services.movement_validator import (
    MutationMode, ProposedMovement, validate_mutation, validate_opening_stock
)

IN = StockMovementType.IN
OUT = StockMovementType.OUT
D1 = date(2024, 3, 1)
D2 = date(2024, 3, 2)
D3 = date(2024, 3, 3)


def product(opening):
    return SimpleNamespace(opening_stock=Decimal(str(opening)))


def mv(day, movement_type, quantity, movement_id=None):
    return ProposedMovement(movement_date=day, type=movement_type, quantity=Decimal(str(quantity)), id=movement_id)


class TestCreate:

    def test_out_beyond_opening_stock_is_rejected(self):
        result = validate_mutation(product(10), [], mv(D1, OUT, 15), MutationMode.CREATE)
        assert not result.accepted
        assert result.reason == 'Operation would result in negative stock'
        assert result.failing_date == D1
        assert result.balance == Decimal('-5')

    def test_out_covered_by_same_day_in_is_accepted(self):
        existing = [mv(D1, IN, 20, 1)]
        result = validate_mutation(product(10), existing, mv(D1, OUT, 15), MutationMode.CREATE)
        assert result.accepted

    def test_out_draining_exactly_to_zero_is_accepted(self):
        result = validate_mutation(product(6), [], mv(D1, OUT, 6), MutationMode.CREATE)
        assert result.accepted

    def test_backdated_out_starving_later_out_is_rejected(self):
        # Balance at D1 stays 5, but the D3 OUT would then see -1
        existing = [mv(D3, OUT, 4, 1)]
        result = validate_mutation(product(10), existing, mv(D1, OUT, 5), MutationMode.CREATE)
        assert not result.accepted
        assert result.failing_date == D3
        assert result.balance == Decimal('-1')

    def test_in_is_always_accepted_on_consistent_history(self):
        result = validate_mutation(product(0), [], mv(D2, IN, 1), MutationMode.CREATE)
        assert result.accepted


class TestUpdate:

    def test_old_version_is_excluded_from_base(self):
        existing = [mv(D1, OUT, 5, 1)]
        # Raising the OUT to 10 is fine with opening 10 because the old 5 no longer counts
        result = validate_mutation(product(10), existing, mv(D1, OUT, 10, 1), MutationMode.UPDATE)
        assert result.accepted

    def test_increase_beyond_balance_is_rejected(self):
        existing = [mv(D1, OUT, 5, 1)]
        result = validate_mutation(product(10), existing, mv(D1, OUT, 11, 1), MutationMode.UPDATE)
        assert not result.accepted
        assert result.balance == Decimal('-1')

    def test_moving_in_later_than_dependent_out_is_rejected(self):
        existing = [mv(D1, IN, 5, 1), mv(D2, OUT, 3, 2)]
        result = validate_mutation(product(0), existing, mv(D3, IN, 5, 1), MutationMode.UPDATE)
        assert not result.accepted
        assert result.failing_date == D2
        assert result.balance == Decimal('-3')

    def test_switching_in_to_out_is_checked(self):
        existing = [mv(D1, IN, 5, 1)]
        result = validate_mutation(product(2), existing, mv(D1, OUT, 5, 1), MutationMode.UPDATE)
        assert not result.accepted


class TestDelete:

    def test_deleting_in_that_backs_later_out_is_rejected(self):
        existing = [mv(D1, IN, 5, 1), mv(D3, OUT, 3, 2)]
        result = validate_mutation(product(0), existing, existing[0], MutationMode.DELETE)
        assert not result.accepted
        assert result.reason == 'Deletion would result in negative stock'
        assert result.failing_date == D3
        assert result.balance == Decimal('-3')

    def test_deleting_out_is_accepted(self):
        existing = [mv(D1, IN, 5, 1), mv(D3, OUT, 3, 2)]
        result = validate_mutation(product(0), existing, existing[1], MutationMode.DELETE)
        assert result.accepted

    def test_deleting_unneeded_in_is_accepted(self):
        existing = [mv(D1, IN, 5, 1), mv(D3, OUT, 3, 2)]
        result = validate_mutation(product(3), existing, existing[0], MutationMode.DELETE)
        assert result.accepted


class TestOpeningStock:

    def test_lowering_opening_below_history_is_rejected(self):
        movements = [mv(D1, OUT, 4, 1)]
        result = validate_opening_stock(Decimal('3'), movements)
        assert not result.accepted
        assert result.failing_date == D1

    def test_lowering_opening_within_history_is_accepted(self):
        movements = [mv(D1, OUT, 4, 1)]
        assert validate_opening_stock(Decimal('4'), movements).accepted
