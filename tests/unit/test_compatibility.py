"""
Unit tests for check_compatibility() and compatible_orders().

Incoming order throughout: offers 10 X, wants 20 Y. A resting order must
offer Y, want X, offer at least 20 Y and ask at most 10 X.
"""

import pytest

from swapbook import IncompatibilityReason, check_compatibility, compatible_orders
from tests.conftest import X, Y, make_order


class TestCompatibilityRules:

    def test_exact_counter_order_is_compatible(self, incoming):
        candidate = make_order(20, 10)
        check = check_compatibility(incoming, candidate)
        assert check.is_compatible
        assert check.reason is None
        assert check.order is candidate

    def test_same_direction_is_assets_not_matching(self, incoming):
        # Offers X for Y like the incoming order instead of the inverse.
        candidate = make_order(20, 10, source=X, target=Y)
        check = check_compatibility(incoming, candidate)
        assert not check.is_compatible
        assert check.reason == IncompatibilityReason.ASSETS_NOT_MATCHING

    def test_one_side_matching_is_not_enough(self, incoming):
        candidate = make_order(20, 10, source=Y, target="0xcccc")
        assert check_compatibility(incoming, candidate).reason == IncompatibilityReason.ASSETS_NOT_MATCHING

    def test_offering_too_little_is_too_few_source_assets(self, incoming):
        candidate = make_order(19, 10)
        assert check_compatibility(incoming, candidate).reason == IncompatibilityReason.TOO_FEW_SOURCE_ASSETS

    def test_asking_too_much_is_too_many_target_assets(self, incoming):
        candidate = make_order(20, 11)
        assert check_compatibility(incoming, candidate).reason == IncompatibilityReason.TOO_MANY_TARGET_ASSETS

    def test_offering_more_than_wanted_is_compatible(self, incoming):
        assert check_compatibility(incoming, make_order(200, 10)).is_compatible

    def test_asking_less_than_budget_is_compatible(self, incoming):
        assert check_compatibility(incoming, make_order(20, 1)).is_compatible

    def test_rules_reported_in_order(self, incoming):
        # Fails both amount rules; the source rule is reported first.
        candidate = make_order(5, 50)
        assert check_compatibility(incoming, candidate).reason == IncompatibilityReason.TOO_FEW_SOURCE_ASSETS

        # Wrong assets and wrong amounts; the asset rule wins.
        candidate = make_order(5, 50, source=X, target=Y)
        assert check_compatibility(incoming, candidate).reason == IncompatibilityReason.ASSETS_NOT_MATCHING


class TestCompatibleOrders:

    def test_mixed_book(self, incoming):
        perfect = make_order(20, 10, id="0x01")
        same_assets = make_order(20, 10, source=X, target=Y, id="0x02")
        too_few = make_order(19, 10, id="0x03")
        too_expensive = make_order(20, 11, id="0x04")
        generous = make_order(200, 10, id="0x05")

        result = compatible_orders(incoming, [perfect, same_assets, too_few, too_expensive, generous])

        assert result == [perfect, generous]

    def test_empty_input(self, incoming):
        assert compatible_orders(incoming, []) == []

    @pytest.mark.parametrize("source_amount,target_amount,expected", [
        (20, 10, None),
        (19, 10, IncompatibilityReason.TOO_FEW_SOURCE_ASSETS),
        (20, 11, IncompatibilityReason.TOO_MANY_TARGET_ASSETS),
        (1, 1, IncompatibilityReason.TOO_FEW_SOURCE_ASSETS),
        (10**6, 10, None),
    ])
    def test_amount_boundaries(self, incoming, source_amount, target_amount, expected):
        assert check_compatibility(incoming, make_order(source_amount, target_amount)).reason == expected
