"""Tests for the split engine."""

from decimal import Decimal

import pytest
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from fairshare.exceptions import ValidationError, ValidationErrorCode
from fairshare.models import SplitType
from fairshare.splits import (
    EqualSplit,
    ExactSplit,
    PercentageSplit,
    SplitSpec,
    calculate_equal_split,
    calculate_percentage_split,
    normalize_exact_split,
    split_amount,
    split_type_of,
)


class TestEqualSplit:
    """Equal splits with front-loaded remainders."""

    def test_remainder_goes_to_first_participant(self):
        assert calculate_equal_split(31000, 3) == [10334, 10333, 10333]

    def test_even_split(self):
        assert calculate_equal_split(30000, 3) == [10000, 10000, 10000]

    def test_odd_total_seven_ways(self):
        """4.5678 split 7 ways: remainder of 3 units on the first three."""
        shares = calculate_equal_split(45678, 7)
        assert shares == [6526, 6526, 6526, 6525, 6525, 6525, 6525]
        assert sum(shares) == 45678

    def test_zero_participants(self):
        assert calculate_equal_split(10000, 0) == []

    def test_zero_total(self):
        assert calculate_equal_split(0, 4) == [0, 0, 0, 0]

    def test_single_participant_gets_everything(self):
        assert calculate_equal_split(12345, 1) == [12345]

    @pytest.mark.parametrize("total", [0, 1, 9999, 10000, 31000, 45678, 1_000_001])
    @pytest.mark.parametrize("count", [1, 2, 3, 7, 13])
    def test_shares_always_sum_to_total(self, total, count):
        shares = calculate_equal_split(total, count)
        assert sum(shares) == total
        assert max(shares) - min(shares) <= 1


class TestPercentageSplit:
    """Percentage splits at 4-decimal precision."""

    def test_thirds_with_remainder(self):
        assert calculate_percentage_split(10000, ["33.3333", "66.6667"]) == [3334, 6666]

    def test_accepts_float_percentages(self):
        assert calculate_percentage_split(10000, [33.3333, 66.6667]) == [3334, 6666]

    def test_three_way_thirds(self):
        shares = calculate_percentage_split(10000, ["33.3333", "33.3333", "33.3334"])
        assert shares == [3334, 3333, 3333]

    def test_exact_halves(self):
        assert calculate_percentage_split(90000, [Decimal("50"), Decimal("50")]) == [
            45000,
            45000,
        ]

    def test_zero_percent_participant(self):
        assert calculate_percentage_split(10000, ["0", "100"]) == [0, 10000]

    def test_empty(self):
        assert calculate_percentage_split(10000, []) == []

    @pytest.mark.parametrize("total", [0, 1, 777, 45678, 9_999_999])
    def test_sums_to_total(self, total):
        shares = calculate_percentage_split(total, ["12.5", "37.5", "33.3333", "16.6667"])
        assert sum(shares) == total

    def test_sum_just_under_hundred_still_exact(self):
        """33.33 x 3 is within tolerance; the 100-unit gap wraps around."""
        shares = calculate_percentage_split(1_000_000, ["33.33", "33.33", "33.33"])
        assert shares == [333334, 333333, 333333]

    def test_sum_just_over_hundred_still_exact(self):
        """The overage is taken back from the front, one unit per pass."""
        shares = calculate_percentage_split(1_000_000, ["33.34", "33.34", "33.33"])
        assert shares == [333366, 333367, 333267]
        assert sum(shares) == 1_000_000

    def test_half_unit_percentages(self):
        shares = calculate_percentage_split(1_000_000, ["49.995", "49.995"])
        assert shares == [500000, 500000]


class TestNormalizeExactSplit:
    """Exact splits nudged onto the total."""

    def test_short_adds_from_front(self):
        assert normalize_exact_split([3333, 3333, 3333], 10000) == [3334, 3333, 3333]

    def test_over_subtracts_from_back(self):
        assert normalize_exact_split([3334, 3334, 3334], 10000) == [3334, 3333, 3333]

    def test_over_skips_zero_shares(self):
        assert normalize_exact_split([5000, 5001, 0], 10000) == [5000, 5000, 0]

    def test_over_never_goes_negative(self):
        assert normalize_exact_split([1, 0, 1], 0) == [0, 0, 0]

    def test_exact_match_unchanged(self):
        assert normalize_exact_split([2500, 7500], 10000) == [2500, 7500]

    def test_shortfall_wider_than_participants_wraps(self):
        assert normalize_exact_split([100, 100], 205) == [103, 102]

    def test_overage_wider_than_participants_wraps(self):
        assert normalize_exact_split([100, 100], 190) == [95, 95]

    def test_overage_drains_small_shares_then_continues(self):
        assert normalize_exact_split([3, 100], 50) == [0, 50]

    @pytest.mark.parametrize("total", [0, 1, 205, 10000, 1_000_000])
    def test_always_sums_to_total(self, total):
        shares = normalize_exact_split([100, 2500, 0, 7], total)
        assert sum(shares) == total
        assert min(shares) >= 0

    def test_does_not_mutate_input(self):
        shares = [3333, 3333, 3333]
        normalize_exact_split(shares, 10000)
        assert shares == [3333, 3333, 3333]

    def test_empty(self):
        assert normalize_exact_split([], 10000) == []


class TestSplitAmount:
    """Dispatch on the split specification."""

    def test_equal(self):
        assert split_amount(31000, EqualSplit(), 3) == [10334, 10333, 10333]

    def test_percentage(self):
        spec = PercentageSplit(percentages=(Decimal("33.3333"), Decimal("66.6667")))
        assert split_amount(10000, spec, 2) == [3334, 6666]

    def test_exact(self):
        spec = ExactSplit(amounts_scaled=(3333, 3333, 3333))
        assert split_amount(10000, spec, 3) == [3334, 3333, 3333]

    def test_percentage_length_mismatch(self):
        spec = PercentageSplit(percentages=(Decimal("100"),))
        with pytest.raises(ValidationError) as exc_info:
            split_amount(10000, spec, 2)
        assert exc_info.value.code == ValidationErrorCode.INVALID_LENGTH
        assert exc_info.value.field == "percentages"

    def test_exact_length_mismatch(self):
        spec = ExactSplit(amounts_scaled=(5000, 5000))
        with pytest.raises(ValidationError) as exc_info:
            split_amount(10000, spec, 3)
        assert exc_info.value.field == "amounts_scaled"

    def test_parses_tagged_union(self):
        adapter = TypeAdapter(SplitSpec)
        spec = adapter.validate_python({"kind": "percentage", "percentages": ["25", "75"]})
        assert isinstance(spec, PercentageSplit)
        assert split_amount(40000, spec, 2) == [10000, 30000]

    def test_exact_rejects_float_amounts(self):
        with pytest.raises(PydanticValidationError):
            ExactSplit(amounts_scaled=(1.5, 2.5))

    def test_split_type_of(self):
        assert split_type_of(EqualSplit()) == SplitType.EQUAL
        assert split_type_of(ExactSplit(amounts_scaled=(1,))) == SplitType.EXACT
