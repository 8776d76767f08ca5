"""Split engine: turn a total into per-participant shares that sum exactly."""

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ValidationError, ValidationErrorCode
from .models import SplitType
from .money import ScaledInt, ScaledPercentage, sum_scaled

logger = logging.getLogger(__name__)


def _distribute_remainder(
    shares: list[int], remainder: int, from_back: bool = False
) -> None:
    """
    Spread a leftover over the shares one unit at a time.

    A positive remainder adds units; a negative one removes them, skipping
    shares that are not positive. Passes repeat until the leftover is placed
    or, when removing, no positive share is left.
    """
    order = list(range(len(shares)))
    if from_back:
        order.reverse()

    if remainder > 0:
        rounds, extra = divmod(remainder, len(shares))
        for pos, i in enumerate(order):
            shares[i] += rounds + (1 if pos < extra else 0)
        return

    remaining = -remainder
    while remaining > 0:
        removed = False
        for i in order:
            if remaining == 0:
                break
            if shares[i] > 0:
                shares[i] -= 1
                remaining -= 1
                removed = True
        if not removed:
            break


def calculate_equal_split(total_scaled: int, participant_count: int) -> list[int]:
    """
    Split a total equally.

    The truncated base share goes to everyone; the leftover units go one at a
    time to the first participants.

    Example:
        calculate_equal_split(31000, 3) -> [10334, 10333, 10333]
    """
    if participant_count <= 0:
        return []

    base_share = total_scaled // participant_count
    remainder = total_scaled - base_share * participant_count

    shares = [base_share] * participant_count
    _distribute_remainder(shares, remainder)
    return shares


def calculate_percentage_split(
    total_scaled: int, percentages: Sequence[Decimal | int | str | float]
) -> list[int]:
    """
    Split a total by percentages held at 4-decimal precision.

    Percentages are not checked to sum to 100 here; run
    ``validation.assert_percentages`` first.

    Example:
        calculate_percentage_split(10000, ["33.3333", "66.6667"]) -> [3334, 6666]
    """
    if not percentages:
        return []

    shares = [ScaledPercentage(p).calculate_share(total_scaled) for p in percentages]
    remainder = total_scaled - sum_scaled(shares)
    _distribute_remainder(shares, remainder)
    return shares


def normalize_exact_split(shares_scaled: Sequence[int], total_scaled: int) -> list[int]:
    """
    Nudge explicit shares so they sum to the total.

    A shortfall is added one unit at a time from the first participant
    forward, wrapping around until the gap closes. An overage is removed one
    unit at a time from the last participant backward, skipping shares that
    are not positive, until the gap closes or every share is zero.
    """
    if not shares_scaled:
        return []

    adjusted = list(shares_scaled)
    diff = total_scaled - sum_scaled(adjusted)

    if diff > 0:
        _distribute_remainder(adjusted, diff)
    elif diff < 0:
        _distribute_remainder(adjusted, diff, from_back=True)

    if diff != 0:
        logger.debug(f"Normalized exact split by {diff} units")

    return adjusted


# ============================================================================
# Split Specifications
# ============================================================================


class EqualSplit(BaseModel):
    """Everyone pays the same, remainder front-loaded."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["equal"] = "equal"


class PercentageSplit(BaseModel):
    """Each participant pays a percentage of the total."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["percentage"] = "percentage"
    percentages: tuple[Decimal, ...]


class ExactSplit(BaseModel):
    """Each participant pays an explicit scaled amount."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["exact"] = "exact"
    amounts_scaled: tuple[ScaledInt, ...]


SplitSpec = Annotated[
    EqualSplit | PercentageSplit | ExactSplit, Field(discriminator="kind")
]


def split_type_of(spec: SplitSpec) -> SplitType:
    return SplitType(spec.kind)


def _check_length(values: Sequence, participant_count: int, field_name: str) -> None:
    if len(values) != participant_count:
        raise ValidationError(
            f"{field_name} has {len(values)} entries for "
            f"{participant_count} participants",
            ValidationErrorCode.INVALID_LENGTH,
            field_name,
        )


def split_amount(
    total_scaled: int, spec: SplitSpec, participant_count: int
) -> list[int]:
    """
    Compute shares for ``participant_count`` participants from a split spec.

    Args:
        total_scaled: Total to split
        spec: Equal, percentage or exact specification
        participant_count: Number of participants, in the spec's order

    Returns:
        Shares in participant order, summing to ``total_scaled``

    Raises:
        ValidationError: If the spec's payload does not match the participants
    """
    match spec:
        case EqualSplit():
            return calculate_equal_split(total_scaled, participant_count)
        case PercentageSplit(percentages=percentages):
            _check_length(percentages, participant_count, "percentages")
            return calculate_percentage_split(total_scaled, percentages)
        case ExactSplit(amounts_scaled=amounts):
            _check_length(amounts, participant_count, "amounts_scaled")
            return normalize_exact_split(amounts, total_scaled)
        case _:
            raise ValidationError(
                f"Unknown split specification: {spec!r}",
                ValidationErrorCode.INVALID_TYPE,
                "split",
            )
