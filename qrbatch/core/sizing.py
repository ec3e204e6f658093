"""Batch sizing calculator.

Turns an ordered unit count and a tenant's packaging configuration into the
number of buffer codes, unique codes and master cartons. Integer arithmetic
only.
"""

from dataclasses import asdict, dataclass

from qrbatch.core.errors import PreconditionFailedError, ValidationError

UNITS_PER_BUFFER_BLOCK = 1000


@dataclass(frozen=True)
class SizingResult:
    """Quantities derived for one batch.

    Attributes:
        total_units: Units ordered
        buffer_units: Extra codes for spoilage/misprints
        total_unique_qrs: Codes to generate (ordered + buffer)
        masters_count: Master cartons needed, last one possibly partial
    """

    total_units: int
    buffer_units: int
    total_unique_qrs: int
    masters_count: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def compute_sizing(
    total_units: int,
    units_per_master: int | None,
    buffer_per_1000: int | None,
) -> SizingResult:
    """Compute buffer, unique code and master counts for an order.

    Buffer is added per full block of 1000 ordered units, so orders below
    1000 units get no buffer. A partially filled final master still counts.

    Args:
        total_units: Units ordered, must be positive
        units_per_master: Codes packed per master carton, must be positive
        buffer_per_1000: Extra codes per full 1000 units, must be >= 0

    Returns:
        SizingResult

    Raises:
        ValidationError: If total_units is not a positive integer
        PreconditionFailedError: If the packaging values are missing or invalid
    """
    if not _is_int(total_units) or total_units <= 0:
        raise ValidationError(f"total_units must be a positive integer, got {total_units!r}")

    if not _is_int(units_per_master) or units_per_master <= 0:  # type: ignore[operator]
        raise PreconditionFailedError(
            f"units_per_master must be a positive integer, got {units_per_master!r}"
        )

    if not _is_int(buffer_per_1000) or buffer_per_1000 < 0:  # type: ignore[operator]
        raise PreconditionFailedError(
            f"buffer_per_1000 must be a non-negative integer, got {buffer_per_1000!r}"
        )

    buffer_units = (total_units // UNITS_PER_BUFFER_BLOCK) * buffer_per_1000
    total_unique_qrs = total_units + buffer_units
    # Ceiling division without floats
    masters_count = -(-total_unique_qrs // units_per_master)

    return SizingResult(
        total_units=total_units,
        buffer_units=buffer_units,
        total_unique_qrs=total_unique_qrs,
        masters_count=masters_count,
    )
