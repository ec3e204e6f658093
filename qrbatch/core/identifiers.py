"""Unique identifier generation for unit codes and master cartons.

Identifiers are ULIDs (48-bit millisecond timestamp + 80-bit random tail)
behind a short namespace prefix, e.g. ``QR_01J9Z3...`` for a unit code and
``MC_01J9Z3...`` for a master carton. They sort lexicographically in
generation order and stay collision-resistant across processes.
"""

import secrets
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from ulid import ULID

from qrbatch.core.errors import IdentifierCollisionError, InternalError, ValidationError
from qrbatch.infra.logging import get_logger

logger = get_logger(__name__)

CODE_PREFIX = "QR_"
MASTER_PREFIX = "MC_"
REQUEST_PREFIX = "req_"

_ULID_MAX = (1 << 128) - 1
_ULID_LENGTH = 26
# Bits of the random step taken when a fresh value does not sort after the last one
_STEP_BITS = 48


class IdentifierGenerator(ABC):
    """Produces ordered sequences of distinct identifiers."""

    prefix: str

    @abstractmethod
    def generate(self, n: int) -> list[str]:
        """Generate ``n`` identifiers in strictly increasing order.

        Args:
            n: Number of identifiers, must be >= 0

        Returns:
            List of n identifiers

        Raises:
            ValidationError: If n is negative
        """

    def _check_count(self, n: int) -> None:
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise ValidationError(f"Identifier count must be a non-negative integer, got {n!r}")


class UlidGenerator(IdentifierGenerator):
    """Monotonic ULID generator.

    Every identifier gets a freshly randomized tail. When the fresh value does
    not sort after the last one issued (same millisecond, or the clock stepped
    back) the last value is advanced by a random step instead, so output
    from one instance is strictly increasing and consecutive codes do not
    differ by a predictable amount.
    """

    def __init__(self, prefix: str = CODE_PREFIX) -> None:
        self.prefix = prefix
        self._last: int | None = None
        self._lock = threading.Lock()

    def _next_value(self) -> int:
        value = int(ULID())
        if self._last is not None and value <= self._last:
            value = self._last + 1 + secrets.randbits(_STEP_BITS)
            if value > _ULID_MAX:
                raise InternalError("ULID space exhausted")
        self._last = value
        return value

    def generate(self, n: int) -> list[str]:
        self._check_count(n)
        if n == 0:
            return []

        with self._lock:
            values = [self._next_value() for _ in range(n)]

        return [f"{self.prefix}{ULID.from_int(value)}" for value in values]

    def new_id(self) -> str:
        return self.generate(1)[0]


class SequenceGenerator(IdentifierGenerator):
    """Deterministic counter-based generator for tests and dry runs."""

    def __init__(self, prefix: str = CODE_PREFIX, start: int = 1) -> None:
        self.prefix = prefix
        self._next = start
        self._lock = threading.Lock()

    def generate(self, n: int) -> list[str]:
        self._check_count(n)
        with self._lock:
            first = self._next
            self._next += n
        # 12 digits keeps these too short to decode as ULIDs
        return [f"{self.prefix}{value:012d}" for value in range(first, first + n)]


def ensure_distinct(identifiers: Iterable[str], kind: str) -> None:
    """Reject an identifier set that contains a duplicate.

    Raises:
        IdentifierCollisionError: On the first repeated identifier
    """
    seen: set[str] = set()
    for identifier in identifiers:
        if identifier in seen:
            logger.error("Duplicate identifier generated", kind=kind, identifier=identifier)
            raise IdentifierCollisionError(f"Duplicate {kind} identifier generated: {identifier}")
        seen.add(identifier)


def identifier_timestamp(identifier: str) -> datetime | None:
    """Decode the generation time embedded in a prefixed ULID.

    Returns:
        Timezone-aware UTC datetime, or None if the identifier is not a ULID
    """
    raw = identifier[-_ULID_LENGTH:]
    if len(raw) != _ULID_LENGTH:
        return None
    try:
        return ULID.from_str(raw).datetime
    except ValueError:
        return None


_request_ids = UlidGenerator(prefix=REQUEST_PREFIX)


def new_request_id() -> str:
    """Fresh traceability id for one API call, e.g. ``req_01J9Z3...``."""
    return _request_ids.new_id()
