"""Numeric uid/gid range expressions.

A range expression is a comma-separated list of terms:

    n        a single id                        [n, n]
    a-b      an inclusive range                 [a, b]
    a-       everything from a upwards          [a, inf)
    -b       everything up to b                 (-inf, b]
    ^n       everything except n                (-inf, n-1] + [n+1, inf)
    ^a-b     everything outside a-b             (-inf, a-1] + [b+1, inf)

Either side of a negated range may be left open, in which case that side
contributes no interval at all (``^-99`` is ``[100, inf)``). Both sides
open (``^-``) would exclude everything and is rejected.

Example:
    "-99,300-399,1000-" -> [(None, 99), (300, 399), (1000, None)]
"""

import re

from .errors import InvalidExpressionError

Interval = tuple[int | None, int | None]

_SINGLE = re.compile(r"([0-9]+)")
_RANGE = re.compile(r"([0-9]*)-([0-9]*)")
_NOT_SINGLE = re.compile(r"\^([0-9]+)")
_NOT_RANGE = re.compile(r"\^([0-9]*)-([0-9]*)")


def _bound(text: str) -> int | None:
    return int(text) if text else None


def _parse_term(term: str) -> list[Interval]:
    """Convert a single term into one or two intervals."""
    if match := _SINGLE.fullmatch(term):
        value = int(match.group(1))
        return [(value, value)]
    if match := _RANGE.fullmatch(term):
        return [(_bound(match.group(1)), _bound(match.group(2)))]
    if match := _NOT_SINGLE.fullmatch(term):
        value = int(match.group(1))
        return [(None, value - 1), (value + 1, None)]
    if match := _NOT_RANGE.fullmatch(term):
        low, high = match.groups()
        intervals: list[Interval] = []
        if low:
            intervals.append((None, int(low) - 1))
        if high:
            intervals.append((int(high) + 1, None))
        if not intervals:
            raise ValueError(term)
        return intervals
    raise ValueError(term)


class RangeFilter:
    """Immutable set of integer intervals parsed from a range expression.

    An empty expression produces an empty filter. Callers choose what an
    empty filter means: :meth:`matches` treats it as "nothing", which is
    what an exclusion list wants, while :meth:`matches_or_unrestricted`
    treats it as "everything", which is what an omitted query bound wants.
    """

    __slots__ = ("_expression", "_intervals")

    def __init__(self, expression: str | None = None):
        self._expression = expression or ""
        intervals: list[Interval] = []
        if self._expression:
            for term in self._expression.split(","):
                try:
                    intervals.extend(_parse_term(term))
                except ValueError:
                    raise InvalidExpressionError(self._expression, term) from None
        self._intervals = tuple(intervals)

    @classmethod
    def parse(cls, expression: str | None) -> "RangeFilter":
        """Parse ``expression``, raising InvalidExpressionError on bad terms."""
        return cls(expression)

    @property
    def expression(self) -> str:
        return self._expression

    @property
    def intervals(self) -> tuple[Interval, ...]:
        return self._intervals

    @property
    def is_empty(self) -> bool:
        return not self._intervals

    def matches(self, value: int) -> bool:
        """Return True if ``value`` lies inside at least one interval."""
        for low, high in self._intervals:
            if low is not None and value < low:
                continue
            if high is not None and value > high:
                continue
            return True
        return False

    def matches_or_unrestricted(self, value: int) -> bool:
        """Like :meth:`matches`, but an empty filter accepts every value."""
        if not self._intervals:
            return True
        return self.matches(value)

    def boundary_values(self) -> list[int]:
        """Return the finite interval endpoints, sorted ascending.

        Used to check a query against ids that were excluded at scan time.
        """
        corners = []
        for low, high in self._intervals:
            if low is not None:
                corners.append(low)
            if high is not None and (low is None or high > low):
                corners.append(high)
        return sorted(corners)

    def __eq__(self, other) -> bool:
        if not isinstance(other, RangeFilter):
            return NotImplemented
        return self._intervals == other._intervals

    def __hash__(self) -> int:
        return hash(self._intervals)

    def __repr__(self):
        return f"<RangeFilter(expression='{self._expression}', intervals={list(self._intervals)})>"
