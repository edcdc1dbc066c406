"""Temporal algebra — values that vary over date intervals.

A :data:`Temporal` is a list of :class:`Segment` objects covering all of
time: ascending, contiguous (a segment ends the day before the next one
starts), with an unbounded-past first segment and an unbounded-future last
one. ``None`` bounds mean "unbounded".

Evaluation values inside segments follow the engine convention: ``False``
means "not applicable" and ``None`` means "unknown".

Pure functions only. Misaligned timelines are defects and raise
:class:`~rulectl.domain.errors.TemporalInvariantError`.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Generic, TypeVar

from rulectl.domain.dates import offset_date, to_calendar_date
from rulectl.domain.errors import InvalidKeyword, TemporalInvariantError

T = TypeVar("T")
U = TypeVar("U")
V = TypeVar("V")


@dataclass(frozen=True)
class Period:
    """A closed date interval; ``None`` bounds are unbounded."""

    start: date | None = None
    end: date | None = None

    @classmethod
    def of(cls, start: date | str | None = None, end: date | str | None = None) -> Period:
        """Build a period from dates or date strings."""
        return cls(
            start=to_calendar_date(start) if start is not None else None,
            end=to_calendar_date(end) if end is not None else None,
        )

    def contains(self, day: date) -> bool:
        after_start = self.start is None or self.start <= day
        before_end = self.end is None or day <= self.end
        return after_start and before_end


@dataclass(frozen=True)
class Segment(Generic[T]):
    """One piece of a timeline: *value* holds from *start* to *end* inclusive."""

    start: date | None
    end: date | None
    value: T

    @property
    def period(self) -> Period:
        return Period(self.start, self.end)

    def contains(self, day: date) -> bool:
        return self.period.contains(day)


type Temporal[T] = list[Segment[T]]


# ---------------------------------------------------------------------------
# Period keywords
# ---------------------------------------------------------------------------

START_KEYWORDS: tuple[str, ...] = ("since", "from", "starting", "as of")
END_KEYWORDS: tuple[str, ...] = ("until", "up to", "before", "to")
POINT_KEYWORDS: tuple[str, ...] = ("on",)
# Accepted, but always yields the fully unbounded period for now.
CONTEXT_KEYWORDS: tuple[str, ...] = ("in",)

PERIOD_KEYWORDS: tuple[str, ...] = START_KEYWORDS + END_KEYWORDS + POINT_KEYWORDS + CONTEXT_KEYWORDS


def parse_period(keyword: str, day: date | None) -> Period:
    """Map a temporal marker and a date to a :class:`Period`.

    - start markers (``since``...) give ``[day, +inf)``
    - end markers (``until``...) give ``(-inf, day]``
    - ``on`` gives the single day ``[day, day]``
    - ``in`` gives ``(-inf, +inf)``

    Raises:
        InvalidKeyword: if *keyword* is not one of :data:`PERIOD_KEYWORDS`.
    """
    word = keyword.strip().lower()
    if word not in PERIOD_KEYWORDS:
        msg = f"The keyword {keyword!r} is not valid. Possible keywords are: {', '.join(PERIOD_KEYWORDS)}"
        raise InvalidKeyword(msg, keyword=keyword)
    if word in CONTEXT_KEYWORDS:
        return Period()
    if word in POINT_KEYWORDS:
        return Period(day, day)
    if word in START_KEYWORDS:
        return Period(day, None)
    return Period(None, day)


# ---------------------------------------------------------------------------
# Construction and pointwise transforms
# ---------------------------------------------------------------------------


def pure(value: T) -> Temporal[T]:
    """A timeline holding *value* at every instant."""
    return [Segment(None, None, value)]


def create_temporal_evaluation(value: Any, period: Period | None = None) -> Temporal[Any]:
    """A timeline that is *value* during *period* and ``False`` elsewhere."""
    period = period or Period()
    temporal: Temporal[Any] = [Segment(period.start, period.end, value)]
    if period.start is not None:
        temporal.insert(0, Segment(None, offset_date(period.start, -1), False))
    if period.end is not None:
        temporal.append(Segment(offset_date(period.end, 1), None, False))
    return temporal


def map_temporal(fn: Callable[[T], U], temporal: Temporal[T]) -> Temporal[U]:
    """Apply *fn* to each segment value, keeping the segment bounds."""
    return [Segment(seg.start, seg.end, fn(seg.value)) for seg in temporal]


def compare_start_date(a: date | None, b: date | None) -> int:
    """Order two start bounds; an unbounded start comes first."""
    if a == b:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    return -1 if a < b else 1


def compare_end_date(a: date | None, b: date | None) -> int:
    """Order two end bounds; an unbounded end comes last."""
    if a == b:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    return -1 if a < b else 1


# ---------------------------------------------------------------------------
# Merging timelines
# ---------------------------------------------------------------------------


def zip_temporals(first: Temporal[T], second: Temporal[U]) -> Temporal[tuple[T, U]]:
    """Intersect two timelines, pairing the values that hold at each instant.

    Both timelines must start together. Whenever one head segment ends
    before the other, the longer head is cut the day after and the
    remainder is compared with the next segment. Linear in the total
    segment count.
    """
    rest1: deque[Segment[T]] = deque(first)
    rest2: deque[Segment[U]] = deque(second)
    zipped: Temporal[tuple[T, U]] = []

    while rest1 or rest2:
        if not rest1 or not rest2:
            msg = "Timelines do not cover the same span"
            raise TemporalInvariantError(msg)
        head1 = rest1.popleft()
        head2 = rest2.popleft()
        if head1.start != head2.start:
            msg = f"Timeline heads are misaligned: {head1.start} != {head2.start}"
            raise TemporalInvariantError(msg)

        comparison = compare_end_date(head1.end, head2.end)
        pair = (head1.value, head2.value)
        if comparison == 0:
            zipped.append(Segment(head1.start, head1.end, pair))
        elif comparison > 0:
            assert head2.end is not None
            zipped.append(Segment(head2.start, head2.end, pair))
            rest1.appendleft(replace(head1, start=offset_date(head2.end, 1)))
        else:
            assert head1.end is not None
            zipped.append(Segment(head1.start, head1.end, pair))
            rest2.appendleft(replace(head2, start=offset_date(head1.end, 1)))

    return zipped


def lift_temporal2(
    fn: Callable[[T, U], V],
    first: Temporal[T],
    second: Temporal[U],
) -> Temporal[V]:
    """Combine two timelines pointwise with a binary function."""
    return map_temporal(lambda pair: fn(pair[0], pair[1]), zip_temporals(first, second))


def concat_temporals(temporals: Iterable[Temporal[T]]) -> Temporal[tuple[T, ...]]:
    """Combine several timelines into one timeline of value tuples."""
    combined: Temporal[tuple[T, ...]] = pure(())
    for temporal in temporals:
        combined = lift_temporal2(lambda values, value: (*values, value), combined, temporal)
    return combined


def narrow_temporal_value(period: Period, temporal: Temporal[Any]) -> Temporal[Any]:
    """Keep *temporal* during *period*; every other instant becomes ``False``."""
    return lift_temporal2(
        lambda value, active: value if active else False,
        temporal,
        create_temporal_evaluation(True, period),
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def value_at(temporal: Sequence[Segment[T]], day: date) -> T:
    """Return the value holding on *day*.

    Raises:
        TemporalInvariantError: if no segment covers *day*.
    """
    for segment in temporal:
        if segment.contains(day):
            return segment.value
    msg = f"No segment covers {day.isoformat()}"
    raise TemporalInvariantError(msg)


def is_well_formed(temporal: Sequence[Segment[Any]]) -> bool:
    """Check ordering, contiguity, and full coverage of *temporal*."""
    if not temporal:
        return False
    if temporal[0].start is not None or temporal[-1].end is not None:
        return False
    for previous, current in zip(temporal, temporal[1:], strict=False):
        if previous.end is None or current.start is None:
            return False
        if current.start != offset_date(previous.end, 1):
            return False
    return True


def period_average(temporal: Sequence[Segment[Any]]) -> Any:
    """Collapse a numeric timeline into one scalar.

    Not-applicable segments are dropped. Open-ended timelines take the
    value of their open end; timelines open on both ends take the mean of
    the first and last remaining values. Bounded timelines use a mean
    weighted by day count.
    """
    remaining = [seg for seg in temporal if seg.value is not False]
    if not remaining:
        return False
    first = remaining[0]
    last = remaining[-1]

    if first.start is None or last.end is None:
        if first.start is not None:
            return last.value
        if last.end is not None:
            return first.value
        # TODO: weight the open-ended mean once a horizon date is configurable.
        if first.value is None or last.value is None:
            return None
        return (first.value + last.value) / 2

    if any(seg.value is None for seg in remaining):
        return None

    total_weight = 0
    weighted_sum = 0.0
    for seg in remaining:
        assert seg.start is not None and seg.end is not None
        weight = (seg.end - seg.start).days + 1
        total_weight += weight
        weighted_sum += seg.value * weight
    return weighted_sum / total_weight


def temporal_to_dicts(temporal: Sequence[Segment[Any]]) -> list[dict[str, Any]]:
    """Serialize a timeline to plain dicts with ISO dates."""
    return [
        {
            "start": seg.start.isoformat() if seg.start else None,
            "end": seg.end.isoformat() if seg.end else None,
            "value": seg.value,
        }
        for seg in temporal
    ]
