"""
Segments and the Segment Merger

A committed segment set is always pairwise disjoint and sorted ascending by
start. New selections are folded into the set: every existing segment that
overlaps (or touches) the proposal is absorbed by widening the proposal, and
the fold repeats until nothing overlaps the grown interval.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable

from .exceptions import ValidationError

SEGMENT_COLORS = (
    "#0077BE",
    "#00A8E8",
    "#00C9FF",
    "#00E5FF",
    "#1DE9B6",
    "#00E676",
    "#69F0AE",
    "#B2FF59",
    "#76FF03",
    "#64DD17",
)

# Client timelines report times with millisecond noise; selections are kept at 2 decimals
TIME_PRECISION = 2


@dataclass(frozen=True)
class Segment:
    """A selected time range of the source video, in seconds."""

    start: float
    end: float
    color: str | None = None

    @property
    def duration(self) -> float:
        return self.end - self.start

    def overlaps(self, other: Segment) -> bool:
        return self.start <= other.end and other.start <= self.end

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "color": self.color}


@dataclass(frozen=True)
class MergeOutcome:
    segments: list[Segment]
    accepted: bool
    merged: bool


def color_for_index(index: int) -> str:
    return SEGMENT_COLORS[index % len(SEGMENT_COLORS)]


def is_disjoint_sorted(segments: list[Segment]) -> bool:
    """Check the committed-set invariant."""
    for prev, cur in zip(segments, segments[1:]):
        if prev.start > cur.start or prev.overlaps(cur):
            return False
    return all(seg.start < seg.end for seg in segments)


def fold_segment(existing: Iterable[Segment], proposed: Segment) -> MergeOutcome:
    """Fold ``proposed`` into ``existing`` and report what happened.

    ``existing`` is not modified. Degenerate proposals (end <= start) are
    rejected and the returned set equals the input.
    """
    remaining = list(existing)
    if proposed.end <= proposed.start:
        return MergeOutcome(segments=remaining, accepted=False, merged=False)

    current = proposed
    merged = False
    changed = True
    while changed:
        changed = False
        for seg in list(remaining):
            if current.overlaps(seg):
                current = Segment(
                    start=min(current.start, seg.start),
                    end=max(current.end, seg.end),
                    color=current.color,
                )
                remaining.remove(seg)
                merged = True
                changed = True

    remaining.append(current)
    remaining.sort(key=lambda s: s.start)
    if not is_disjoint_sorted(remaining):
        raise RuntimeError(f"Segment set lost disjointness after merge: {remaining}")
    return MergeOutcome(segments=remaining, accepted=True, merged=merged)


def merge_segment(existing: Iterable[Segment], proposed: Segment) -> list[Segment]:
    """Return the new disjoint, sorted set after folding in ``proposed``."""
    return fold_segment(existing, proposed).segments


def merge_segments(segments: Iterable[Segment]) -> list[Segment]:
    """Fold a whole sequence of proposals into a disjoint, sorted set."""
    committed: list[Segment] = []
    for seg in segments:
        committed = merge_segment(committed, seg)
    return committed


def parse_time(value: Any, label: str) -> float:
    """Coerce a client time value to seconds rounded to 2 decimals."""
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number")
    if not math.isfinite(number) or number < 0:
        raise ValidationError(f"{label} must be a finite, non-negative number")
    return round(number, TIME_PRECISION)


def parse_segments(payload: Any) -> list[Segment]:
    """Validate a client segment list (``[{start, end, color?}, ...]``).

    Raises ValidationError on an empty or malformed payload.
    """
    if not isinstance(payload, (list, tuple)) or not payload:
        raise ValidationError("segments must be a non-empty list")

    parsed: list[Segment] = []
    for i, item in enumerate(payload):
        if isinstance(item, Segment):
            item = item.to_dict()
        if not isinstance(item, dict):
            raise ValidationError(f"segments[{i}] must be an object")
        if "start" not in item or "end" not in item:
            raise ValidationError(f"segments[{i}] requires start and end")
        start = parse_time(item["start"], f"segments[{i}].start")
        end = parse_time(item["end"], f"segments[{i}].end")
        if end <= start:
            raise ValidationError(f"segments[{i}] must end after it starts")
        color = item.get("color")
        parsed.append(Segment(start=start, end=end, color=str(color) if color else None))
    return parsed
