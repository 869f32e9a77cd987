"""The remix plan: an ordered, stage-gated edit decision list.

WHY: Between script generation and rendering a human may rewrite the
narration of each remix segment. The point at which that stops being
allowed is a correctness property of the pipeline: the renderer must see
exactly the plan that was locked. The boundary is enforced here and not
by whichever editing surface happens to be in front of the user.

HOW: RemixPlan owns a list of RemixSegment objects. Structural changes
(replace) are reserved for the orchestrator and are all-or-nothing: the
incoming segments are validated before the current list is touched. The
editing surface may only call edit_text(). freeze() locks the plan for
synthesis; every mutator checks the lock first.

RULES:
- Insertion order is the render order
- replace() is a full overwrite, never a merge
- original_end > original_start for every segment
- Segment ids are non-empty and unique within the plan
- new_text is non-empty (at replace, at edit, and re-checked at freeze)
- Once frozen, replace() and edit_text() raise PlanLockedError
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Iterator

from autoremix.core.models import RemixSegment


class PlanEditError(Exception):
    """Base class for rejected plan mutations."""


class PlanLockedError(PlanEditError):
    """Raised when the plan is mutated after it was locked for synthesis."""


class SegmentNotFoundError(PlanEditError, KeyError):
    """Raised when an edit targets a segment id that is not in the plan."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class InvalidEditError(PlanEditError, ValueError):
    """Raised when rewritten text would break the plan invariants."""


class PlanValidationError(ValueError):
    """Raised when generated segments violate the remix segment invariants."""


def validate_segments(segments: list[RemixSegment]) -> None:
    """Check a candidate plan against the remix segment invariants.

    RULES:
    - Raises PlanValidationError naming the first offending segment
    - Does not mutate anything
    """
    seen: set[str] = set()
    for index, segment in enumerate(segments, start=1):
        if not segment.id:
            raise PlanValidationError(
                "Segment #{} has an empty id".format(index)
            )
        if segment.id in seen:
            raise PlanValidationError(
                "Duplicate segment id '{}'".format(segment.id)
            )
        seen.add(segment.id)
        if not segment.original_end > segment.original_start:
            raise PlanValidationError(
                "Segment '{}' has originalEnd {} <= originalStart {}".format(
                    segment.id, segment.original_end, segment.original_start
                )
            )
        if not segment.new_text or not segment.new_text.strip():
            raise PlanValidationError(
                "Segment '{}' has empty newText".format(segment.id)
            )


class RemixPlan:
    """Ordered collection of remix segments with a one-way lock."""

    def __init__(self) -> None:
        self._segments: list[RemixSegment] = []
        self._frozen = False

    # ------------------------------------------------------------------
    # Orchestrator-only mutations
    # ------------------------------------------------------------------

    def replace(self, segments: Iterable[RemixSegment]) -> None:
        """Overwrite the whole plan with freshly generated segments.

        RULES:
        - Raises PlanLockedError if frozen
        - Raises PlanValidationError if any segment is invalid; the current
          plan is left untouched in that case
        """
        self._check_unlocked()
        candidate = list(segments)
        validate_segments(candidate)
        self._segments = candidate

    def freeze(self) -> None:
        """Lock the plan for synthesis. Idempotent."""
        validate_segments(self._segments)
        self._frozen = True

    # ------------------------------------------------------------------
    # Editing surface
    # ------------------------------------------------------------------

    def edit_text(self, segment_id: str, new_text: str) -> RemixSegment:
        """Rewrite one segment's narration in place.

        RULES:
        - Only new_text changes; ordering and every other field are untouched
        - Raises PlanLockedError if frozen
        - Raises SegmentNotFoundError for unknown ids
        - Raises InvalidEditError for empty / whitespace-only text
        """
        self._check_unlocked()
        segment = self.get(segment_id)
        if segment is None:
            raise SegmentNotFoundError(
                "Segment '{}' not found in plan".format(segment_id)
            )
        if not new_text or not new_text.strip():
            raise InvalidEditError("Rewritten text must not be empty")
        segment.new_text = new_text
        return segment

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def segments(self) -> tuple[RemixSegment, ...]:
        return tuple(self._segments)

    def snapshot(self) -> list[RemixSegment]:
        """Detached copies of the segments, safe to hand to readers."""
        return [dataclasses.replace(segment) for segment in self._segments]

    def get(self, segment_id: str) -> RemixSegment | None:
        for segment in self._segments:
            if segment.id == segment_id:
                return segment
        return None

    def to_list(self) -> list[dict]:
        return [segment.to_dict() for segment in self._segments]

    @property
    def total_duration(self) -> float:
        """Sum of the original window lengths, in seconds."""
        return sum(segment.duration for segment in self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[RemixSegment]:
        return iter(tuple(self._segments))

    def _check_unlocked(self) -> None:
        if self._frozen:
            raise PlanLockedError(
                "The remix plan is locked for synthesis and can no longer be edited"
            )
