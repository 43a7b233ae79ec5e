"""Hierarchical position IDs.

A node ID is a run of two-digit segments, one per tree level, each in
1..99: root "03", its second child "0302", that child's first child
"030201". A child's ID is always its parent's ID plus its 1-based sibling
position, so the whole forest can be renumbered from scratch with one
depth-first pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from uitree.graph.errors import TooManySiblingsError

if TYPE_CHECKING:
    from uitree.graph.nodes import UINode

logger = logging.getLogger(__name__)

SEGMENT_WIDTH = 2
MAX_SEGMENT = 99


@dataclass(frozen=True)
class ParsedId:
    """Decoded form of a hierarchical ID.

    Attributes:
        segments: Segment values from root to leaf; empty when invalid.
        is_valid: False for any malformed input.
    """

    segments: tuple[int, ...] = ()
    is_valid: bool = False

    @property
    def depth(self) -> int:
        """Number of levels (1 for a root)."""
        return len(self.segments)


INVALID = ParsedId()


@dataclass(frozen=True)
class IdViolation:
    """A node whose ID does not match its position."""

    node_id: str
    expected_id: str

    def __str__(self) -> str:
        return f"{self.node_id or '<empty>'} (expected {self.expected_id})"


def format_segment(value: int) -> str:
    """Zero-pad a segment value to two digits."""
    return str(value).zfill(SEGMENT_WIDTH)


class IdentifierCodec:
    """Encodes, decodes and reassigns hierarchical node IDs.

    Holds the monotonic root counter. Everything else is stateless.
    """

    def __init__(self) -> None:
        self._root_counter = 1

    @property
    def root_counter(self) -> int:
        """The segment value the next generated root ID will use."""
        return self._root_counter

    # ─────────────────────────────────────────────────────────────────────
    # Generation
    # ─────────────────────────────────────────────────────────────────────

    def next_root_id(self) -> str:
        """Return the next unused root ID and advance the counter.

        Raises:
            TooManySiblingsError: If the counter has passed 99.
        """
        if self._root_counter > MAX_SEGMENT:
            raise TooManySiblingsError(None, self._root_counter - 1)
        root_id = format_segment(self._root_counter)
        self._root_counter += 1
        return root_id

    def child_id(self, parent_id: str, index: int) -> str:
        """Return the ID of the child at 0-based *index* under *parent_id*.

        Raises:
            TooManySiblingsError: If index would need a segment above 99.
            ValueError: If index is negative.
        """
        if index < 0:
            raise ValueError(f"Sibling index must be >= 0, got {index}")
        if index + 1 > MAX_SEGMENT:
            raise TooManySiblingsError(parent_id, index)
        return parent_id + format_segment(index + 1)

    def reset(self) -> None:
        """Restart the root counter at 1."""
        self._root_counter = 1

    def reseed(self, forest: list[UINode]) -> None:
        """Seed the root counter from a wholesale-loaded forest.

        The counter becomes ``max(root segment) + 1``, or 1 for an empty
        forest. Roots with malformed IDs are ignored.
        """
        highest = 0
        for root in forest:
            parsed = self.parse(root.id)
            if parsed.is_valid:
                highest = max(highest, parsed.segments[0])
        self._root_counter = highest + 1
        logger.debug("Root counter reseeded to %d", self._root_counter)

    def restore(self, counter: int) -> None:
        """Put the root counter back to a previously read ``root_counter``."""
        self._root_counter = counter

    def observe_root_id(self, root_id: str) -> None:
        """Advance the counter past a caller-supplied root ID."""
        parsed = self.parse(root_id)
        if parsed.is_valid and parsed.depth == 1:
            self._root_counter = max(self._root_counter, parsed.segments[0] + 1)

    # ─────────────────────────────────────────────────────────────────────
    # Decoding
    # ─────────────────────────────────────────────────────────────────────

    @staticmethod
    def parse(node_id: str) -> ParsedId:
        """Split an ID into segment values.

        Returns ``INVALID`` (no segments) unless the ID is a non-empty,
        even-length string of two-digit segments each within 1..99.
        """
        if not isinstance(node_id, str) or not node_id or len(node_id) % SEGMENT_WIDTH:
            return INVALID
        segments: list[int] = []
        for i in range(0, len(node_id), SEGMENT_WIDTH):
            part = node_id[i : i + SEGMENT_WIDTH]
            if not (part.isascii() and part.isdigit()):
                return INVALID
            value = int(part)
            if not 1 <= value <= MAX_SEGMENT:
                return INVALID
            segments.append(value)
        return ParsedId(tuple(segments), True)

    def is_valid(self, node_id: str) -> bool:
        """True if *node_id* is a well-formed hierarchical ID."""
        return self.parse(node_id).is_valid

    def depth(self, node_id: str) -> int:
        """Number of levels in *node_id* (0 when invalid)."""
        return self.parse(node_id).depth

    def parent_id(self, node_id: str) -> str | None:
        """Drop the last segment; None for a root or an invalid ID."""
        parsed = self.parse(node_id)
        if parsed.depth <= 1:
            return None
        return node_id[:-SEGMENT_WIDTH]

    def position(self, node_id: str) -> int:
        """0-based sibling position encoded in the last segment (0 if invalid)."""
        parsed = self.parse(node_id)
        if not parsed.is_valid:
            return 0
        return parsed.segments[-1] - 1

    # ─────────────────────────────────────────────────────────────────────
    # Whole-forest passes
    # ─────────────────────────────────────────────────────────────────────

    def renumber_forest(self, forest: list[UINode]) -> list[UINode]:
        """Reassign every ID from scratch in current sibling order.

        Roots restart at "01"; the counter ends one past the last root.
        Mutates the nodes in place and returns the same forest.

        Raises:
            TooManySiblingsError: If any level holds more than 99 nodes.
        """
        self.reset()
        for root in forest:
            root.id = self.next_root_id()
            self._renumber_children(root)
        return forest

    def _renumber_children(self, parent: UINode) -> None:
        for index, child in enumerate(parent.children):
            child.id = self.child_id(parent.id, index)
            self._renumber_children(child)

    def violations(self, forest: list[UINode]) -> list[IdViolation]:
        """List nodes whose ID breaks the position invariant.

        Roots must carry a single valid segment and be unique; every child
        must equal its parent's ID plus its 1-based position.
        """
        found: list[IdViolation] = []
        seen_roots: set[str] = set()
        for index, root in enumerate(forest):
            parsed = self.parse(root.id)
            if not parsed.is_valid or parsed.depth != 1 or root.id in seen_roots:
                found.append(IdViolation(root.id, format_segment(min(index + 1, MAX_SEGMENT))))
            seen_roots.add(root.id)
            self._collect_child_violations(root, found)
        return found

    def _collect_child_violations(self, parent: UINode, found: list[IdViolation]) -> None:
        for index, child in enumerate(parent.children):
            expected = parent.id + format_segment(min(index + 1, MAX_SEGMENT))
            if child.id != expected or index + 1 > MAX_SEGMENT:
                found.append(IdViolation(child.id, expected))
            self._collect_child_violations(child, found)

    def is_consistent(self, forest: list[UINode]) -> bool:
        """True if every ID in the forest matches its position."""
        return not self.violations(forest)


__all__ = [
    "IdentifierCodec",
    "IdViolation",
    "ParsedId",
    "INVALID",
    "MAX_SEGMENT",
    "format_segment",
]
