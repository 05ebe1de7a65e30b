"""Protocols for the platform collaborators that apply labels and comments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from prguard.types import ItemKey


@dataclass(frozen=True, slots=True)
class CommentRef:
    """Handle to an existing comment on an item."""

    id: int
    body: str = ""


@runtime_checkable
class LabelApplier(Protocol):
    """Adds and removes labels on an item. Adding a present label is a no-op."""

    async def add_labels(self, ref: ItemKey, names: Sequence[str]) -> None: ...

    async def remove_labels(self, ref: ItemKey, names: Sequence[str]) -> None: ...


@runtime_checkable
class CommentApplier(Protocol):
    """Finds, creates and updates comments on an item."""

    async def find_marker_comment(self, ref: ItemKey, marker: str) -> CommentRef | None:
        """Return the first comment whose body contains *marker*, or None."""
        ...

    async def create_comment(self, ref: ItemKey, body: str) -> None: ...

    async def update_comment(self, ref: ItemKey, comment: CommentRef, body: str) -> None: ...
