"""Checkbox selection over the rows of the current view."""

from __future__ import annotations

from typing import Any, FrozenSet, Iterable, Optional, Sequence, Set


class SelectionModel:
    """Selected trip ids plus the anchor used for shift-click ranges.

    The anchor is the index of the last row toggled *without* the range
    modifier. Range toggles apply to ``view[anchor:index]`` (inclusive, either
    direction) and leave the anchor where it was, so a second shift-click
    still extends from the same row.
    """

    def __init__(self) -> None:
        self._selected: Set[int] = set()
        self.anchor_index: Optional[int] = None

    @property
    def selected(self) -> FrozenSet[int]:
        return frozenset(self._selected)

    def __contains__(self, trip_id: object) -> bool:
        return trip_id in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def toggle(self, view: Sequence[Any], index: int, checked: bool, *, extend: bool = False) -> None:
        if not 0 <= index < len(view):
            raise ValueError(f"Row {index} is outside the current view of {len(view)} rows")
        if extend and self.anchor_index is not None:
            start, end = sorted((self.anchor_index, index))
            for trip in view[start:end + 1]:
                self._apply(trip.id, checked)
            return

        self._apply(view[index].id, checked)
        self.anchor_index = index

    def select_all(self, view: Sequence[Any], checked: bool = True) -> None:
        if checked:
            self._selected = {trip.id for trip in view}
        else:
            self._selected = set()

    def all_selected(self, view: Sequence[Any]) -> bool:
        """True when every visible row is selected, whatever else is."""
        return len(view) > 0 and self._selected >= {trip.id for trip in view}

    def clear(self) -> None:
        self._selected.clear()

    def discard(self, trip_ids: Iterable[int]) -> None:
        self._selected.difference_update(trip_ids)

    def prune(self, existing_ids: Iterable[int]) -> None:
        """Drop ids that are no longer part of the trip collection."""
        self._selected.intersection_update(existing_ids)

    def _apply(self, trip_id: int, checked: bool) -> None:
        if checked:
            self._selected.add(trip_id)
        else:
            self._selected.discard(trip_id)
