"""
The UI snapshot contract consumed by the scan loop.

A provider turns a root UI node into per-cycle observations and performs the
two side effects the loop needs: invoking a button and scrolling a list item
into view. Providers must be synchronous and fast. The loop applies no
timeouts of its own, so a provider call that hangs blocks the whole loop.
"""

import abc
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class ButtonObservation:
    """One button as seen in a single snapshot. ``name`` is None when unreadable."""

    name: Optional[str]
    is_enabled: bool = True
    is_offscreen: bool = False
    handle: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ItemObservation:
    is_offscreen: bool
    handle: Any = field(default=None, compare=False, repr=False)


class SnapshotProvider(abc.ABC):
    @abc.abstractmethod
    def list_buttons(self, root: Any) -> List[ButtonObservation]:
        """
        Return the buttons currently reachable from ``root`` in UI order.
        Raise SnapshotError when the tree cannot be read at all.
        """

    @abc.abstractmethod
    def invoke(self, button: ButtonObservation) -> None:
        """Invoke the button. Raise on failure."""

    @abc.abstractmethod
    def list_items(self, root: Any) -> List[ItemObservation]:
        """Return the list items reachable from ``root`` in UI order."""

    @abc.abstractmethod
    def scroll_into_view(self, item: ItemObservation) -> None:
        """Scroll the item into the visible viewport. Raise on failure."""
