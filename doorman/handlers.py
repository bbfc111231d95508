import logging
from typing import Any, Callable, Dict, Optional

from .actions import Action
from .provider import ButtonObservation, ItemObservation, SnapshotProvider

logger = logging.getLogger(__name__)

Handler = Callable[[SnapshotProvider, Any, ButtonObservation], None]


def click(provider: SnapshotProvider, root: Any, button: ButtonObservation) -> None:
    provider.invoke(button)


def find_last_offscreen_item(
    provider: SnapshotProvider, root: Any
) -> Optional[ItemObservation]:
    last = None
    for item in provider.list_items(root):
        if item.is_offscreen:
            last = item
    return last


def scroll_then_click(
    provider: SnapshotProvider, root: Any, button: ButtonObservation
) -> None:
    """
    Scroll the last offscreen list item into view (i.e. to the bottom of the
    list, which is what enables terms-of-service style buttons), then invoke.
    """
    item = find_last_offscreen_item(provider, root)
    if item is None:
        logger.warning("[SCAN] Could not find an offscreen item to scroll to")
    else:
        provider.scroll_into_view(item)
    provider.invoke(button)


HANDLERS: Dict[Action, Handler] = {
    Action.CLICK: click,
    Action.SCROLL_THEN_CLICK: scroll_then_click,
}
