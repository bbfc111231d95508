"""
pywinauto (UIA backend) implementation of the snapshot provider, plus the
helpers that locate the target application's main document.

pywinauto and pyautogui are imported where they are used so the rest of
doorman stays importable on machines without a desktop session.
"""

import ctypes
import logging
import re
import time
from typing import Any, List, Optional

from .errors import ApplicationNotFoundError, ControlError, SnapshotError
from .provider import ButtonObservation, ItemObservation, SnapshotProvider

logger = logging.getLogger(__name__)


def set_dpi_awareness():
    """
    Avoid wrong coordinates on Windows with scaling (125%/150%).
    """
    try:
        ctypes.windll.shcore.SetProcessDpiAwareness(2)  # PROCESS_PER_MONITOR_DPI_AWARE
    except Exception:
        try:
            ctypes.windll.user32.SetProcessDPIAware()
        except Exception:
            pass


def read_name(control: Any) -> Optional[str]:
    """Some UIA elements do not support the Name property; report those as None."""
    try:
        name = control.element_info.name
    except Exception:
        return None
    return name if isinstance(name, str) else None


def read_offscreen(control: Any) -> bool:
    try:
        return not bool(control.element_info.visible)
    except Exception:
        return False


def read_enabled(control: Any) -> bool:
    try:
        return bool(control.is_enabled())
    except Exception:
        return False


class UiaSnapshotProvider(SnapshotProvider):
    def __init__(self, debug_mode: bool = False) -> None:
        self.debug_mode = debug_mode

    def _descendants(self, root: Any, control_type: str) -> List[Any]:
        try:
            # Touch the root first; a vanished element raises here.
            root.element_info.name
            return list(root.descendants(control_type=control_type))
        except Exception as exc:
            raise SnapshotError(f"descendants({control_type}) failed: {exc}") from exc

    def list_buttons(self, root: Any) -> List[ButtonObservation]:
        buttons = []
        for control in self._descendants(root, "Button"):
            observation = ButtonObservation(
                name=read_name(control),
                is_enabled=read_enabled(control),
                is_offscreen=read_offscreen(control),
                handle=control,
            )
            if self.debug_mode:
                logger.debug(
                    "[DEBUG][UIA] button name=%r enabled=%s offscreen=%s",
                    observation.name,
                    observation.is_enabled,
                    observation.is_offscreen,
                )
            buttons.append(observation)
        return buttons

    def list_items(self, root: Any) -> List[ItemObservation]:
        return [
            ItemObservation(is_offscreen=read_offscreen(control), handle=control)
            for control in self._descendants(root, "ListItem")
        ]

    def invoke(self, button: ButtonObservation) -> None:
        """
        Invoke via the UIA Invoke pattern, falling back to a synthesized click
        and finally to a pyautogui click on the control centre.
        """
        control = button.handle
        try:
            control.invoke()
            return
        except Exception as exc_invoke:
            if self.debug_mode:
                logger.debug("[DEBUG][UIA] invoke() failed: %s", exc_invoke)
        try:
            control.click_input()
            return
        except Exception as exc_click:
            if self.debug_mode:
                logger.debug("[DEBUG][UIA] click_input() failed: %s", exc_click)
        try:
            click_center(control)
        except Exception as exc:
            raise ControlError(f"Could not invoke '{button.name}': {exc}") from exc

    def scroll_into_view(self, item: ItemObservation) -> None:
        try:
            item.handle.iface_scroll_item.ScrollIntoView()
        except Exception as exc:
            raise ControlError(f"Could not scroll item into view: {exc}") from exc


def click_center(control: Any) -> None:
    r = control.rectangle()
    if (r.right - r.left) <= 1 or (r.bottom - r.top) <= 1:
        raise ControlError("control has no clickable area")

    import pyautogui

    pyautogui.click((r.left + r.right) // 2, (r.top + r.bottom) // 2)


def is_minimized_window(window: Any) -> bool:
    """
    Best-effort minimized detection across different UIA wrapper implementations.
    """
    try:
        if window.is_minimized():
            return True
    except Exception:
        pass

    try:
        rect = window.rectangle()
        if rect.width() <= 1 or rect.height() <= 1:
            return True
        # Minimized windows often report parked coordinates around -32000.
        if rect.left <= -30000 and rect.top <= -30000:
            return True
    except Exception:
        return False

    return False


def ensure_window_ready(window: Any) -> None:
    """
    If the target window is minimized, restore it so the document is laid out.
    """
    if not is_minimized_window(window):
        return
    logger.info("[UIA] Restoring window '%s' from minimized state", window.window_text())
    try:
        window.restore()
    except Exception:
        pass
    time.sleep(0.3)


def get_matching_windows(window_title_regex: str) -> List[Any]:
    from pywinauto import Desktop

    title_re = re.compile(window_title_regex, re.IGNORECASE)
    try:
        windows = Desktop(backend="uia").windows()
    except Exception as e:
        logger.debug("[UIA] Desktop init failed: %s", e)
        return []

    matches = []
    for window in windows:
        try:
            title = window.window_text() or ""
        except Exception:
            continue
        if title_re.search(title):
            matches.append(window)
    return matches


def find_document(window: Any, document_name: Optional[str]) -> Optional[Any]:
    if not document_name:
        return window
    try:
        documents = window.children(control_type="Document")
    except Exception:
        return None
    for document in documents:
        if read_name(document) == document_name:
            return document
    return None


def find_main_document(
    window_title_regex: str,
    document_name: Optional[str] = None,
    timeout: float = 30.0,
    poll: float = 0.5,
    is_cancelled=None,
) -> Any:
    """
    Wait for the application window and its main document to appear.
    The document often shows up a little after the window, so keep polling.
    """
    deadline = time.monotonic() + timeout
    window = None
    while True:
        if is_cancelled is not None and is_cancelled():
            raise ApplicationNotFoundError("Attach cancelled")

        windows = get_matching_windows(window_title_regex)
        if len(windows) > 1:
            logger.debug("[UIA] %d windows match '%s'; using the first", len(windows), window_title_regex)
        if windows:
            window = windows[0]
            ensure_window_ready(window)
            document = find_document(window, document_name)
            if document is not None:
                logger.info(
                    "[UIA] Attached to '%s'%s",
                    window.window_text(),
                    f" document '{document_name}'" if document_name else "",
                )
                return document

        if time.monotonic() >= deadline:
            if window is None:
                raise ApplicationNotFoundError(
                    f"No window matched regex '{window_title_regex}' within {timeout}s"
                )
            raise ApplicationNotFoundError(
                f"Window matched but document '{document_name}' did not appear within {timeout}s"
            )
        time.sleep(poll)
