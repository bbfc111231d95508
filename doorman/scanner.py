import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from .actions import Action, ActionRegistry
from .errors import SnapshotError
from .handlers import HANDLERS
from .policy import Cooldown, CooldownPolicy
from .provider import ButtonObservation, SnapshotProvider

logger = logging.getLogger(__name__)


class OutcomeKind(enum.Enum):
    NO_BUTTONS_FOUND = "no_buttons_found"
    BUTTONS_HANDLED = "buttons_handled"


@dataclass(frozen=True)
class ScanOutcome:
    """
    Result of one cycle. ``count`` is every button that survived the filter,
    including ones learned as ignored during the cycle.
    """

    kind: OutcomeKind
    count: int = 0
    invoked: int = 0
    failed: int = 0
    terminal: bool = False

    @property
    def found(self) -> bool:
        return self.kind is OutcomeKind.BUTTONS_HANDLED

    def __str__(self) -> str:
        if not self.found:
            return "no buttons found"
        text = f"{self.count} handled, {self.invoked} invoked, {self.failed} failed"
        if self.terminal:
            text += " (end of sequence)"
        return text


NO_BUTTONS_FOUND = ScanOutcome(OutcomeKind.NO_BUTTONS_FOUND)


class LoopState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def has_usable_name(button: ButtonObservation) -> bool:
    return isinstance(button.name, str) and bool(button.name.strip())


class ScanLoop:
    """
    Polls ``provider`` for buttons under ``root`` and dispatches the action
    the registry holds for each one.

    The loop runs cycles sequentially on the calling thread. ``stop()`` and
    ``poke()`` are the only methods meant to be called from other threads.
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        root: Any,
        registry: Optional[ActionRegistry] = None,
        policy: Optional[CooldownPolicy] = None,
        on_cycle: Optional[Callable[[ScanOutcome, float], None]] = None,
    ) -> None:
        self.provider = provider
        self.root = root
        self.registry = registry if registry is not None else ActionRegistry()
        self.cooldown = Cooldown(policy)
        self.on_cycle = on_cycle
        self.state = LoopState.IDLE
        self.cycles = 0
        self.cancelled = False
        self._stop = threading.Event()
        self._wake = threading.Event()

    @property
    def policy(self) -> CooldownPolicy:
        return self.cooldown.policy

    def stop(self) -> None:
        self._stop.set()
        self._wake.set()

    def poke(self) -> None:
        """Cut the current cooldown short, e.g. on a UI structure change."""
        self._wake.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def run(self) -> int:
        """
        Scan until stop() is called. Returns the number of completed cycles.
        SnapshotError propagates and leaves the loop STOPPED.
        """
        if self.state is not LoopState.IDLE:
            raise RuntimeError(f"Scan loop cannot be started from state {self.state.value}")
        self.state = LoopState.RUNNING
        logger.debug("[SCAN] Loop started with %r", self.registry)
        try:
            while not self._stop.is_set():
                outcome = self.scan_once()
                self.cycles += 1
                delay = self.cooldown.next_delay(outcome)
                if self.on_cycle is not None:
                    self.on_cycle(outcome, delay)
                self._sleep(delay)
        except SnapshotError:
            logger.debug("[SCAN] Loop stopping after %d cycles: snapshot failed", self.cycles)
            raise
        finally:
            self.state = LoopState.STOPPED
        self.cancelled = True
        logger.debug("[EXIT] Scan loop cancelled after %d cycles", self.cycles)
        return self.cycles

    def _sleep(self, delay: float) -> None:
        if self._stop.is_set():
            return
        # A timed-out wait leaves any late poke() set for the next sleep.
        if self._wake.wait(delay) and not self._stop.is_set():
            self._wake.clear()

    def snapshot(self) -> List[ButtonObservation]:
        try:
            return list(self.provider.list_buttons(self.root))
        except SnapshotError:
            raise
        except Exception as exc:
            raise SnapshotError(f"Could not read buttons: {exc}") from exc

    def candidates(self, buttons: List[ButtonObservation]) -> List[ButtonObservation]:
        """Drop unreadable/blank names and anything already ignored."""
        return [
            b
            for b in buttons
            if has_usable_name(b) and self.registry.resolve(b.name) is not Action.IGNORE
        ]

    def scan_once(self) -> ScanOutcome:
        buttons = self.candidates(self.snapshot())
        if not buttons:
            logger.debug("[IDLE] No buttons found.")
            return NO_BUTTONS_FOUND

        logger.debug(
            "[SCAN] Found %d buttons: %s", len(buttons), ", ".join(repr(b.name) for b in buttons)
        )

        invoked = 0
        failed = 0
        terminal = False
        for button in buttons:
            name = button.name
            action = self.registry.resolve(name)

            if action is None:
                self.registry.learn_ignore(name)
                logger.info("[IGNORE] Button '%s' now being ignored", name)
                continue
            if action is Action.IGNORE:
                continue
            if action is Action.CLICK and not button.is_enabled:
                logger.debug("[SCAN] Button '%s' is disabled; retrying next cycle", name)
                continue

            logger.info("[CLICK] Button '%s' (%s)", name, action.value)
            try:
                HANDLERS[action](self.provider, self.root, button)
            except Exception as exc:
                failed += 1
                logger.warning("[ERROR] Could not %s '%s': %s", action.value, name, exc)
                logger.debug("[ERROR] %s failure detail", name, exc_info=True)
                continue

            invoked += 1
            if self.policy.is_terminal(name):
                logger.info("[SCAN] '%s' ends the sequence; cooling down", name)
                terminal = True

        return ScanOutcome(
            OutcomeKind.BUTTONS_HANDLED,
            count=len(buttons),
            invoked=invoked,
            failed=failed,
            terminal=terminal,
        )
