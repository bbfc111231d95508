import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Callable, List, Optional

from . import __version__
from .config import DEFAULT_CONFIG_PATH, Settings, load_settings
from .errors import ApplicationNotFoundError, SnapshotError
from .provider import SnapshotProvider
from .scanner import ScanLoop, ScanOutcome

logger = logging.getLogger("doorman")


def configure_logging(verbose: bool = False, debug_mode: bool = False) -> None:
    level = logging.DEBUG if (verbose or debug_mode) else logging.INFO
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(message)s", "%Y-%m-%d %H:%M:%S"))
    root = logging.getLogger("doorman")
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False


def format_buttons_for_log(settings: Settings) -> str:
    names = [f"'{name}'={action.value}" for name, action in settings.buttons.items()]
    if not names:
        return "(no configured buttons)"
    return ", ".join(names)


class Runner:
    """
    Owns process lifetime around the scan loop: attach, run, stop on a signal
    or Esc, and optionally re-attach after the application goes away.
    """

    def __init__(
        self,
        settings: Settings,
        provider: Optional[SnapshotProvider] = None,
        attach: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.settings = settings
        self.provider = provider
        self.attach = attach or self._attach_uia
        self.loop: Optional[ScanLoop] = None
        self._stop_event = threading.Event()

    def _attach_uia(self) -> Any:
        from .uia import find_main_document

        return find_main_document(
            self.settings.window_title_regex,
            self.settings.document_name,
            timeout=self.settings.attach_timeout_seconds,
            is_cancelled=self._stop_event.is_set,
        )

    def _provider(self) -> SnapshotProvider:
        if self.provider is None:
            from .uia import UiaSnapshotProvider

            self.provider = UiaSnapshotProvider(debug_mode=self.settings.debug_mode)
        return self.provider

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; True as soon as a stop is requested."""
        return self._stop_event.wait(timeout)

    def request_stop(self) -> None:
        # Runs inside signal handlers on the main thread, so it must not block.
        self._stop_event.set()
        loop = self.loop
        if loop is not None:
            loop.stop()

    def _log_cycle(self, outcome: ScanOutcome, delay: float) -> None:
        if outcome.found:
            logger.debug("[CYCLE] %s; next scan in %.2fs", outcome, delay)
        else:
            logger.debug("[CYCLE] no buttons found; next scan in %.2fs", delay)

    def run(self) -> int:
        while not self._stop_event.is_set():
            try:
                root = self.attach()
            except ApplicationNotFoundError as exc:
                if self._stop_event.is_set():
                    break
                if not self.settings.continue_on_error:
                    logger.error("[FATAL] %s", exc)
                    return 1
                logger.error("[ERROR] %s", exc)
                logger.info("[LOOP] Retrying attach in %.1fs", self.settings.reattach_seconds)
                self.wait(self.settings.reattach_seconds)
                continue

            loop = ScanLoop(
                self._provider(),
                root,
                registry=self.settings.registry(),
                policy=self.settings.policy(),
                on_cycle=self._log_cycle,
            )
            # request_stop() either sees this loop or has already set the event.
            self.loop = loop
            if self._stop_event.is_set():
                loop.stop()

            try:
                cycles = loop.run()
                logger.info("[EXIT] Stopped after %d scans.", cycles)
                return 0
            except SnapshotError as exc:
                logger.error("[ERROR] Lost the application UI: %s", exc)
                if not self.settings.continue_on_error:
                    return 1
            finally:
                self.loop = None

            logger.info("[LOOP] Re-attaching in %.1fs", self.settings.reattach_seconds)
            self.wait(self.settings.reattach_seconds)

        logger.info("[EXIT] Stopped before scanning.")
        return 0


def install_interrupt_handlers(runner: Runner, ignore_interrupts: bool) -> None:
    """
    SIGINT/SIGBREAK/SIGTERM stop the loop at the next cycle boundary, or are
    ignored outright when ignore_keyboard_interrupt is set (hardening for
    terminals that forward console control events).
    """

    def _handle_signal(signum, _frame):
        signal_name = getattr(signal.Signals(signum), "name", str(signum))
        if ignore_interrupts:
            logger.debug("[SIGNAL] Ignored %s.", signal_name)
            return
        logger.info("[SIGNAL] %s received; stopping.", signal_name)
        runner.request_stop()

    for sig_name in ("SIGINT", "SIGBREAK", "SIGTERM"):
        sig = getattr(signal, sig_name, None)
        if sig is None:
            continue
        try:
            signal.signal(sig, _handle_signal)
        except Exception:
            continue


def start_escape_watcher(runner: Runner, poll: float = 0.5) -> Optional[threading.Thread]:
    """Stop when Esc is pressed in the console (Windows only)."""
    if sys.platform != "win32" or not sys.stdin or not sys.stdin.isatty():
        return None
    import msvcrt

    def _watch():
        while not runner.wait(poll):
            while msvcrt.kbhit():
                if msvcrt.getwch() == "\x1b":
                    logger.info("[EXIT] Esc pressed; stopping.")
                    runner.request_stop()
                    return

    thread = threading.Thread(target=_watch, name="doorman-esc", daemon=True)
    thread.start()
    return thread


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="doorman",
        description="Doorman: click through an application's login/onboarding buttons via UI Automation.",
    )
    ap.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help=f"Path to config.yaml (default: {DEFAULT_CONFIG_PATH})",
    )
    ap.add_argument("--verbose", action="store_true", help="Log every scan cycle.")
    ap.add_argument("--debug", action="store_true", help="Also dump every UIA button seen.")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = ap.parse_args(argv)

    settings = load_settings(Path(args.config))
    settings.verbose = settings.verbose or args.verbose
    settings.debug_mode = settings.debug_mode or args.debug
    configure_logging(settings.verbose, settings.debug_mode)

    from .uia import set_dpi_awareness

    set_dpi_awareness()

    policy = settings.policy()
    logger.info(
        "[START] Doorman v%s watching windows matching '%s'%s; buttons: %s; "
        "cooldown %.2fs..%.2fs.",
        __version__,
        settings.window_title_regex,
        f" (document '{settings.document_name}')" if settings.document_name else "",
        format_buttons_for_log(settings),
        policy.base_delay,
        policy.max_delay,
    )
    logger.debug("[START] config = %s", settings.path)
    if settings.ignore_keyboard_interrupt:
        logger.info("[START] Interrupt protection is ON (SIGINT/SIGBREAK ignored).")

    runner = Runner(settings)
    install_interrupt_handlers(runner, settings.ignore_keyboard_interrupt)
    if start_escape_watcher(runner) is not None:
        logger.info("[START] Press Esc at any time to stop.")
    return runner.run()
