import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Set

import yaml

from .actions import Action, ActionRegistry
from .policy import CooldownPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


_KNOWN_TOP_KEYS: Set[str] = {
    "window_title_regex",
    "document_name",
    "attach_timeout_seconds",
    "buttons",
    "allow_seed_override",
    "cooldown",
    "verbose",
    "debug_mode",
    "ignore_keyboard_interrupt",
    "continue_on_error",
    "reattach_seconds",
}
_KNOWN_COOLDOWN_KEYS: Set[str] = {
    "base_seconds",
    "max_seconds",
    "miss_threshold",
    "terminal_button",
    "terminal_seconds",
}


def load_yaml(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_bool_env(var_name: str) -> Optional[bool]:
    raw = os.environ.get(var_name)
    if raw is None:
        return None
    val = raw.strip().lower()
    if val in {"1", "true", "yes", "on"}:
        return True
    if val in {"0", "false", "no", "off"}:
        return False
    return None


def _warn_unknown_config_keys(cfg: dict) -> None:
    """Warn about unrecognized config keys (catches typos like 'colldown')."""
    for key in cfg:
        if key not in _KNOWN_TOP_KEYS:
            logger.warning("[CONFIG] Unknown config key '%s' will be ignored.", key)
    cooldown = cfg.get("cooldown") or {}
    if isinstance(cooldown, dict):
        for key in cooldown:
            if key not in _KNOWN_COOLDOWN_KEYS:
                logger.warning("[CONFIG] Unknown config key 'cooldown.%s' will be ignored.", key)


@dataclass
class Settings:
    window_title_regex: str
    document_name: Optional[str] = None
    attach_timeout_seconds: float = 30.0
    buttons: Dict[str, Action] = field(default_factory=dict)
    allow_seed_override: bool = False
    base_seconds: float = 0.25
    max_seconds: float = 1.0
    miss_threshold: Optional[int] = None
    terminal_button: Optional[str] = None
    terminal_seconds: float = 60.0
    verbose: bool = False
    debug_mode: bool = False
    ignore_keyboard_interrupt: bool = False
    continue_on_error: bool = False
    reattach_seconds: float = 5.0
    path: Optional[Path] = None

    def registry(self) -> ActionRegistry:
        return ActionRegistry(self.buttons, allow_seed_override=self.allow_seed_override)

    def policy(self) -> CooldownPolicy:
        return CooldownPolicy(
            base_delay=self.base_seconds,
            max_delay=self.max_seconds,
            miss_threshold=self.miss_threshold,
            terminal_button_name=self.terminal_button,
            terminal_delay=self.terminal_seconds,
        )


def _parse_buttons(raw: Any) -> Dict[str, Action]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise SystemExit("Config 'buttons' must be a mapping of button name to action.")
    buttons: Dict[str, Action] = {}
    for name, action in raw.items():
        # YAML reads bare Yes/No/On/Off/123 keys as bools and numbers.
        if not isinstance(name, str):
            raise SystemExit(
                f"Config 'buttons' key {name!r} is not text; "
                "quote the button name in config.yaml (e.g. \"Yes\": click)."
            )
        name = name.strip()
        if not name:
            raise SystemExit("Config 'buttons' contains an empty button name.")
        try:
            buttons[name] = Action.parse(action)
        except ValueError as exc:
            raise SystemExit(f"Invalid action for button '{name}': {exc}")
    return buttons


def _number(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise SystemExit(f"Config '{key}' must be a number, got {value!r}.")


def parse_settings(cfg: dict, path: Optional[Path] = None) -> Settings:
    if not isinstance(cfg, dict):
        raise SystemExit("Config root must be a mapping.")
    _warn_unknown_config_keys(cfg)

    window_title_regex = str(cfg.get("window_title_regex", "") or "").strip()
    if not window_title_regex:
        raise SystemExit("Config 'window_title_regex' is required and must be non-empty.")
    try:
        re.compile(window_title_regex)
    except re.error as exc:
        raise SystemExit(f"Invalid window_title_regex '{window_title_regex}': {exc}")

    cooldown = cfg.get("cooldown") or {}
    if not isinstance(cooldown, dict):
        raise SystemExit("Config 'cooldown' must be a mapping when provided.")

    miss_threshold = cooldown.get("miss_threshold")
    if miss_threshold is not None:
        miss_threshold = int(_number(miss_threshold, "cooldown.miss_threshold"))
    terminal_button = str(cooldown.get("terminal_button") or "").strip() or None
    document_name = str(cfg.get("document_name") or "").strip() or None

    settings = Settings(
        window_title_regex=window_title_regex,
        document_name=document_name,
        attach_timeout_seconds=_number(cfg.get("attach_timeout_seconds", 30.0), "attach_timeout_seconds"),
        buttons=_parse_buttons(cfg.get("buttons")),
        allow_seed_override=bool(cfg.get("allow_seed_override", False)),
        base_seconds=_number(cooldown.get("base_seconds", 0.25), "cooldown.base_seconds"),
        max_seconds=_number(cooldown.get("max_seconds", 1.0), "cooldown.max_seconds"),
        miss_threshold=miss_threshold,
        terminal_button=terminal_button,
        terminal_seconds=_number(cooldown.get("terminal_seconds", 60.0), "cooldown.terminal_seconds"),
        verbose=bool(cfg.get("verbose", False)),
        debug_mode=bool(cfg.get("debug_mode", False)),
        ignore_keyboard_interrupt=bool(cfg.get("ignore_keyboard_interrupt", False)),
        continue_on_error=bool(cfg.get("continue_on_error", False)),
        reattach_seconds=_number(cfg.get("reattach_seconds", 5.0), "reattach_seconds"),
        path=path,
    )

    try:
        settings.policy()
    except ValueError as exc:
        raise SystemExit(f"Invalid cooldown settings: {exc}")

    env_verbose = get_bool_env("DOORMAN_VERBOSE")
    env_debug_mode = get_bool_env("DOORMAN_DEBUG_MODE")
    if env_verbose is not None:
        settings.verbose = env_verbose
    if env_debug_mode is not None:
        settings.debug_mode = env_debug_mode

    return settings


def load_settings(path: Optional[Path] = None) -> Settings:
    cfg_path = Path(path or DEFAULT_CONFIG_PATH).resolve()
    if not cfg_path.exists():
        raise SystemExit(f"Config file not found: {cfg_path}")
    return parse_settings(load_yaml(cfg_path), path=cfg_path)
