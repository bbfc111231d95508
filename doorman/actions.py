import enum
import logging
import re
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class Action(enum.Enum):
    IGNORE = "ignore"
    CLICK = "click"
    SCROLL_THEN_CLICK = "scroll_then_click"

    @classmethod
    def parse(cls, value: "str | Action") -> "Action":
        """
        Accept config spellings like "Click", "scroll_click" or "ScrollClick".
        """
        if isinstance(value, cls):
            return value
        key = re.sub(r"[\s_\-]+", "", str(value or "").strip().lower())
        try:
            return _ACTION_ALIASES[key]
        except KeyError:
            valid = sorted({a.value for a in cls})
            raise ValueError(f"Unknown button action '{value}'. Valid options: {valid}")


_ACTION_ALIASES: Dict[str, Action] = {
    "ignore": Action.IGNORE,
    "click": Action.CLICK,
    "invoke": Action.CLICK,
    "scrollclick": Action.SCROLL_THEN_CLICK,
    "scrollthenclick": Action.SCROLL_THEN_CLICK,
}


class EntryState(enum.Enum):
    UNSET = "unset"
    SEEDED = "seeded"
    CONFIGURED = "configured"
    LEARNED = "learned"


# Window chrome we never want to touch.
SEED_IGNORED_NAMES: Tuple[str, ...] = (
    "Minimize",
    "Maximize",
    "Close",
    "Cancel",
    "Log in with Facebook",
)

_ANY = frozenset(Action)

# state -> actions an explicit write may set.
# Seeds only ever accept another IGNORE.
_ACCEPTED_WRITES: Dict[EntryState, frozenset] = {
    EntryState.UNSET: _ANY,
    EntryState.SEEDED: frozenset({Action.IGNORE}),
    EntryState.CONFIGURED: _ANY,
    EntryState.LEARNED: _ANY,
}


def normalize_name(name: str) -> str:
    return re.sub(r"\s+", " ", (name or "").strip().lower())


class ActionRegistry:
    """
    Case-insensitive button name -> Action mapping.

    Every key is a small automaton. It starts UNSET, becomes SEEDED for the
    built-in chrome names, CONFIGURED when written explicitly, or LEARNED when
    the scan loop meets a button nobody told us about. SEEDED entries only
    accept IGNORE unless ``allow_seed_override`` is set, in which case seeds
    are ordinary entries and the initial mapping wins over them.
    """

    def __init__(
        self,
        initial: Optional[Mapping[str, "Action | str"]] = None,
        allow_seed_override: bool = False,
    ) -> None:
        self.allow_seed_override = allow_seed_override
        self._entries: Dict[str, Tuple[Action, EntryState]] = {}
        self._display: Dict[str, str] = {}

        seed_state = EntryState.CONFIGURED if allow_seed_override else EntryState.SEEDED
        for name in SEED_IGNORED_NAMES:
            self._set(name, Action.IGNORE, seed_state)

        for name, action in (initial or {}).items():
            if not normalize_name(name):
                continue
            if not self.remember(name, Action.parse(action)):
                logger.warning(
                    "[IGNORE] Configured action '%s' for '%s' ignored: "
                    "built-in ignored button (set allow_seed_override to change it).",
                    Action.parse(action).value,
                    name,
                )

    def _set(self, name: str, action: Action, state: EntryState) -> None:
        key = normalize_name(name)
        self._entries[key] = (action, state)
        self._display.setdefault(key, name.strip())

    def state(self, name: str) -> EntryState:
        entry = self._entries.get(normalize_name(name))
        return EntryState.UNSET if entry is None else entry[1]

    def resolve(self, name: str) -> Optional[Action]:
        entry = self._entries.get(normalize_name(name))
        return None if entry is None else entry[0]

    def remember(self, name: str, action: Action) -> bool:
        """
        Insert or overwrite the action for ``name``.
        Returns False when the write is refused (a seeded name asked to act).
        """
        action = Action.parse(action)
        current = self.state(name)
        if action not in _ACCEPTED_WRITES[current]:
            logger.debug(
                "[IGNORE] Refusing to set '%s' to %s; it is always ignored.",
                name,
                action.value,
            )
            return False
        new_state = EntryState.SEEDED if current is EntryState.SEEDED else EntryState.CONFIGURED
        self._set(name, action, new_state)
        return True

    def learn_ignore(self, name: str) -> bool:
        """Permanently ignore a button that has no known action yet."""
        if self.state(name) is not EntryState.UNSET:
            return False
        self._set(name, Action.IGNORE, EntryState.LEARNED)
        return True

    def seeded(self, name: str) -> bool:
        return self.state(name) is EntryState.SEEDED

    def learned(self) -> List[str]:
        return [
            self._display[key]
            for key, (_, state) in self._entries.items()
            if state is EntryState.LEARNED
        ]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_name(name) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        items = ", ".join(
            f"{self._display[k]}: {a.value}" for k, (a, _) in self._entries.items()
        )
        return f"ActionRegistry({{{items}}})"
