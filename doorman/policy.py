from dataclasses import dataclass
from typing import Optional

from .actions import normalize_name


@dataclass
class CooldownPolicy:
    """
    How long to sleep between scans.

    base_delay: sleep after a cycle that found buttons, and the backoff step.
    max_delay: ceiling for the backoff while nothing is found.
    miss_threshold: after this many consecutive misses, coast at max_delay.
    terminal_button_name: a button known to end the flow; after invoking it
        the loop sleeps terminal_delay instead of base_delay.
    """

    base_delay: float = 0.25
    max_delay: float = 1.0
    miss_threshold: Optional[int] = None
    terminal_button_name: Optional[str] = None
    terminal_delay: float = 60.0

    def __post_init__(self) -> None:
        if self.base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.miss_threshold is not None and self.miss_threshold < 1:
            raise ValueError("miss_threshold must be >= 1 when set")
        if self.terminal_delay < 0:
            raise ValueError("terminal_delay must not be negative")

    def is_terminal(self, name: Optional[str]) -> bool:
        if not self.terminal_button_name or not name:
            return False
        return normalize_name(name) == normalize_name(self.terminal_button_name)


class Cooldown:
    """Adaptive sleep schedule. React fast while the UI changes, back off when idle."""

    def __init__(self, policy: Optional[CooldownPolicy] = None) -> None:
        self.policy = policy or CooldownPolicy()
        self.misses = 0

    def next_delay(self, outcome) -> float:
        policy = self.policy
        if outcome.found:
            self.misses = 0
            if outcome.terminal:
                return policy.terminal_delay
            return policy.base_delay

        self.misses += 1
        if policy.miss_threshold is not None and self.misses >= policy.miss_threshold:
            return policy.max_delay
        return min(policy.base_delay * self.misses, policy.max_delay)

    def reset(self) -> None:
        self.misses = 0
