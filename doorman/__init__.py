__version__ = "0.1.0"

from .actions import Action, ActionRegistry, SEED_IGNORED_NAMES
from .errors import ApplicationNotFoundError, ControlError, DoormanError, SnapshotError
from .policy import Cooldown, CooldownPolicy
from .provider import ButtonObservation, ItemObservation, SnapshotProvider
from .scanner import LoopState, OutcomeKind, ScanLoop, ScanOutcome
