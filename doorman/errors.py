class DoormanError(Exception):
    """Base class for errors raised by doorman."""


class SnapshotError(DoormanError):
    """
    The UI tree could not be read at all (root gone, application closed).
    Fatal to the scan loop.
    """


class ControlError(DoormanError):
    """A single control could not be invoked or scrolled."""


class ApplicationNotFoundError(DoormanError):
    """The target application window or document could not be found."""
