class RollerError(Exception):
    """Base class for errors that abort a replacement run."""


class NotFoundError(RollerError):
    """A named scaling group, image or launch template does not exist."""


class PollTimeoutError(RollerError):
    """The expected fleet state was not observed before the phase deadline."""


class UnexpectedTerminationError(RollerError):
    """
    The provider removed instances other than the expected one.

    Raised when a just-launched instance is terminated instead of a
    pre-existing one, or when more than a single instance leaves the
    group during one replacement cycle.
    """


class RunCancelledError(RollerError):
    """The operator cancelled the run while it was waiting on the fleet."""
