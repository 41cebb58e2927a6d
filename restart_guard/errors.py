"""Exceptions raised by the restart guard."""


class RestartGuardError(Exception):
    """Base class for restart guard errors."""


class ConfigError(RestartGuardError):
    """Startup configuration is invalid."""


class ClusterCommandError(RestartGuardError):
    """A cluster command exited unsuccessfully."""


class MalformedResponseError(RestartGuardError):
    """The cluster returned data that could not be interpreted."""


class InvalidTransition(RestartGuardError):
    """The monitor attempted a state change outside its transition table."""

    def __init__(self, current, target):
        super().__init__(f"Cannot transition from {current.value} to {target.value}")
        self.current = current
        self.target = target
