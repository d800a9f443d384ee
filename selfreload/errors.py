class ReloadError(Exception):
    """Base class for everything raised by selfreload."""


class ResolutionError(ReloadError):
    """The path to the running program cannot be determined."""


class ValidationError(ReloadError):
    """An additional directory is missing or is not a directory."""


class WatchSetupError(ReloadError):
    """A directory could not be added to the filesystem observer."""


class NotificationError(ReloadError):
    """Error reported by the observer while watching; logged, never raised."""


class ReplacementError(ReloadError):
    """Replacing the process image failed. Fatal."""


class ConfigError(ReloadError):
    """Invalid settings in the environment or the YAML config file."""
