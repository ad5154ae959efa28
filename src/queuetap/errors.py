from __future__ import annotations


class QueueTapError(Exception):
    """Base class for queuetap errors."""


class MalformedPathError(QueueTapError, ValueError):
    """A replacement path that cannot be turned into segments."""


class ConfigError(QueueTapError):
    """Settings file could not be read or validated."""


class TemplateNotFoundError(QueueTapError, FileNotFoundError):
    """A JMeter template file is missing."""
