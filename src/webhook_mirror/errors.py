"""Exception types raised across webhook-mirror."""

from __future__ import annotations


class MirrorError(Exception):
    """Base class for all webhook-mirror errors."""


class ConfigError(MirrorError):
    """Configuration could not be located, parsed or validated."""


class VcsError(MirrorError):
    """A version-control operation failed."""


class PayloadError(MirrorError):
    """A webhook body could not be decoded into an event."""


class TriggerError(MirrorError):
    """The trigger marker could not be refreshed."""
