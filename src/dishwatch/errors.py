"""Exception hierarchy for dishwatch."""

from __future__ import annotations


class DishwatchError(Exception):
    """Base class for all dishwatch errors."""


class ConfigError(DishwatchError):
    """Settings are missing or invalid; the service cannot start."""


class UpstreamError(DishwatchError):
    """Connecting to, or reading from, the upstream dish failed."""


class DecodeError(DishwatchError):
    """An upstream message could not be parsed at all."""


class RenderError(DishwatchError):
    """A chart could not be rendered from the given series."""
