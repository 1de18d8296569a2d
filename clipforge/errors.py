from __future__ import annotations


class ClipforgeError(Exception):
    """Base class for all pipeline errors surfaced to callers."""


class ConfigurationError(ClipforgeError):
    """A collaborator is missing credentials or endpoint configuration."""


class ProviderError(ClipforgeError):
    """A collaborator returned an HTTP failure or a malformed payload."""


class ProviderTimeoutError(ProviderError):
    """Bounded polling ran out of attempts or passed its deadline."""


class ValidationError(ClipforgeError):
    """A request was rejected before any job or record was created."""


class InvalidTransitionError(ClipforgeError):
    """A job status change that the state machine does not allow."""
