class ResolutionError(Exception):
    """Base class for failures inside the resolution engine."""


class NotFoundError(ResolutionError):
    """Entity is absent from every tier."""


class SourceUnavailableError(ResolutionError):
    """Network or remote failure; recoverable by retry or fallback."""


class ResolutionTimeoutError(SourceUnavailableError):
    """A bounded operation exceeded its deadline."""


class StoreCorruptError(ResolutionError):
    """Local persistence failed. Never treated as not-found."""


class InferenceUnavailableError(ResolutionError):
    """A local or remote model could not produce output."""
