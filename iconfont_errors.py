"""Exception hierarchy for the icon font build."""


class IconfontError(Exception):
    """Base exception for all build errors.

    ``remediation`` is a short hint printed after the cause by the
    command-line entry points.
    """

    def __init__(self, message: str, remediation: str | None = None):
        self.remediation = remediation
        super().__init__(message)


class ServiceUnavailableError(IconfontError):
    """A synthesis backend or output codec cannot be loaded."""
    pass


class InputError(IconfontError):
    """Input directory missing, no icons found, or bad build configuration."""
    pass


class NormalizationError(IconfontError):
    """A single icon could not be normalized."""

    def __init__(self, path, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class SynthesisError(IconfontError):
    """The font could not be synthesized; no output is safe to publish."""
    pass
