"""
imageferry Exception Hierarchy

Clean exception hierarchy for consistent error handling across the CLI.
Every error carries the exit code the process should end with.
"""

from typing import Optional

from imageferry.constants import EXIT_FLAG_ERROR, EXIT_USAGE_ERROR


class ImageFerryError(Exception):
    """Base exception for all imageferry errors."""

    def __init__(
        self, message: str, context: Optional[str] = None, exit_code: int = 1
    ):
        self.message = message
        self.context = context
        self.exit_code = exit_code or 1
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class ConfigurationError(ImageFerryError):
    """Raised when configuration is invalid."""

    pass


class UsageFailure(ImageFerryError):
    """Raised for command line misuse. Reported with usage text."""

    pass


class ArgumentError(UsageFailure):
    """Raised when positional arguments are missing or malformed."""

    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__(message, context, exit_code=EXIT_USAGE_ERROR)


class FlagError(UsageFailure):
    """Raised when an unknown flag is given or a flag lacks its value."""

    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__(message, context, exit_code=EXIT_FLAG_ERROR)


class RegistryError(ImageFerryError):
    """Raised when the ephemeral registry cannot be used."""

    pass


class LaunchError(RegistryError):
    """Raised when the image runtime cannot create the registry container."""

    pass


class RegistryUnavailableError(RegistryError):
    """Raised when the registry never answers its readiness probe."""

    def __init__(self, address: str, waited: float, cause: Optional[Exception] = None):
        self.address = address
        self.waited = waited
        self.cause = cause
        message = f"Registry at {address} not ready after {waited:g}s"
        context = f"Last probe error: {cause}" if cause else None
        super().__init__(message, context)


class RegistryNotReady(RegistryError):
    """Raised by a single readiness probe that got no registry answer."""

    pass


class TransferError(ImageFerryError):
    """Raised when a local transfer step fails."""

    def __init__(
        self,
        image: str,
        message: str,
        context: Optional[str] = None,
        exit_code: int = 1,
    ):
        self.image = image
        super().__init__(message, context, exit_code)


class TagError(TransferError):
    """Raised when tagging or untagging a local image fails."""

    pass


class PushError(TransferError):
    """Raised when pushing an image to the ephemeral registry fails."""

    pass


class TunnelError(ImageFerryError):
    """Raised when the ssh session carrying the tunnel fails."""

    def __init__(self, destination: str, message: str, context: Optional[str] = None, exit_code: int = 1):
        self.destination = destination
        super().__init__(message, context, exit_code)


class TunnelConnectionError(TunnelError):
    """Raised when ssh cannot authenticate or reach the remote host."""

    pass


class RemoteExecutionError(TunnelError):
    """Raised when the remote script exits non-zero."""

    pass


class TransferInterrupted(ImageFerryError):
    """Raised when a termination signal arrives during a transfer."""

    def __init__(self, signum: int, name: str):
        self.signum = signum
        super().__init__(
            f"Interrupted by {name}", context=None, exit_code=128 + signum
        )
