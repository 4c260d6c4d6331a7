"""Domain errors raised by the content services.

Routes translate these into HTTP responses; services never build
HTTP responses themselves.
"""


class ComposeError(Exception):
    """Base class for content server errors."""

    def __init__(self, message: str, path: str | None = None) -> None:
        """Initialize error.

        Args:
            message: Error description.
            path: Offending relative path, when one is involved.
        """
        super().__init__(message)
        self.message = message
        self.path = path


class PathTraversalError(ComposeError):
    """Raised when a path resolves outside the content root."""


class NotFoundError(ComposeError):
    """Raised when a file, directory or category does not exist."""


class ValidationError(ComposeError):
    """Raised when submitted content is rejected."""


class ConflictError(ComposeError):
    """Raised when a pull is requested while another is running."""


class ConfigurationError(ComposeError):
    """Raised when deploy credentials or the build hook are missing."""


class RemoteError(ComposeError):
    """Raised when the CDN or hosting provider fails a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize remote error.

        Args:
            message: Error description, including the provider's message.
            status_code: HTTP status returned by the remote, if any.
        """
        super().__init__(message)
        self.status_code = status_code
