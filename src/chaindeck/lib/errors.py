"""Custom exception hierarchy for chaindeck configuration and deployments."""


class ChainDeckError(Exception):
    """Base exception for all chaindeck errors.

    All chaindeck-specific exceptions inherit from this class, enabling
    centralized exception handling in the CLI.
    """

    pass


class ConfigError(ChainDeckError):
    """Exception raised for configuration errors.

    This exception is raised when network or migration plan loading fails.
    It includes field-specific information to help users identify and fix
    configuration issues.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class FileNotFoundError(ChainDeckError):
    """Exception raised when a configuration file is not found.

    Attributes:
        path: Path to the file that was not found
        message: Human-readable error message
    """

    def __init__(self, path: str, message: str) -> None:
        """Initialize FileNotFoundError with path and message.

        Args:
            path: Path to the file that was not found
            message: Descriptive error message, optionally with suggestions
        """
        self.path = path
        self.message = message
        super().__init__(f"File not found: {path}\n{message}")


class DeploymentError(ChainDeckError):
    """Exception raised when a deployment step fails.

    Attributes:
        operation: The step that failed (e.g. "submit", "confirm", "cache")
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str) -> None:
        """Create a deployment error for an operation."""
        self.operation = operation
        self.message = message
        super().__init__(f"Deployment {operation} failed: {message}")


class SubmissionFailedError(DeploymentError):
    """The ledger refused the operation before returning an identifier.

    Nothing was recorded in the cache, so retrying behaves like a fresh
    attempt.

    Attributes:
        name: Logical deployment name
    """

    def __init__(self, name: str, message: str) -> None:
        """Create a submission error for a deployment name."""
        self.name = name
        super().__init__(operation="submit", message=f"'{name}': {message}")


class ConfirmationFailedError(DeploymentError):
    """A submitted operation reverted or never produced an address.

    The pending transaction hash stays cached. Every later run resolves the
    same hash again until the record is cleared with ``no_cache`` or
    ``chaindeck forget``.

    Attributes:
        name: Logical deployment name
        tx_hash: Identifier of the operation that failed to confirm
    """

    def __init__(self, name: str, tx_hash: str, message: str) -> None:
        """Create a confirmation error for a pending operation."""
        self.name = name
        self.tx_hash = tx_hash
        super().__init__(
            operation="confirm",
            message=f"'{name}' (transaction {tx_hash}): {message}",
        )


class CacheUnavailableError(DeploymentError):
    """The deployment cache could not be read or written.

    Attributes:
        path: Location of the cache document
    """

    def __init__(self, path: str, message: str) -> None:
        """Create a cache error for a storage location."""
        self.path = path
        super().__init__(operation="cache", message=f"{path}: {message}")


class LedgerSDKNotInstalledError(ChainDeckError):
    """Error raised when the optional ledger SDK is not installed.

    Attributes:
        sdk_name: Distribution that needs to be installed
    """

    def __init__(self, sdk_name: str) -> None:
        """Initialize with the name of the missing SDK."""
        self.sdk_name = sdk_name
        message = (
            f"The '{sdk_name}' package is required to talk to a ledger.\n"
            f"Install it with: pip install 'chaindeck[{sdk_name}]'"
        )
        super().__init__(message)
