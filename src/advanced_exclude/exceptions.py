class AdvancedExcludeError(Exception):
    """Base class for errors raised by advanced_exclude."""

    pass


class UnsupportedBackendError(AdvancedExcludeError):
    """
    Exception raised when the engine is given something that is not a usable storage backend.

    The exclusion engine cannot operate without a working read/write/list/stat surface,
    so this is reported immediately at setup time instead of on first use.

    Attributes:
        backend (object): The rejected backend object.

    Example:
        >>> error = UnsupportedBackendError(object())
        >>> str(error).startswith('Unsupported storage backend: object')
        True
    """

    def __init__(self, backend: object) -> None:
        """
        Initialize the exception with the rejected backend.

        Args:
            backend (object): The object that was passed where a StorageBackend was expected.
        """
        self.backend = backend
        super().__init__(
            f"Unsupported storage backend: {type(backend).__name__}. "
            "Expected an advanced_exclude.storage.StorageBackend implementation."
        )


class InvalidSettingsError(AdvancedExcludeError):
    """
    Exception raised when a settings file or settings value cannot be interpreted.

    Example:
        >>> error = InvalidSettingsError("excludeMode must be a string")
        >>> str(error)
        'excludeMode must be a string'
    """

    pass


class StateStoreError(AdvancedExcludeError):
    """
    Exception raised when the persisted decision store cannot be written.

    Attributes:
        store_path (str): Location of the store that failed.
    """

    def __init__(self, store_path: str, reason: str) -> None:
        """
        Initialize the exception with the store location and the underlying reason.

        Args:
            store_path (str): Location of the persisted store.
            reason (str): Description of the underlying failure.
        """
        self.store_path = store_path
        super().__init__(f"Cannot write decision store {store_path}: {reason}")
