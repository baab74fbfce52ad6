class LockConfigurationError(ValueError):
    """Lock provider can not be set up with the given configuration."""


class UnsupportedDatabaseError(LockConfigurationError):
    def __init__(self, product: str):
        super().__init__(f"DB time is not supported for '{product}'")
        self.product = product


class ProductProbeError(RuntimeError):
    """The database product name could not be read from the connection."""


class DuplicateKeyError(RuntimeError):
    """Insert hit an existing lock row."""


class LockReleasedError(RuntimeError):
    pass
