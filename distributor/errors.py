class RewardValidationError(ValueError):
    """Raise if an address, amount, chain or token symbol is malformed or unknown"""

    pass


class NotFoundError(Exception):
    """Raise if a merkle root id is unknown to the store"""

    pass


class SourceUnavailableError(Exception):
    """Raise if an external data source fails, times out or returns garbage"""

    pass


class StorageError(Exception):
    """Raise if a snapshot cannot be written or read back"""

    pass


class TooManyLoopsError(Exception):
    """Raise if a loop runs too many times"""

    pass


class BadConfigException(Exception):
    pass


class MissingEnvironmentVariableException(Exception):
    pass
