"""
Error types raised while building, encoding and submitting wrapped signatures.
"""


class Eip7739Error(Exception):
    """Base class for every error raised by this package"""


class SchemaError(Eip7739Error):
    """A type schema is malformed or references an undefined type"""


class EncodingError(Eip7739Error, ValueError):
    """A value does not match its declared type, or a payload cannot be packed/parsed"""


class VerificationMismatch(Eip7739Error):
    """The contract recorded a different value than the one that was signed"""

    def __init__(self, expected, actual):
        super().__init__(
            f"Contract didn't set state as anticipated: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class TransactionReverted(Eip7739Error):
    """The chain rejected the transaction carrying the wrapped signature"""

    def __init__(self, reason, tx_hash=None):
        super().__init__(reason)
        self.reason = reason
        self.tx_hash = tx_hash


class ConfigError(Eip7739Error, ValueError):
    """A config file or EIP7739_* setting cannot be loaded"""
