# flasharb/errors.py
"""
Error taxonomy

(a) resolution failures   -> handled inside the resolver
(b) data-fetch failures   -> hop unusable for one cycle
(c) submission failures   -> logged and skipped
(d) configuration errors  -> fatal at startup
"""

from enum import Enum


class FlashArbError(Exception):
    """Base class for all bot errors"""


class ConfigError(FlashArbError):
    """Unsupported network or missing settings"""


class CacheError(FlashArbError):
    """Combination cache file exists but cannot be used"""


class DataFetchError(FlashArbError):
    """Reserve or liquidity data could not be fetched"""


class UnusableHop(FlashArbError):
    """A hop has no usable liquidity this cycle"""


class WrongInputOrder(FlashArbError, ValueError):
    """Reserves describe a cycle that loses money at every size"""

    def __init__(self, message: str = "Wrong input order"):
        super().__init__(message)


class SubmissionErrorKind(Enum):
    REVERTED = "reverted"
    REJECTED = "rejected"          # provider refused the tx (nonce, pool full, ...)
    LOCK_TIMEOUT = "lock_timeout"  # submission lock not acquired in time
    TIMEOUT = "timeout"            # receipt not seen in time
    UNEXPECTED = "unexpected"


class SubmissionError(FlashArbError):
    def __init__(self, kind: SubmissionErrorKind, message: str = "", tx_hash: str = None):
        super().__init__(message or kind.value)
        self.kind = kind
        self.tx_hash = tx_hash

    @property
    def is_expected(self) -> bool:
        """Expected failures are swallowed without error-level logs"""
        return self.kind is not SubmissionErrorKind.UNEXPECTED
