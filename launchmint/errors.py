"""
Launch error taxonomy

Every failure a launch can surface to a caller is a LaunchError. The HTTP layer
turns these into {success: false, error} payloads using http_status; anything
else is treated as an internal error.
"""

from typing import Optional


class LaunchError(Exception):
    """Base class for business failures during a launch"""
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LaunchError):
    """Bad or missing input. Raised before any network call."""

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"{field} required")
        self.field = field


class UploadError(LaunchError):
    """Image fetch or metadata upload failed"""


class SwapError(LaunchError):
    """Quote-currency liquidity could not be acquired"""


class ConfigError(LaunchError):
    """Fee-share allocation is invalid or was rejected"""


class SubmissionError(LaunchError):
    """The network rejected a transaction"""


class ConfirmationTimeoutError(LaunchError):
    """A submitted transaction did not confirm in time"""

    def __init__(self, message: str, signature: Optional[str] = None):
        super().__init__(message)
        self.signature = signature


class DeadlineExceededError(LaunchError):
    """The caller's deadline ran out before a stage could start"""
    http_status = 504


class WalletNotFoundError(LaunchError):
    """A social handle could not be resolved to a wallet"""


class RpcError(Exception):
    """JSON-RPC error object returned by the ledger node"""

    def __init__(self, code: int, message: str, data=None):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data
