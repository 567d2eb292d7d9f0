"""Typed failures raised by the wallet engine.

Every failure is scoped to the single wallet operation in progress. Callers are
responsible for presenting the message and for marking transaction records FAILED.
"""

from typing import Optional


class WalletError(Exception):
    """Base exception for all wallet engine errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(WalletError):
    """Required configuration is missing or invalid."""

    pass


class InvalidAddress(WalletError):
    """A string could not be parsed as a TON address."""

    def __init__(self, address: str, reason: str = "invalid format"):
        super().__init__(f"Invalid address {address!r}: {reason}")
        self.address = address
        self.reason = reason


class InsufficientFunds(WalletError):
    """Balance does not cover the amount plus fees."""

    def __init__(self, asset: str, required: int, available: int):
        super().__init__(
            f"Insufficient {asset} balance: need {required}, have {available} (base units)"
        )
        self.asset = asset
        self.required = required
        self.available = available


class AuthenticationError(WalletError):
    """Encrypted key blob failed integrity verification."""

    pass


class RpcError(WalletError):
    """Base class for blockchain RPC failures."""

    pass


class RpcTransient(RpcError):
    """Rate-limited or server-unavailable failure. Retried internally."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RpcPermanent(RpcError):
    """Non-transient RPC failure, surfaced without retry."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RpcExhausted(RpcError):
    """Retries ran out while the failure stayed transient."""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"RPC failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class GetMethodFailed(RpcPermanent):
    """A contract get-method exited with a failure code.

    This is how an account that does not exist yet answers.
    """

    def __init__(self, method: str, address: str, exit_code: int):
        super().__init__(f"{method} on {address} exited with code {exit_code}")
        self.method = method
        self.address = address
        self.exit_code = exit_code


class MalformedResponse(RpcError):
    """RPC answered, but the payload shape was not what we expected."""

    pass


class MalformedPoolData(WalletError):
    """Pool reserve data has an unexpected shape."""

    pass


class ConfirmationTimeout(WalletError):
    """Broadcast succeeded but inclusion was not observed within the poll bound."""

    def __init__(self, seqno: int, attempts: int):
        super().__init__(
            f"Transaction with seqno {seqno} not confirmed after {attempts} polls"
        )
        self.seqno = seqno
        self.attempts = attempts


class TransactionFinalized(WalletError):
    """A terminal transaction record cannot change status."""

    pass


class LockTimeoutError(WalletError):
    """Raised when a wallet lock cannot be acquired within the timeout period."""

    pass


class Unauthorized(WalletError):
    """The caller's session could not be verified."""

    pass


class WalletNotFound(WalletError):
    """The caller has no wallet yet."""

    pass
