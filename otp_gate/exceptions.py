"""
OTP Gate Exceptions
===================
Error taxonomy for the login flow.

Messages are safe to show to end users. None of them reveal whether an
account exists.
"""

from typing import Optional


class OtpGateError(Exception):
    """Base class for all OTP gate errors."""

    code = "OTP_GATE_ERROR"
    message = "Login failed. Please try again."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ConfigError(OtpGateError):
    """Raised when the gate is configured with invalid values."""
    code = "CONFIG_ERROR"
    message = "Invalid OTP gate configuration."


class InvalidCredentials(OtpGateError):
    """Primary credentials rejected. Deliberately generic."""
    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials."


class OtpError(OtpGateError):
    """Base class for recoverable OTP-stage failures."""
    code = "OTP_ERROR"
    message = "The code could not be verified."


class NotFound(OtpError):
    """No active challenge for the user."""
    code = "OTP_NOT_FOUND"
    message = "No active code. Please request a new one."


class OtpExpired(OtpError):
    code = "OTP_EXPIRED"
    message = "The code has expired. Please log in again."


class OtpMismatch(OtpError):
    code = "OTP_MISMATCH"
    message = "The code is incorrect."


class OtpAlreadyConsumed(OtpError):
    code = "OTP_ALREADY_CONSUMED"
    message = "The code has already been used."


class OtpRetryLimitExceeded(OtpGateError):
    """Too many failed OTP submissions; the login attempt is over."""
    code = "OTP_RETRY_LIMIT_EXCEEDED"
    message = "Too many incorrect codes. Please log in again."


class DeliveryFailed(OtpGateError):
    """The notifier could not accept the code for delivery."""
    code = "DELIVERY_FAILED"
    message = "We could not send your code. Please try again later."


class InvalidLoginState(OtpGateError):
    """Operation not allowed in the attempt's current state."""
    code = "INVALID_LOGIN_STATE"
    message = "This login attempt is no longer valid. Please log in again."


# Errors raised by external collaborators

class AuthError(Exception):
    """Raised by a credential verifier when credentials do not check out."""
    pass


class DeliveryError(Exception):
    """Raised by a notifier when a code cannot be enqueued for delivery."""
    pass
