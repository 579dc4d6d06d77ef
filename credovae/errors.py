"""
Error taxonomy for the banking workflows.

Services raise these; the app turns them into the JSON error envelope
{ success: false, error_code, message } in create_app().
"""


class BankingError(Exception):
    error_code = "BANKING_ERROR"
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message=None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self):
        body = {
            "success": False,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body


# --- Validation -------------------------------------------------------------

class MissingField(BankingError):
    error_code = "MISSING_FIELD"
    default_message = "Please fill in all required fields"

    def __init__(self, fields, message=None):
        fields = list(fields)
        super().__init__(message or f"Missing fields: {', '.join(fields)}", fields=fields)
        self.fields = fields


class InvalidAmount(BankingError):
    error_code = "INVALID_AMOUNT"
    default_message = "Please enter a valid amount"


class InsufficientFunds(BankingError):
    error_code = "INSUFFICIENT_FUNDS"
    status_code = 402
    default_message = "Insufficient balance"


class InvalidRoutingCode(BankingError):
    error_code = "INVALID_ROUTING_CODE"
    default_message = "Invalid routing code for destination country"


# --- Lookup / state ---------------------------------------------------------

class NotFound(BankingError):
    error_code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class AlreadyResolved(BankingError):
    error_code = "ALREADY_RESOLVED"
    status_code = 409
    default_message = "Transaction has already been resolved"


class Conflict(BankingError):
    error_code = "CONFLICT"
    status_code = 409
    default_message = "Request conflicts with current state"


# --- One-time codes ---------------------------------------------------------

class Expired(BankingError):
    error_code = "OTP_EXPIRED"
    default_message = "OTP expired"


class TooManyAttempts(BankingError):
    error_code = "OTP_TOO_MANY_ATTEMPTS"
    status_code = 429
    default_message = "Too many attempts"


class InvalidCode(BankingError):
    error_code = "OTP_INVALID"
    default_message = "Invalid OTP"


class AlreadyUsed(BankingError):
    error_code = "OTP_ALREADY_USED"
    status_code = 409
    default_message = "OTP has already been used"


# --- Collaborators ----------------------------------------------------------

class DeliveryFailure(BankingError):
    error_code = "DELIVERY_FAILURE"
    status_code = 502
    default_message = "Failed to send verification email"


class BackendError(BankingError):
    error_code = "BACKEND_ERROR"
    status_code = 500
    default_message = "Database error"


# --- Access -----------------------------------------------------------------

class Unauthorized(BankingError):
    error_code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Invalid credentials"


class Forbidden(BankingError):
    error_code = "FORBIDDEN"
    status_code = 403
    default_message = "Forbidden: insufficient role"
