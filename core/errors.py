# Lifecycle error taxonomy for Revu
# Services raise these; server.py renders them as {"error": code, "detail": message}.

from fastapi import status


class LifecycleError(Exception):
    """Base class for every expected failure of a lifecycle operation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"

    def __init__(self, detail: str = "", **context):
        super().__init__(detail or self.code)
        self.detail = detail or self.code
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail}


class ValidationError(LifecycleError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class AmountMismatch(LifecycleError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "amount_mismatch"


class NotEligible(LifecycleError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "not_eligible"


class NothingToSettle(LifecycleError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "nothing_to_settle"


class PaymentDeclined(LifecycleError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    code = "payment_declined"


class Forbidden(LifecycleError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFound(LifecycleError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Conflict(LifecycleError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class InvalidTransition(LifecycleError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"

    def __init__(self, entity: str, current, target, reason: str = None):
        current_val = getattr(current, "value", current)
        target_val = getattr(target, "value", target)
        message = f"{entity} cannot move from '{current_val}' to '{target_val}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            entity=entity,
            current=current_val,
            target=target_val,
        )


class Internal(LifecycleError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
