"""Error hierarchy for settleup.

Core errors (validation, calculation) are raised by the pure calculators.
NotFoundError and AuthorizationError belong to the collaborator layer
(repositories and the HTTP shell); the core never raises them.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SettleUpError(Exception):
    """Base exception; carries a stable error code and an HTTP status."""

    code = "settleup_error"
    http_status = 500

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_response(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class ValidationError(SettleUpError):
    """Malformed or inconsistent input. Raised before any computation."""

    code = "validation_error"
    http_status = 400


class SplitCalculationError(SettleUpError):
    """Computed split no longer sums to the expense total."""

    code = "split_calculation_error"
    http_status = 500


class NotFoundError(SettleUpError):
    code = "not_found"
    http_status = 404


class AuthorizationError(SettleUpError):
    code = "not_authorized"
    http_status = 403
