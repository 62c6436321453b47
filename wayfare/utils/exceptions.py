"""
Domain exceptions.

Services raise these; the web app maps them to HTTP responses and the
relay reports them to the originating connection.
"""

from typing import Any, Dict, Optional
from fastapi import status


class WayfareError(Exception):
    """Base exception for all domain errors"""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.message, "error_code": self.error_code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(WayfareError):
    """Referenced unit, reservation or conversation does not exist"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} not found",
            details={"entity": entity, "id": entity_id},
        )


class ConflictError(WayfareError):
    """The unit became unavailable for the window between check and write"""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, unit_kind: str, unit_id: str, window_start, window_end, reason: str = "no longer available"):
        super().__init__(
            f"{unit_kind} {unit_id} is {reason} for {window_start.isoformat()} - {window_end.isoformat()}, please search again",
            details={
                "unit_kind": unit_kind,
                "unit_id": unit_id,
                "window_start": window_start.isoformat(),
                "window_end": window_end.isoformat(),
            },
        )


class InvalidTransitionError(WayfareError):
    """Reservation status change outside the lifecycle graph"""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, reservation_id: str, current: str, requested: str, allowed=None):
        allowed = sorted(allowed or ())
        next_steps = ", ".join(allowed) if allowed else "none"
        super().__init__(
            f"Cannot move reservation from '{current}' to '{requested}' (allowed: {next_steps})",
            details={
                "reservation_id": reservation_id,
                "current": current,
                "requested": requested,
                "allowed": allowed,
            },
        )


class ValidationError(WayfareError):
    """Request is well-formed but breaks a booking or chat rule"""

    status_code = status.HTTP_400_BAD_REQUEST


class PersistenceError(WayfareError):
    """Chat persistence failed while relaying a message"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
