"""Error taxonomy shared by the store and the JSON endpoint.

Each error carries the HTTP status the API answers with, so handlers only
need to serialise it.
"""

from __future__ import annotations


class ClinicError(Exception):
    status_code = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"ok": False, "error": self.message}


class ValidationError(ClinicError):
    """Invalid input; carries every human-readable problem found."""

    status_code = 422

    def __init__(self, errors: list[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))

    def to_payload(self) -> dict:
        return {"ok": False, "errors": self.errors}


class NotFoundError(ClinicError):
    status_code = 404


class ReferenceMissingError(ClinicError):
    """A write referenced an owner or pet that does not exist."""

    status_code = 400


class BusinessRuleError(ClinicError):
    status_code = 400
