"""
Error taxonomy shared by the store and the HTTP layer.

Every error carries the HTTP status it maps to; ``create_app`` renders them
into the ``{"success": false, "error": ...}`` envelope.
"""

from __future__ import annotations

from typing import Dict, Optional


class CatalogError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_payload(self) -> dict:
        return {"success": False, "error": self.message}


class ClientInputError(CatalogError):
    """Malformed identifier, bad query parameters or failed field validation."""

    status_code = 400

    def __init__(
        self, message: str, validation_errors: Optional[Dict[str, str]] = None
    ):
        super().__init__(message)
        self.validation_errors = validation_errors

    def as_payload(self) -> dict:
        payload = super().as_payload()
        if self.validation_errors is not None:
            payload["validationErrors"] = self.validation_errors
        return payload


class NotFoundError(CatalogError):
    status_code = 404


class BackendUnavailableError(CatalogError):
    """Connection retries exhausted, or the database failed mid-query."""

    status_code = 500
