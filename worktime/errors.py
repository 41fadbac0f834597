from __future__ import annotations

from typing import Any


class EngineError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class ConfigurationError(EngineError):
    def __init__(self, errors: list[str], *, code: str = "INVALID_CONFIGURATION"):
        super().__init__(code, "; ".join(errors) or "Invalid configuration")
        self.errors = list(errors)


class LedgerError(EngineError):
    """Guard failure on a month/year state transition or a write into a closed period."""


def error_payload(exc: EngineError) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "code": exc.code,
        "message": exc.message,
    }
    if isinstance(exc, ConfigurationError):
        payload["errors"] = list(exc.errors)
    return {"error": payload}
