from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from worktime.errors import ConfigurationError
from worktime.schemas import BreakRule, ScheduleConfig, SurchargeRule


def _format_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "__root__")
    message = str(error.get("msg", "invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{location}: {message}" if location else message


def _collect_errors(model: type[BaseModel], payload: dict[str, Any] | BaseModel) -> list[str]:
    data = payload.model_dump() if isinstance(payload, BaseModel) else payload
    try:
        model.model_validate(data)
    except ValidationError as exc:
        return [_format_error(error) for error in exc.errors()]
    return []


def validate_schedule_config(payload: dict[str, Any] | ScheduleConfig) -> list[str]:
    return _collect_errors(ScheduleConfig, payload)


def validate_break_rule(payload: dict[str, Any] | BreakRule) -> list[str]:
    return _collect_errors(BreakRule, payload)


def validate_surcharge_rule(payload: dict[str, Any] | SurchargeRule) -> list[str]:
    return _collect_errors(SurchargeRule, payload)


def ensure_valid_schedule_config(payload: dict[str, Any]) -> ScheduleConfig:
    errors = validate_schedule_config(payload)
    if errors:
        raise ConfigurationError(errors)
    return ScheduleConfig.model_validate(payload)
