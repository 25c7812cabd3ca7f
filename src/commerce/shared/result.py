"""Uniform result envelope returned by every public commerce operation.

Aggregates and handlers raise Protean exceptions; the application services
convert them into a ``Result`` so callers never have to catch anything.
"""

from dataclasses import dataclass
from typing import Any

import structlog
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)

DOMAIN_ERRORS = (ValidationError, ObjectNotFoundError, InvalidOperationError)


@dataclass(frozen=True)
class Result:
    """Outcome of an operation: ``success`` plus either ``data`` or ``message``."""

    success: bool
    data: Any = None
    message: str | None = None

    @classmethod
    def ok(cls, data: Any = None, message: str | None = None) -> "Result":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, message: str, data: Any = None) -> "Result":
        return cls(success=False, data=data, message=message)

    def as_dict(self) -> dict:
        payload = {"success": self.success}
        if self.data is not None:
            payload["data"] = self.data
        if self.message is not None:
            payload["message"] = self.message
        return payload


def error_message(exc: Exception) -> str:
    """Extract a human-readable message from a domain exception."""
    if isinstance(exc, ValidationError):
        messages = exc.messages
        if isinstance(messages, dict):
            for errors in messages.values():
                if isinstance(errors, (list, tuple)) and errors:
                    return str(errors[0])
                if errors:
                    return str(errors)
        return str(messages)
    if isinstance(exc, ObjectNotFoundError) and exc.args:
        return str(exc.args[0])
    return str(exc)


def dispatch(command_cls, **kwargs) -> Result:
    """Build and synchronously process a command, mapping domain errors to a failure."""
    try:
        command = command_cls(**kwargs)
        data = current_domain.process(command, asynchronous=False)
    except DOMAIN_ERRORS as exc:
        message = error_message(exc)
        logger.info("Command rejected", command=command_cls.__name__, reason=message)
        return Result.fail(message)
    return Result.ok(data)


def load(aggregate_cls, identifier, label: str | None = None):
    """Fetch an aggregate by id, raising ObjectNotFoundError with a readable message."""
    label = label or aggregate_cls.__name__
    if not identifier:
        raise ValidationError({"id": [f"{label} id is required"]})
    try:
        return current_domain.repository_for(aggregate_cls).get(identifier)
    except ObjectNotFoundError as exc:
        raise ObjectNotFoundError(f"{label} not found") from exc
