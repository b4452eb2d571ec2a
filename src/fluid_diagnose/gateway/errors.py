"""Errors raised by the resource gateway."""

from __future__ import annotations

from kubernetes.client.rest import ApiException


class GatewayError(Exception):
    """A resource could not be read for a reason other than absence."""

    def __init__(self, message: str, status: int | None = None, reason: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason

    @classmethod
    def from_api_exception(cls, action: str, exc: ApiException) -> "GatewayError":
        return cls(f"failed to {action}: {exc.status} {exc.reason}", status=exc.status, reason=exc.reason)


class DatasetNotFoundError(GatewayError):
    """The requested Dataset does not exist."""

    def __init__(self, namespace: str, name: str) -> None:
        super().__init__(f"dataset {namespace}/{name} not found", status=404, reason="NotFound")
        self.namespace = namespace
        self.name = name
