import json
from typing import Optional
import kubernetes_asyncio

_ALREADY_EXISTS = "alreadyexists"
_NOT_FOUND = "notfound"
_CONFLICT = "conflict"


class StoreError(Exception):
    """Base class for errors reported by the control-plane store."""

    retryable: bool = True

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFoundError(StoreError):
    """The object does not exist (or no longer exists)."""


class ConflictError(StoreError):
    """The version token supplied with a write is stale, or the object
    was created concurrently by someone else."""


class UpstreamError(StoreError):
    """The store rejected the request (permissions, validation, server errors)."""


class InputError(Exception):
    """A user-supplied input (ConfigMap, config document) is missing or
    malformed. Retried, since the user may fix it at any time."""

    retryable: bool = True


class InvariantViolation(Exception):
    """A condition that can only be caused by a logic bug or a foreign
    controller, never by a transient failure. Not retryable."""

    retryable: bool = False


def _error_body(ex: kubernetes_asyncio.client.ApiException) -> dict:
    try:
        if ex.body:
            body = json.loads(ex.body)
            if isinstance(body, dict):
                return body
    except (json.JSONDecodeError, TypeError, AttributeError):
        pass
    return {}


def already_exists_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return _error_body(ex).get("reason", "").lower() == _ALREADY_EXISTS


def not_found_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 404 or _error_body(ex).get("reason", "").lower() == _NOT_FOUND


def convert_api_exception(ex: kubernetes_asyncio.client.ApiException) -> StoreError:
    """
    Convert kubernetes ApiException to the operator's store error taxonomy.

    Args:
        ex: The ApiException to convert

    Returns:
        NotFoundError for 404, ConflictError for 409 (stale resourceVersion or
        AlreadyExists), UpstreamError for everything else.
    """
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        raise ex

    body = _error_body(ex)
    error_msg = f"Kubernetes API error ({ex.status}): {ex.reason}"
    if "message" in body:
        error_msg = f"{error_msg} - {body['message']}"

    if not_found_error(ex):
        return NotFoundError(error_msg, status=ex.status)
    reason = body.get("reason", "").lower()
    if ex.status == 409 or already_exists_error(ex) or reason == _CONFLICT:
        return ConflictError(error_msg, status=ex.status)
    return UpstreamError(error_msg, status=ex.status)
