"""
K8s API errors as our own exception hierarchy.

The rest of the library never sees the exceptions of ``aiohttp`` for the API
responses: every failed response is converted to :class:`APIError` or one of
its descendants, with the original client error chained as the cause.
The networking errors (connectivity, TLS, timeouts) are not API errors
and are escalated as they are.

Some statuses and reasons get their own classes because they are handled
specially elsewhere: e.g. "already exists" on creation is a take-over,
"not found" on deletion is a success, and the server errors are retried.
"""
import collections.abc
import json
from typing import Dict, Optional, Type

import aiohttp
from typing_extensions import Literal, TypedDict


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.19/#status-v1-meta
class RawStatus(TypedDict, total=False):
    apiVersion: str
    kind: Literal["Status"]
    code: int
    status: Literal["Success", "Failure"]
    reason: str
    message: str


class APIError(Exception):

    def __init__(
            self,
            payload: Optional[RawStatus],
            *,
            status: int,
    ) -> None:
        message = payload.get('message') if payload else None
        super().__init__(message, payload)
        self._status = status
        self._payload = payload

    def __str__(self) -> str:
        return self.message or f"HTTP {self._status}"

    @property
    def status(self) -> int:
        return self._status

    @property
    def code(self) -> Optional[int]:
        return self._payload.get('code') if self._payload else None

    @property
    def reason(self) -> Optional[str]:
        return self._payload.get('reason') if self._payload else None

    @property
    def message(self) -> Optional[str]:
        return self._payload.get('message') if self._payload else None


class APIUnauthorizedError(APIError):
    pass


class APIForbiddenError(APIError):
    pass


class APINotFoundError(APIError):
    pass


class APIConflictError(APIError):
    pass


class APIAlreadyExistsError(APIConflictError):
    pass


class APIServerError(APIError):
    pass


_ERRORS_BY_STATUS: Dict[int, Type[APIError]] = {
    401: APIUnauthorizedError,
    403: APIForbiddenError,
    404: APINotFoundError,
    409: APIConflictError,
}

_ERRORS_BY_REASON: Dict[str, Type[APIError]] = {
    'AlreadyExists': APIAlreadyExistsError,
}


def classify(status: int, reason: Optional[str]) -> Type[APIError]:
    """ Pick the most specific error class for the HTTP status & the K8s reason. """
    if status >= 500:
        return APIServerError
    cls = _ERRORS_BY_STATUS.get(status, APIError)
    specific = _ERRORS_BY_REASON.get(reason or '')
    return specific if specific is not None and issubclass(specific, cls) else cls


async def _read_status(response: aiohttp.ClientResponse) -> Optional[RawStatus]:
    try:
        payload = await response.json()
    except (json.JSONDecodeError, aiohttp.ContentTypeError, aiohttp.ClientConnectionError):
        return None

    # Anything but a Status can carry sensitive data, so it is not exposed in the errors.
    if not isinstance(payload, collections.abc.Mapping) or payload.get('kind') != 'Status':
        return None
    return payload  # type: ignore


async def check_response(
        response: aiohttp.ClientResponse,
) -> None:
    """
    Check for specialised K8s errors, and raise with extended information.
    """
    if response.status < 400:
        return

    # The body must be read before raise_for_status(), which releases the response.
    payload = await _read_status(response)
    cls = classify(response.status, payload.get('reason') if payload else None)
    try:
        response.raise_for_status()
    except aiohttp.ClientResponseError as e:
        raise cls(payload, status=response.status) from e
