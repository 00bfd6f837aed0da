"""
The low-level HTTP verbs of the Kubernetes API with retries on server errors.

All the object-level verbs (:mod:`creating`, :mod:`fetching`, etc.) go through
:func:`request`, which prefixes the relative URLs with the server's address,
applies the timeouts from the settings, and classifies the failed responses
into :class:`errors.APIError` and its descendants.

Only the connection errors, the timeouts, and HTTP 5xx are retried.
The client errors (HTTP 4xx) are escalated immediately: repeating the same
request will not make a bad request good.
"""
import asyncio
import collections.abc
import itertools
from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple, Type, Union

import aiohttp

from desiredset._cogs.clients import auth, errors
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs

RETRIABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    aiohttp.ClientConnectionError,
    errors.APIServerError,
    asyncio.TimeoutError,
)


@auth.authenticated
async def get_default_namespace(
        *,
        context: Optional[auth.APIContext] = None,
) -> Optional[str]:
    if context is None:
        raise RuntimeError("API instance is not injected by the decorator.")
    return context.default_namespace


def _iter_attempts(
        backoffs: Union[float, Iterable[float]],
) -> Iterator[Tuple[int, str, Optional[float]]]:
    """
    Yield the attempts' numbers and labels (``#2/5`` or ``#2``) with the delays after them.

    The last attempt has no delay: its failure is escalated.
    A single float is a single retry with that delay.
    """
    delays: Iterable[float] = backoffs if isinstance(backoffs, collections.abc.Iterable) else [backoffs]
    total = len(delays) + 1 if isinstance(delays, collections.abc.Sized) else None
    for attempt, delay in enumerate(itertools.chain(delays, [None]), start=1):
        yield attempt, (f"#{attempt}/{total}" if total is not None else f"#{attempt}"), delay


@auth.authenticated
async def request(
        method: str,
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ApplySettings,
        payload: Optional[object] = None,
        data: Optional[bytes] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        context: Optional[auth.APIContext] = None,  # injected by the decorator
        logger: typedefs.Logger,
) -> aiohttp.ClientResponse:
    if context is None:  # for type-checking!
        raise RuntimeError("API instance is not injected by the decorator.")

    if '://' not in url:
        url = context.server.rstrip('/') + '/' + url.lstrip('/')
    if timeout is None:
        timeout = aiohttp.ClientTimeout(
            total=settings.networking.request_timeout,
            sock_connect=settings.networking.connect_timeout,
        )

    what = f"{method.upper()} {url}"
    for attempt, idx, backoff in _iter_attempts(settings.networking.error_backoffs):
        try:
            response = await context.session.request(
                method=method,
                url=url,
                json=payload if data is None else None,
                data=data,
                headers=headers,
                timeout=timeout,
            )
            await errors.check_response(response)  # the body is parsed by the caller.
        except RETRIABLE_ERRORS as e:
            if backoff is None:
                logger.error(f"Request attempt {idx} failed; escalating: {what} -> {e!r}")
                raise
            logger.error(f"Request attempt {idx} failed; will retry: {what} -> {e!r}")
            await asyncio.sleep(backoff)  # cancellable, but not awakable.
        else:
            if attempt > 1:
                logger.debug(f"Request attempt {idx} succeeded: {what}")
            return response

    raise RuntimeError("Broken retryable routine.")  # impossible, but needed for type-checking.


async def _request_json(method: str, url: str, **kwargs: Any) -> Any:
    response = await request(method=method, url=url, **kwargs)
    async with response:
        return await response.json()


async def get(
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ApplySettings,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    return await _request_json('get', url, headers=headers, timeout=timeout,
                               settings=settings, logger=logger)


async def post(
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ApplySettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    return await _request_json('post', url, payload=payload, headers=headers, timeout=timeout,
                               settings=settings, logger=logger)


async def patch(
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ApplySettings,
        data: bytes,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    # The patch body is pre-serialized: its content type depends on the patch type, not on JSON.
    return await _request_json('patch', url, data=data, headers=headers, timeout=timeout,
                               settings=settings, logger=logger)


async def delete(
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ApplySettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    return await _request_json('delete', url, payload=payload, headers=headers, timeout=timeout,
                               settings=settings, logger=logger)
