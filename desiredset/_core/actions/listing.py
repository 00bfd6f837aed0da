"""
Listing of the existing objects of one kind, as the "actual" state.

The existing objects are taken from the cache if there is one. Otherwise,
they are listed from the store in one of three ways:

* in one fixed namespace, if the lister's namespace is configured;
* in all namespaces at once, if there is an owner: the owned objects can be
  anywhere, including the namespaces that are not desired anymore;
* in every namespace of the desired objects, concurrently.

The listing does not stop on the first failure. The objects that were listed
are returned even if the listing is incomplete: the under-approximated actual
state is safer to act upon than a discarded one (fewer objects are deleted).
"""
import asyncio
import logging
from typing import Collection, List, Optional, Tuple

from desiredset._cogs.aiokits import aiotasks
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import bodies, errors, objectsets, references, selectors
from desiredset._core.intents import capabilities

logger = logging.getLogger(__name__)


async def list_existing(
        *,
        namespaced: bool,
        cache: Optional[capabilities.ObjectCache],
        store: capabilities.ObjectStore,
        selector: selectors.LabelSelector,
        desired: objectsets.ObjectByKey,
        has_owner: bool,
        settings: configuration.ApplySettings,
        logger: typedefs.Logger = logger,
) -> Tuple[objectsets.ObjectByKey, Optional[errors.AggregatedError]]:
    """
    List the existing objects of a kind. Return them with the listing errors (if any).
    """
    lister_namespace = settings.scoping.lister_namespace or None
    objs: objectsets.ObjectByKey = {}
    errs: List[BaseException] = []

    if cache is not None:
        namespace = lister_namespace if namespaced else None
        try:
            items = cache.list(namespace, selector)
        except Exception as e:
            error = errors.ListingError(f"Failed to list the cache: {e}")
            error.__cause__ = e
            errs.append(error)
        else:
            _add_objects(objs, items, errs)
        return objs, errors.aggregate(errs)

    namespaces: List[references.Namespace]
    if lister_namespace is not None:
        namespaces = [lister_namespace]
    elif has_owner:
        namespaces = [None]
    else:
        namespaces = [namespace or None for namespace in objectsets.get_namespaces(desired)]

    await _list_namespaces(
        namespaces=namespaces,
        store=store,
        selector=selector,
        objs=objs,
        errs=errs,
        concurrency=settings.listing.concurrency,
        logger=logger,
    )
    return objs, errors.aggregate(errs)


async def _list_namespaces(
        *,
        namespaces: Collection[references.Namespace],
        store: capabilities.ObjectStore,
        selector: selectors.LabelSelector,
        objs: objectsets.ObjectByKey,
        errs: List[BaseException],
        concurrency: Optional[int],
        logger: typedefs.Logger,
) -> None:
    """
    List the namespaces concurrently, one task per namespace.

    The listed objects are merged under a lock, while the remote calls
    are made unlocked and in parallel (up to the concurrency limit, if any).
    On the first failure, the remaining tasks are cancelled; whatever
    has been merged by then is kept.
    """
    lock = asyncio.Lock()
    limit = asyncio.Semaphore(concurrency or len(namespaces) or 1)

    async def list_namespace(namespace: references.Namespace) -> None:
        async with limit:
            items = await store.list(namespace, selector)
        async with lock:
            _add_objects(objs, items, errs)

    tasks = {
        asyncio.create_task(list_namespace(namespace), name=f"listing of {namespace or '*'}"): namespace
        for namespace in namespaces
    }
    try:
        await aiotasks.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        await aiotasks.cancel([task for task in tasks if not task.done()])

    for task, namespace in tasks.items():
        exc = aiotasks.failure(task)
        where = f"namespace {namespace!r}" if namespace is not None else "all namespaces"
        if exc is not None:
            error = errors.ListingError(f"Failed to list {where}: {exc}")
            error.__cause__ = exc
            errs.append(error)
        elif task.cancelled():
            logger.debug(f"Listing of {where} is cancelled due to other failures.")


def _add_objects(
        objs: objectsets.ObjectByKey,
        items: Collection[bodies.RawBody],
        errs: List[BaseException],
) -> None:
    for body in items:
        try:
            key = objectsets.ObjectKey.from_body(body)
        except ValueError as e:
            errs.append(errors.ListingError(f"Failed to key a listed object: {e}"))
        else:
            objs[key] = body
