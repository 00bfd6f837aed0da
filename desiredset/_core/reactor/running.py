"""
Running of a desired set as a whole: the login, the resolution, the applying.

This is the glue for the command-line & the scripts. The library users
with their own API contexts, resolvers, and caches can use
:class:`desiredset.DesiredSet` directly in their own event loops.
"""
import asyncio
import contextlib
import dataclasses
import logging
from typing import Collection, Iterable, Optional

from desiredset._cogs.clients import api, auth
from desiredset._cogs.configs import configuration
from desiredset._cogs.structs import bodies, plans, references
from desiredset._core.engines import resolving
from desiredset._core.intents import capabilities, piggybacking
from desiredset._core.reactor import processing

logger = logging.getLogger(__name__)


def run(
        objs: Iterable[bodies.RawBody],
        *,
        set_id: Optional[str] = None,
        owner: Optional[bodies.RawBody] = None,
        prune_types: Collection[references.GroupVersionKind] = (),
        dry_run: bool = False,
        settings: Optional[configuration.ApplySettings] = None,
        resolver: Optional[capabilities.ClientResolver] = None,
        context: Optional[auth.APIContext] = None,
) -> Optional[plans.Plan]:
    """
    Apply the desired set synchronously. Return the plan in the dry-run mode.
    """
    return asyncio.run(apply(
        objs,
        set_id=set_id,
        owner=owner,
        prune_types=prune_types,
        dry_run=dry_run,
        settings=settings,
        resolver=resolver,
        context=context,
    ))


async def apply(
        objs: Iterable[bodies.RawBody],
        *,
        set_id: Optional[str] = None,
        owner: Optional[bodies.RawBody] = None,
        prune_types: Collection[references.GroupVersionKind] = (),
        dry_run: bool = False,
        settings: Optional[configuration.ApplySettings] = None,
        resolver: Optional[capabilities.ClientResolver] = None,
        context: Optional[auth.APIContext] = None,
) -> Optional[plans.Plan]:
    """
    Apply the desired set asynchronously. Return the plan in the dry-run mode.

    If neither a resolver nor an API context is given, the login is performed
    with the service account or the kubeconfig, and the API is used as is.

    With an API context, the namespaceless objects go to the context's namespace,
    unless the default namespace is set explicitly in the settings.
    """
    settings = settings if settings is not None else configuration.ApplySettings()
    async with contextlib.AsyncExitStack() as stack:
        if resolver is None and context is None:
            info = piggybacking.login(logger=logger)
            context = await stack.enter_async_context(auth.APIContext(info))
        if context is not None:
            stack.enter_context(context.activate())
            settings = await with_context_namespace(settings)
        if resolver is None:
            resolver = resolving.ApiResolver(settings=settings, logger=logger)

        if owner is not None and not bodies.get_uid(owner):
            owner = await fetch_owner(owner, resolver=resolver, settings=settings)

        desired_set = processing.DesiredSet(
            resolver=resolver,
            settings=settings,
            set_id=set_id,
            owner=owner,
            prune_types=prune_types,
            logger=logger,
        )
        if dry_run:
            return await desired_set.dry_run(objs)
        else:
            await desired_set.apply(objs)
            return None


async def with_context_namespace(
        settings: configuration.ApplySettings,
) -> configuration.ApplySettings:
    """
    Fill the default namespace from the active API context, if it is not set.

    The caller's settings are not modified: a copy is returned if anything changes.
    """
    if settings.scoping.default_namespace is not None:
        return settings
    namespace = await api.get_default_namespace()
    if not namespace:
        return settings
    logger.debug(f"Using the context's default namespace: {namespace}")
    scoping = dataclasses.replace(settings.scoping, default_namespace=namespace)
    return dataclasses.replace(settings, scoping=scoping)


async def fetch_owner(
        owner: bodies.RawBody,
        *,
        resolver: capabilities.ClientResolver,
        settings: configuration.ApplySettings,
) -> bodies.RawBody:
    """
    Fetch the owner as it is in the cluster (e.g. with its UID), if only its manifest is known.
    """
    gvk = references.GroupVersionKind.from_body(owner)
    name = bodies.get_name(owner)
    if not name:
        raise ValueError("The owner has no name.")
    namespaced = await resolver.is_namespaced(gvk)
    namespace = (bodies.get_namespace(owner) or settings.scoping.namespace) if namespaced else None
    _, store = await resolver.resolve(gvk)
    logger.debug(f"Fetching the owner {gvk} {namespace or ''}/{name}.")
    return await store.get(namespace, name)
