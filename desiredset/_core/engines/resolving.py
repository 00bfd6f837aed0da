"""
Resolution of the kinds to the API resources, the stores, and the caches.

The cluster's resources are discovered once per resolver (on the first need),
and are remembered for the resolver's lifetime. An apply run usually has
one resolver, so the discovery happens once per run at most.
"""
import asyncio
import logging
from typing import Callable, Collection, Dict, Mapping, Optional, Tuple

from desiredset._cogs.clients import scanning
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import errors, references
from desiredset._core.engines import stores
from desiredset._core.intents import capabilities

logger = logging.getLogger(__name__)

CacheFactory = Callable[[references.Resource], Optional[capabilities.ObjectCache]]


class ApiResolver:
    """
    The resolver of the kinds via the Kubernetes API discovery.

    The caches can be either given explicitly per kind, or constructed
    by a factory on demand (e.g. to start an informer for a kind).
    """

    def __init__(
            self,
            *,
            settings: configuration.ApplySettings,
            caches: Optional[Mapping[references.GroupVersionKind, capabilities.ObjectCache]] = None,
            cache_factory: Optional[CacheFactory] = None,
            resources: Optional[Collection[references.Resource]] = None,
            logger: typedefs.Logger = logger,
    ) -> None:
        super().__init__()
        self.settings = settings
        self.logger = logger
        self._cache_factory = cache_factory
        self._caches: Dict[references.GroupVersionKind, capabilities.ObjectCache] = dict(caches or {})
        self._stores: Dict[references.GroupVersionKind, capabilities.ObjectStore] = {}
        self._resources: Optional[Dict[references.GroupVersionKind, references.Resource]] = None
        self._lock = asyncio.Lock()
        if resources is not None:
            self._resources = {resource.gvk: resource for resource in resources}

    async def get_resource(self, gvk: references.GroupVersionKind) -> references.Resource:
        async with self._lock:
            if self._resources is None:
                self.logger.debug("Scanning the cluster for the available resources.")
                resources = await scanning.scan_resources(settings=self.settings, logger=self.logger)
                self._resources = {resource.gvk: resource for resource in resources}
        try:
            return self._resources[gvk]
        except KeyError:
            raise errors.ResourceLookupError(f"No resource is found for {gvk}.")

    async def is_namespaced(self, gvk: references.GroupVersionKind) -> bool:
        resource = await self.get_resource(gvk)
        return bool(resource.namespaced)

    async def resolve(
            self,
            gvk: references.GroupVersionKind,
            *,
            strict: bool = False,
    ) -> Tuple[Optional[capabilities.ObjectCache], capabilities.ObjectStore]:

        # The store goes first, so that the resource is discovered and remembered.
        resource = await self.get_resource(gvk)
        store = self._stores.get(gvk)
        if store is None:
            store = stores.ApiStore(resource=resource, settings=self.settings, logger=self.logger)
            self._stores[gvk] = store

        cache = self._caches.get(gvk)
        if cache is None and self._cache_factory is not None:
            cache = self._cache_factory(resource)
            if cache is not None:
                self._caches[gvk] = cache
        if cache is None and strict:
            raise errors.NoCacheError(f"No cache is found for {gvk}.")

        return cache, store
