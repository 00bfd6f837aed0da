"""
Capabilities consumed by the reconciliation, and the outcomes of the updates.

Every role is a small protocol: the reconciliation does not know whether
it talks to the live API, to an in-memory store in the tests, or to a plan
recorder in the dry-run mode. The implementations are injected into
the desired set rather than captured as ad-hoc closures.

The updates end with an explicit outcome instead of a special error value:
either nothing has changed, or the object is patched, or it must be replaced
(deleted and recreated later), or the update has failed.
"""
import dataclasses
from typing import Collection, Optional, Tuple, Union

from typing_extensions import Protocol

from desiredset._cogs.structs import bodies, patches, references, selectors


@dataclasses.dataclass(frozen=True)
class Unchanged:
    pass


@dataclasses.dataclass(frozen=True)
class Patched:
    body: Optional[bodies.RawBody] = None


@dataclasses.dataclass(frozen=True)
class ReplaceRequired:
    reason: str = "replace object with changes"


@dataclasses.dataclass(frozen=True)
class Failed:
    error: Exception


UpdateOutcome = Union[Unchanged, Patched, ReplaceRequired, Failed]


class ObjectStore(Protocol):
    """
    The verbs of one resource kind in the remote store.

    The namespace is ``None`` for the cluster-scoped kinds. For listing,
    ``None`` also means "in all namespaces" for the namespaced kinds.
    """

    async def create(self, namespace: references.Namespace, body: bodies.RawBody) -> bodies.RawBody: ...

    async def get(self, namespace: references.Namespace, name: str) -> bodies.RawBody: ...

    async def delete(self, namespace: references.Namespace, name: str, *, force: bool = False) -> None: ...

    async def list(
            self,
            namespace: references.Namespace,
            selector: selectors.LabelSelector,
    ) -> Collection[bodies.RawBody]: ...

    async def patch(
            self,
            namespace: references.Namespace,
            name: str,
            patch_type: patches.PatchType,
            data: bytes,
    ) -> bodies.RawBody: ...


class ObjectCache(Protocol):
    """
    A locally cached view of one resource kind, as maintained by e.g. an informer.

    The namespace is ``None`` for all the namespaces known to the cache.
    """

    def list(
            self,
            namespace: references.Namespace,
            selector: selectors.LabelSelector,
    ) -> Collection[bodies.RawBody]: ...


class Patcher(Protocol):
    """
    Apply (or record) a patch to an existing object.
    """

    async def __call__(
            self,
            namespace: str,
            name: str,
            patch_type: patches.PatchType,
            data: bytes,
    ) -> UpdateOutcome: ...


class Reconciler(Protocol):
    """
    Decide how an existing object is updated to the desired state.

    Returns ``None`` to fall back to the usual patching, or an outcome
    to override it: e.g., :class:`ReplaceRequired` for a full replacement,
    or :class:`Patched` if the reconciler has updated the object on its own.
    """

    async def __call__(
            self,
            existing: bodies.RawBody,
            desired: bodies.RawBody,
    ) -> Optional[UpdateOutcome]: ...


class ClientResolver(Protocol):
    """
    Resolve a kind to its scope, its store, and its cache (if there is one).
    """

    async def is_namespaced(self, gvk: references.GroupVersionKind) -> bool: ...

    async def resolve(
            self,
            gvk: references.GroupVersionKind,
            *,
            strict: bool = False,
    ) -> Tuple[Optional[ObjectCache], ObjectStore]: ...
