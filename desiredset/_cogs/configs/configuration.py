"""
All configuration flags, options, settings to fine-tune the reconciliation.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

Some of the settings are flags, some are scalars, some are optional,
some are not (but all of them have reasonable defaults).

The settings are never global: every :class:`ApplySettings` instance
is passed explicitly to the desired sets and the API clients that use it.
"""
import dataclasses
from typing import TYPE_CHECKING, Collection, Iterable, Optional, Union

from desiredset._cogs.structs import references

if TYPE_CHECKING:
    from desiredset._core.intents import capabilities

# As in kubectl: when neither the caller nor the login context specify a namespace.
FALLBACK_NAMESPACE = 'default'


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: Optional[float] = 5 * 60  # == aiohttp.client.DEFAULT_TIMEOUT
    """
    A timeout for all requests: listing, creating, patching, deleting.
    """

    connect_timeout: Optional[float] = None
    """
    A timeout for the connection establishing of all requests.
    """

    error_backoffs: Union[float, Iterable[float]] = (1, 1, 2, 3, 5, 8, 13, 21)
    """
    Backoffs (in seconds) for the retries of the failed API requests.

    Only the connection errors and HTTP 5xx are retried.
    Every other error, e.g. HTTP 4xx, is escalated immediately.
    An empty collection disables the retries.
    """


@dataclasses.dataclass
class ScopingSettings:

    default_namespace: Optional[str] = None
    """
    The namespace for the namespaced objects with no namespace specified.

    If not set, the namespace of the login context (the kubeconfig's context
    or the service account) is used, and ``"default"`` if there is none.
    """

    lister_namespace: Optional[str] = None
    """
    If set, the existing objects are listed only in this namespace.

    If not set, the objects are listed in all namespaces when there is an owner
    (to find the owned objects wherever they are), or only in the namespaces
    of the desired objects otherwise.
    """

    restrict_cluster_scoped: bool = False
    """
    Should the cluster-scoped kinds be rejected?
    It is used to confine an apply run to the namespaced objects only.
    """

    @property
    def namespace(self) -> str:
        """ The effective namespace for the namespaceless objects. """
        return self.default_namespace or FALLBACK_NAMESPACE


@dataclasses.dataclass
class OwnershipSettings:

    set_owner_reference: bool = True
    """
    Should the owner references be added to the desired objects (if there is an owner)?
    """

    controller: bool = True
    """ The ``controller`` flag of the added owner references. """

    block_owner_deletion: bool = True
    """ The ``blockOwnerDeletion`` flag of the added owner references. """


@dataclasses.dataclass
class CachingSettings:

    strict: bool = False
    """
    Should the existing objects be listed only from the caches?

    If set, a kind with no cache fails instead of being listed from the API.
    """


@dataclasses.dataclass
class ListingSettings:

    concurrency: Optional[int] = None
    """
    How many namespaces can be listed in parallel (if listed one by one).
    ``None`` means no limits.
    """


@dataclasses.dataclass
class LabellingSettings:

    prune_label: str = 'desiredset.dev/prune'
    """
    The objects labelled with ``"false"`` in this label are never deleted.
    """

    hash_label: str = 'desiredset.dev/hash'
    """
    The label with the digest of the set's identity. The existing objects
    of a set are selected by this label.
    """

    id_annotation: str = 'desiredset.dev/id'
    owner_gvk_annotation: str = 'desiredset.dev/owner-gvk'
    owner_name_annotation: str = 'desiredset.dev/owner-name'
    owner_namespace_annotation: str = 'desiredset.dev/owner-namespace'

    applied_annotation: str = 'desiredset.dev/applied'
    """
    The annotation with the last-applied configuration of an object.
    It is used to detect the fields removed from the desired state.
    """


def _default_replacing_patcher() -> "capabilities.Patcher":
    from desiredset._core.engines import stores
    return stores.ReplaceOnChange()


@dataclasses.dataclass
class ReplacingSettings:

    kinds: Collection[references.GroupVersionKind] = ()
    """
    The kinds which are replaced (deleted & recreated) on any change
    instead of being patched, e.g. for the objects with immutable fields.
    """

    patcher: "capabilities.Patcher" = dataclasses.field(default_factory=_default_replacing_patcher)
    """
    The patcher used for the kinds above.
    """


@dataclasses.dataclass
class ApplySettings:
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
    scoping: ScopingSettings = dataclasses.field(default_factory=ScopingSettings)
    ownership: OwnershipSettings = dataclasses.field(default_factory=OwnershipSettings)
    caching: CachingSettings = dataclasses.field(default_factory=CachingSettings)
    listing: ListingSettings = dataclasses.field(default_factory=ListingSettings)
    labelling: LabellingSettings = dataclasses.field(default_factory=LabellingSettings)
    replacing: ReplacingSettings = dataclasses.field(default_factory=ReplacingSettings)
