import dataclasses
import re
import urllib.parse
from typing import Any, FrozenSet, List, Mapping, NamedTuple, Optional

# A namespace reference usable in the API calls. `None` means cluster-wide API calls.
Namespace = Optional[str]


class GroupKind(NamedTuple):
    group: str
    kind: str

    def __str__(self) -> str:
        return f'{self.kind}.{self.group}' if self.group else self.kind


_GVK_PATTERN = re.compile(r'^\s*(?:(?P<gv>[^,\s]+)\s*,\s*)?Kind=(?P<kind>\S+)\s*$')


@dataclasses.dataclass(frozen=True, order=True)
class GroupVersionKind:
    """
    An identifier of a resource type as seen in the manifests.

    The reconciliation treats it mostly as an opaque key to look up the clients,
    caches, patchers, and reconcilers. Only the group+kind part is interpreted:
    to detect the same resource type served under different API versions.
    """

    group: str
    version: str
    kind: str

    def __str__(self) -> str:
        return f'{self.api_version}, Kind={self.kind}'

    @property
    def api_version(self) -> str:
        return f'{self.group}/{self.version}' if self.group else self.version

    @property
    def group_kind(self) -> GroupKind:
        return GroupKind(self.group, self.kind)

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> "GroupVersionKind":
        group, _, version = api_version.rpartition('/')
        return cls(group=group, version=version, kind=kind)

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "GroupVersionKind":
        api_version = body.get('apiVersion')
        kind = body.get('kind')
        if not api_version or not kind:
            raise ValueError(f"The object has no apiVersion or kind: {body.get('metadata')!r}")
        return cls.from_api_version(api_version, kind)

    @classmethod
    def parse(cls, text: str) -> "GroupVersionKind":
        """
        Parse the GVK from its string form.

        Both the canonical ``"apps/v1, Kind=Deployment"`` and the short
        ``"apps/v1/Deployment"`` or ``"v1/ConfigMap"`` forms are accepted.
        """
        match = _GVK_PATTERN.match(text)
        if match is not None:
            return cls.from_api_version(match.group('gv') or 'v1', match.group('kind'))
        *api_parts, kind = text.strip().split('/')
        if not api_parts or not kind:
            raise ValueError(f"Unparseable group-version-kind: {text!r}")
        return cls.from_api_version('/'.join(api_parts), kind)


@dataclasses.dataclass(frozen=True, eq=False, repr=False)
class Resource:
    """
    A reference to a very specific custom or built-in resource kind.

    It is used to form the K8s API URLs. Generally, K8s API only needs
    an API group, an API version, and a plural name of the resource.
    All other names are remembered for logging and for informational purposes.
    """

    group: str
    """
    The resource's API group; e.g. ``"apps"``, ``"batch"``.
    For Core v1 API resources, an empty string: ``""``.
    """

    version: str
    """
    The resource's API version; e.g. ``"v1"``, ``"v1beta1"``, etc.
    """

    plural: str
    """
    The resource's plural name; e.g. ``"pods"``, ``"deployments"``.
    It is used as an API endpoint, together with API group & version.
    """

    kind: Optional[str] = None
    """
    The resource's kind (as in YAML files); e.g. ``"Pod"``, ``"Deployment"``.
    """

    namespaced: Optional[bool] = None
    """
    Whether the resource is namespaced (``True``) or cluster-scoped (``False``).
    """

    preferred: bool = True
    """
    Whether the resource belong to a "preferred" API version.
    """

    verbs: FrozenSet[str] = frozenset()
    """
    All available verbs for the resource, as supported by K8s API;
    e.g., ``{"list", "watch", "create", "update", "delete", "patch"}``.
    """

    def __hash__(self) -> int:
        return hash((self.group, self.version, self.plural))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Resource):
            self_tuple = (self.group, self.version, self.plural)
            other_tuple = (other.group, other.version, other.plural)
            return self_tuple == other_tuple
        else:
            return NotImplemented

    def __repr__(self) -> str:
        return f'{self.plural}.{self.version}.{self.group}'.strip('.')

    @property
    def gvk(self) -> GroupVersionKind:
        return GroupVersionKind(group=self.group, version=self.version, kind=self.kind or '')

    def get_url(
            self,
            *,
            server: Optional[str] = None,
            namespace: Namespace = None,
            name: Optional[str] = None,
            params: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        Build a URL to be used with K8s API.

        If the namespace is not set, a cluster-wide URL is returned.
        For cluster-scoped resources, the namespace is ignored.

        If the name is not set, the URL for the resource list is returned.
        Otherwise (if set), the URL for the individual resource is returned.

        Params go to the query parameters (``?param1=value1&param2=value2...``).
        """
        if not self.namespaced and namespace is not None:
            raise ValueError("Specific namespaces are not supported for cluster-scoped resources.")
        if self.namespaced and namespace is None and name is not None:
            raise ValueError("Specific namespaces are required for specific namespaced resources.")

        parts: List[Optional[str]] = [
            '/api' if self.group == '' and self.version == 'v1' else '/apis',
            self.group,
            self.version,
            'namespaces' if self.namespaced and namespace is not None else None,
            namespace if self.namespaced and namespace is not None else None,
            self.plural,
            name,
        ]

        query = urllib.parse.urlencode(params, encoding='utf-8') if params else ''
        path = '/'.join([part for part in parts if part])
        url = path + ('?' if query else '') + query
        return url if server is None else server.rstrip('/') + '/' + url.lstrip('/')
