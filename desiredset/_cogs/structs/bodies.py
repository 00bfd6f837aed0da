"""
All the structures coming from/to the Kubernetes API.

The usage of these classes is spread over the codebase, so they are extracted
into a separate module of such type definitions.

The objects are kept as plain JSON-decoded dicts, exactly as they come from
the API or from the manifests. The typed dicts below only document the fields
that the library itself uses; arbitrary fields are preserved at runtime.
"""
import copy
from typing import Any, List, Mapping, Optional, cast

from typing_extensions import TypedDict

Labels = Mapping[str, str]
Annotations = Mapping[str, str]


class OwnerReference(TypedDict, total=False):
    controller: bool
    blockOwnerDeletion: bool
    apiVersion: str
    kind: str
    name: str
    uid: str


class RawMeta(TypedDict, total=False):
    uid: str
    name: str
    namespace: str
    labels: Labels
    annotations: Annotations
    ownerReferences: List[OwnerReference]
    finalizers: List[str]
    resourceVersion: str
    deletionTimestamp: str
    creationTimestamp: str
    generation: int
    selfLink: str


class RawBody(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawMeta
    spec: Mapping[str, Any]
    status: Mapping[str, Any]


# The metadata fields maintained by the server. They are never applied or compared.
SERVER_METADATA_FIELDS = frozenset({
    'uid',
    'resourceVersion',
    'generation',
    'creationTimestamp',
    'deletionTimestamp',
    'deletionGracePeriodSeconds',
    'managedFields',
    'selfLink',
})


def get_name(body: Mapping[str, Any]) -> Optional[str]:
    return cast(Optional[str], body.get('metadata', {}).get('name'))


def get_namespace(body: Mapping[str, Any]) -> str:
    return cast(str, body.get('metadata', {}).get('namespace') or '')


def get_uid(body: Mapping[str, Any]) -> Optional[str]:
    return cast(Optional[str], body.get('metadata', {}).get('uid'))


def get_labels(body: Mapping[str, Any]) -> Labels:
    return cast(Labels, body.get('metadata', {}).get('labels') or {})


def get_annotations(body: Mapping[str, Any]) -> Annotations:
    return cast(Annotations, body.get('metadata', {}).get('annotations') or {})


def with_namespace(body: RawBody, namespace: str) -> RawBody:
    """
    Make a deep copy of the body with the namespace set or removed (if empty).

    The original body is never modified: it usually belongs to the caller.
    """
    result = copy.deepcopy(body)
    meta = result.setdefault('metadata', {})
    if namespace:
        meta['namespace'] = namespace
    else:
        meta.pop('namespace', None)
    return result


def build_owner_reference(
        body: Mapping[str, Any],
        *,
        controller: bool = True,
        block_owner_deletion: bool = True,
) -> OwnerReference:
    """
    Construct an owner reference object for the parent-children relationships.

    The structure needed to link the children objects to the current object as a parent.
    See https://kubernetes.io/docs/concepts/workloads/controllers/garbage-collection/

    Keep in mind that some fields can be absent: e.g. ``apiVersion``
    for an owner loaded from a partial manifest.
    """
    ref = dict(
        apiVersion=body.get('apiVersion'),
        kind=body.get('kind'),
        name=body.get('metadata', {}).get('name'),
        uid=body.get('metadata', {}).get('uid'),
    )
    owner_ref = cast(OwnerReference, {key: val for key, val in ref.items() if val})
    owner_ref['controller'] = controller
    owner_ref['blockOwnerDeletion'] = block_owner_deletion
    return owner_ref
