"""
Comparison of the existing & desired objects of one kind by their keys.

Only the keys are compared here, not the objects' contents: the contents
are compared later, when the objects to be updated are patched.

All the resulting keys are sorted by their string form ("namespace/name"),
so that the execution order and the plans are the same on every run.
"""
from typing import Collection, List, Mapping, Tuple

from desiredset._cogs.structs import bodies, objectsets, references


def should_prune(body: bodies.RawBody, *, prune_label: str) -> bool:
    """ An object is pruned unless explicitly labelled otherwise. """
    return bodies.get_labels(body).get(prune_label) != 'false'


def compare_sets(
        existing: Mapping[objectsets.ObjectKey, bodies.RawBody],
        desired: Mapping[objectsets.ObjectKey, bodies.RawBody],
        *,
        prune_label: str,
) -> Tuple[List[objectsets.ObjectKey], List[objectsets.ObjectKey], List[objectsets.ObjectKey]]:
    """
    Split the keys into those to be created, deleted, and updated (in that order).
    """
    to_create = [key for key in desired if key not in existing]
    to_update = [key for key in desired if key in existing]
    to_delete = [
        key for key, body in existing.items()
        if key not in desired
        if should_prune(body, prune_label=prune_label)
    ]
    return (
        objectsets.sort_keys(to_create),
        objectsets.sort_keys(to_delete),
        objectsets.sort_keys(to_update),
    )


def filter_cross_version(
        gvk: references.GroupVersionKind,
        keys: Collection[objectsets.ObjectKey],
        *,
        objset: objectsets.ObjectSet,
        default_namespace: str,
) -> List[objectsets.ObjectKey]:
    """
    Exclude the objects that are still desired, but under another version of the kind.

    Two independent checks are made: whether the key is desired in any version
    of the same group & kind; and whether an object in the default namespace
    is desired without a namespace (i.e. before the namespace was defaulted).
    """
    group_kind = gvk.group_kind
    result: List[objectsets.ObjectKey] = []
    for key in keys:
        if objset.contains(group_kind, key):
            continue
        unqualified = objectsets.ObjectKey(namespace='', name=key.name)
        if key.namespace == default_namespace and objset.contains(group_kind, unqualified):
            continue
        result.append(key)
    return result
