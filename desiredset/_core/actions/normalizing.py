"""
Normalization of the desired objects: their owners and their namespaces.

The desired objects usually belong to the caller, so they are never modified.
Every function here builds a new mapping, with the changed objects deep-copied
and re-keyed if their namespace has changed. The unchanged objects are shared.

When a re-keyed object collides with an object that already had that key,
the latter wins: the explicitly namespaced object is more specific.
"""
import copy
from typing import Any, Dict, List, Mapping, Tuple

from desiredset._cogs.configs import configuration
from desiredset._cogs.structs import bodies, objectsets


def assign_owner_references(
        objs: objectsets.ObjectByKey,
        *,
        owner: Mapping[str, Any],
        owner_namespaced: bool,
        namespaced: bool,
        settings: configuration.ApplySettings,
) -> objectsets.ObjectByKey:
    """
    Bind the desired objects to the owner via the owner references.

    The owner references never cross the scope boundaries: a namespaced owner
    can own neither the cluster-scoped objects nor the objects in other
    namespaces. Such objects are left unowned (but still desired).

    The namespaced objects with no namespace are put to the owner's namespace.
    The reference is added only once per owner's UID, so the assignment
    can be repeated safely.
    """
    owner_namespace = bodies.get_namespace(owner)
    owner_uid = bodies.get_uid(owner)
    owner_ref = bodies.build_owner_reference(
        owner,
        controller=settings.ownership.controller,
        block_owner_deletion=settings.ownership.block_owner_deletion,
    )

    kept: objectsets.ObjectByKey = {}
    moved: List[Tuple[objectsets.ObjectKey, bodies.RawBody]] = []
    for key, body in sorted(objs.items(), key=lambda item: str(item[0])):

        # Can't set owners across the boundaries.
        if owner_namespaced and not namespaced:
            kept[key] = body
            continue
        if namespaced and key.namespace and owner_namespaced and key.namespace != owner_namespace:
            kept[key] = body
            continue

        body = copy.deepcopy(body)
        metadata = body.setdefault('metadata', {})
        references = metadata.setdefault('ownerReferences', [])
        if not any(ref.get('uid') == owner_uid for ref in references):
            references.append(copy.deepcopy(owner_ref))

        if namespaced and not key.namespace and owner_namespace:
            metadata['namespace'] = owner_namespace
            moved.append((key._replace(namespace=owner_namespace), body))
        else:
            kept[key] = body

    return _merge(kept, moved)


def adjust_namespace(
        objs: objectsets.ObjectByKey,
        *,
        namespace: str,
) -> objectsets.ObjectByKey:
    """ Put the namespaced objects with no namespace to the default namespace. """
    kept: objectsets.ObjectByKey = {}
    moved: List[Tuple[objectsets.ObjectKey, bodies.RawBody]] = []
    for key, body in sorted(objs.items(), key=lambda item: str(item[0])):
        if key.namespace:
            kept[key] = body
        else:
            moved.append((key._replace(namespace=namespace), bodies.with_namespace(body, namespace)))
    return _merge(kept, moved)


def clear_namespace(
        objs: objectsets.ObjectByKey,
) -> objectsets.ObjectByKey:
    """ Remove the namespaces from the cluster-scoped objects. """
    kept: objectsets.ObjectByKey = {}
    moved: List[Tuple[objectsets.ObjectKey, bodies.RawBody]] = []
    for key, body in sorted(objs.items(), key=lambda item: str(item[0])):
        if not key.namespace:
            kept[key] = body
        else:
            moved.append((key._replace(namespace=''), bodies.with_namespace(body, '')))
    return _merge(kept, moved)


def _merge(
        kept: objectsets.ObjectByKey,
        moved: List[Tuple[objectsets.ObjectKey, bodies.RawBody]],
) -> objectsets.ObjectByKey:
    result: Dict[objectsets.ObjectKey, bodies.RawBody] = dict(kept)
    for key, body in moved:
        result.setdefault(key, body)
    return result
