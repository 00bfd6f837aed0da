from typing import Collection, List, Optional, Tuple

from desiredset._cogs.clients import api
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import bodies, references, selectors


async def read_obj(
        *,
        settings: configuration.ApplySettings,
        resource: references.Resource,
        namespace: references.Namespace,
        name: str,
        logger: typedefs.Logger,
) -> bodies.RawBody:
    """
    Read one specific object. Raises :class:`errors.APINotFoundError` if absent.
    """
    body: bodies.RawBody = await api.get(
        url=resource.get_url(namespace=namespace if resource.namespaced else None, name=name),
        logger=logger,
        settings=settings,
    )
    return body


async def list_objs(
        *,
        settings: configuration.ApplySettings,
        resource: references.Resource,
        namespace: references.Namespace,
        selector: Optional[selectors.LabelSelector] = None,
        logger: typedefs.Logger,
) -> Tuple[Collection[bodies.RawBody], str]:
    """
    List the objects of specific resource type.

    The cluster-scoped call is used in two cases:

    * The resource itself is cluster-scoped, and namespacing makes not sense.
    * The objects are listed in all namespaces for the namespaced resource.

    Otherwise, the namespace-scoped call is used.

    The objects in a list have no ``kind`` & ``apiVersion``; they are restored
    from the list's own ``kind`` & ``apiVersion``.
    """
    params = {'labelSelector': str(selector)} if selector else None
    rsp = await api.get(
        url=resource.get_url(namespace=namespace if resource.namespaced else None, params=params),
        logger=logger,
        settings=settings,
    )

    items: List[bodies.RawBody] = []
    resource_version = rsp.get('metadata', {}).get('resourceVersion', None)
    for item in rsp.get('items', []):
        if 'kind' in rsp:
            item.setdefault('kind', rsp['kind'][:-4] if rsp['kind'][-4:] == 'List' else rsp['kind'])
        if 'apiVersion' in rsp:
            item.setdefault('apiVersion', rsp['apiVersion'])
        items.append(item)

    return items, resource_version
