from typing import cast

from desiredset._cogs.clients import api
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import bodies, references


async def create_obj(
        *,
        settings: configuration.ApplySettings,
        resource: references.Resource,
        namespace: references.Namespace = None,
        body: bodies.RawBody,
        logger: typedefs.Logger,
) -> bodies.RawBody:
    """
    Create a resource.

    The namespace, if not set explicitly, is taken from the body's metadata.
    For the cluster-scoped resources, the namespace is ignored.

    Raises :class:`errors.APIAlreadyExistsError` if the object already exists.
    """
    if namespace is None:
        namespace = body.get('metadata', {}).get('namespace') or None
    created_body: bodies.RawBody = await api.post(
        url=resource.get_url(namespace=namespace if resource.namespaced else None),
        payload=body,
        logger=logger,
        settings=settings,
    )
    return cast(bodies.RawBody, created_body)
