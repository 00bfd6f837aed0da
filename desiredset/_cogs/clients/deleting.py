from typing import Any, Dict

from desiredset._cogs.clients import api, errors
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import references


async def delete_obj(
        *,
        settings: configuration.ApplySettings,
        resource: references.Resource,
        namespace: references.Namespace,
        name: str,
        force: bool = False,
        logger: typedefs.Logger,
) -> None:
    """
    Delete a resource.

    The forced deletion is immediate (no grace period) and in the foreground,
    so that the dependents are deleted before the object itself. It is used
    for the replacements: the object is recreated once it is fully gone.

    An absent object is considered deleted: no errors are raised.
    """
    options: Dict[str, Any] = {'apiVersion': 'v1', 'kind': 'DeleteOptions'}
    if force:
        options.update(gracePeriodSeconds=0, propagationPolicy='Foreground')
    else:
        options.update(propagationPolicy='Background')

    try:
        await api.delete(
            url=resource.get_url(namespace=namespace if resource.namespaced else None, name=name),
            payload=options,
            settings=settings,
            logger=logger,
        )
    except errors.APINotFoundError:
        pass
