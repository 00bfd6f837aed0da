from desiredset._cogs.clients import api
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import bodies, patches, references


async def patch_obj(
        *,
        settings: configuration.ApplySettings,
        resource: references.Resource,
        namespace: references.Namespace,
        name: str,
        patch_type: patches.PatchType = patches.PatchType.MERGE,
        data: bytes,
        logger: typedefs.Logger,
) -> bodies.RawBody:
    """
    Patch a resource of specific kind.

    Unlike the object listing, the namespaced call is always
    used for the namespaced resources.

    The patch is sent as is, already serialized: it is produced by
    the comparison step or by a custom patcher, and only they know its format.

    Returns the patched body as reported by the server. Raises
    :class:`errors.APINotFoundError` if the object is absent.
    """
    patched_body: bodies.RawBody = await api.patch(
        url=resource.get_url(namespace=namespace if resource.namespaced else None, name=name),
        headers={'Content-Type': patch_type.content_type},
        data=data,
        settings=settings,
        logger=logger,
    )
    return patched_body
