"""
The implementations of the stores & patchers: live or recording.

The live ones go to the Kubernetes API via the client cogs. The recording one
puts the would-be patches into a plan instead, and never touches the API.
"""
import json
from typing import Collection, Optional

from desiredset._cogs.clients import creating, deleting, fetching, patching
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import bodies, patches, plans, references, selectors
from desiredset._core.intents import capabilities


class ApiStore:
    """
    The verbs of one resource kind in the Kubernetes API.
    """

    def __init__(
            self,
            *,
            resource: references.Resource,
            settings: configuration.ApplySettings,
            logger: typedefs.Logger,
    ) -> None:
        super().__init__()
        self.resource = resource
        self.settings = settings
        self.logger = logger

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self.resource!r}>'

    async def create(self, namespace: references.Namespace, body: bodies.RawBody) -> bodies.RawBody:
        return await creating.create_obj(
            settings=self.settings,
            resource=self.resource,
            namespace=namespace,
            body=body,
            logger=self.logger,
        )

    async def get(self, namespace: references.Namespace, name: str) -> bodies.RawBody:
        return await fetching.read_obj(
            settings=self.settings,
            resource=self.resource,
            namespace=namespace,
            name=name,
            logger=self.logger,
        )

    async def delete(self, namespace: references.Namespace, name: str, *, force: bool = False) -> None:
        await deleting.delete_obj(
            settings=self.settings,
            resource=self.resource,
            namespace=namespace,
            name=name,
            force=force,
            logger=self.logger,
        )

    async def list(
            self,
            namespace: references.Namespace,
            selector: selectors.LabelSelector,
    ) -> Collection[bodies.RawBody]:
        items, _ = await fetching.list_objs(
            settings=self.settings,
            resource=self.resource,
            namespace=namespace,
            selector=selector,
            logger=self.logger,
        )
        return items

    async def patch(
            self,
            namespace: references.Namespace,
            name: str,
            patch_type: patches.PatchType,
            data: bytes,
    ) -> bodies.RawBody:
        return await patching.patch_obj(
            settings=self.settings,
            resource=self.resource,
            namespace=namespace,
            name=name,
            patch_type=patch_type,
            data=data,
            logger=self.logger,
        )


class StorePatcher:
    """ The default patcher: patch the object in its store. """

    def __init__(self, store: capabilities.ObjectStore) -> None:
        super().__init__()
        self.store = store

    async def __call__(
            self,
            namespace: str,
            name: str,
            patch_type: patches.PatchType,
            data: bytes,
    ) -> capabilities.UpdateOutcome:
        body = await self.store.patch(namespace or None, name, patch_type, data)
        return capabilities.Patched(body)


class PlanningPatcher:
    """ The plan-mode patcher: record the would-be patches, patch nothing. """

    def __init__(
            self,
            *,
            plan: plans.Plan,
            gvk: references.GroupVersionKind,
            settings: configuration.ApplySettings,
    ) -> None:
        super().__init__()
        self.plan = plan
        self.gvk = gvk
        self.settings = settings

    async def __call__(
            self,
            namespace: str,
            name: str,
            patch_type: patches.PatchType,
            data: bytes,
    ) -> capabilities.UpdateOutcome:
        data = patches.sanitize_patch(
            data,
            for_plan=True,
            applied_annotation=self.settings.labelling.applied_annotation,
        )
        if not json.loads(data):
            return capabilities.Unchanged()
        self.plan.add_update(self.gvk, namespace, name, data.decode('utf-8'))
        return capabilities.Patched()


class ReplaceOnChange:
    """ A patcher that demands a replacement on every change. """

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__()
        self.reason = reason or "replace object with changes"

    async def __call__(
            self,
            namespace: str,
            name: str,
            patch_type: patches.PatchType,
            data: bytes,
    ) -> capabilities.UpdateOutcome:
        return capabilities.ReplaceRequired(self.reason)
