"""
Execution of the creations, updates, and deletions of one kind's batch.

The phases go in a fixed order: all creations, then all updates, then all
deletions. The creations go first so that the objects re-created under
other keys are not missing meanwhile; the deletions go last so that they do
not delay the creations & updates (of this or other kinds) in the same run.

Every failure is reported to the error sink, and the key is abandoned
(not retried) within this batch. The other keys are still attempted.
"""
import dataclasses
import logging
from typing import List, Optional

from desiredset._cogs.clients import errors as apierrors
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import bodies, errors, objectsets, references
from desiredset._core.actions import comparing, loggers
from desiredset._core.intents import capabilities

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Batch:
    """
    All the keys & objects of one kind to be processed, and the means to do so.

    The keys are changed during the execution: e.g. the objects taken over
    on creation are moved to the updates (and added to the existing objects).
    """
    gvk: references.GroupVersionKind
    debug_id: str
    store: capabilities.ObjectStore
    patcher: capabilities.Patcher
    reconciler: Optional[capabilities.Reconciler]
    desired: objectsets.ObjectByKey
    existing: objectsets.ObjectByKey
    to_create: List[objectsets.ObjectKey]
    to_update: List[objectsets.ObjectKey]
    to_delete: List[objectsets.ObjectKey]
    planned_work: bool = False  # creations & deletions recorded to a plan instead of executed

    @property
    def other_work_pending(self) -> bool:
        return bool(self.to_create or self.to_delete or self.planned_work)

    def object_logger(self, body: bodies.RawBody) -> loggers.ObjectLogger:
        return loggers.ObjectLogger(body=body, debug_id=self.debug_id)


async def execute(
        batch: Batch,
        *,
        settings: configuration.ApplySettings,
        sink: errors.ErrorSink,
        logger: typedefs.Logger = logger,
) -> None:
    for key in batch.to_create:
        await create_object(batch, key, settings=settings, sink=sink)
    for key in batch.to_update:
        await update_object(batch, key, settings=settings, sink=sink, logger=logger)
    for key in batch.to_delete:
        await delete_object(batch, key, force=False, sink=sink)


async def create_object(
        batch: Batch,
        key: objectsets.ObjectKey,
        *,
        settings: configuration.ApplySettings,
        sink: errors.ErrorSink,
) -> None:
    """
    Create an object. If it already exists, take it over: update it instead.
    """
    try:
        body = comparing.prepare_object_for_create(batch.desired[key], settings=settings)
    except Exception as e:
        sink.add(_wrap(e, f"Failed to prepare for creation {batch.gvk} {key} for {batch.debug_id}"))
        return

    try:
        await batch.store.create(key.namespace or None, body)
    except apierrors.APIAlreadyExistsError:
        # Taking over an object that was not previously managed by us.
        try:
            existing = await batch.store.get(key.namespace or None, key.name)
        except Exception as e2:
            sink.add(_wrap(e2, f"Failed to take over {batch.gvk} {key} for {batch.debug_id}"))
            return
        batch.existing[key] = existing
        batch.to_update.append(key)
        batch.object_logger(existing).info(f"Taking over {batch.gvk} for {batch.debug_id}.")
    except Exception as e:
        sink.add(_wrap(e, f"Failed to create {batch.gvk} {key} for {batch.debug_id}"))
    else:
        batch.object_logger(body).debug(f"Created {batch.gvk} for {batch.debug_id}.")


async def update_object(
        batch: Batch,
        key: objectsets.ObjectKey,
        *,
        settings: configuration.ApplySettings,
        sink: errors.ErrorSink,
        logger: typedefs.Logger = logger,
) -> None:
    """
    Update an object: patch it, or delete it to be replaced later.
    """
    outcome = await comparing.compare_objects(
        gvk=batch.gvk,
        existing=batch.existing[key],
        desired=batch.desired[key],
        patcher=batch.patcher,
        reconciler=batch.reconciler,
        settings=settings,
        other_work_pending=batch.other_work_pending,
        debug_id=batch.debug_id,
        logger=logger,
    )
    if isinstance(outcome, capabilities.ReplaceRequired):
        await delete_object(batch, key, force=True, sink=sink)
        sink.add(errors.ReplaceWaitError(
            f"Replace wait {batch.gvk} {key} for {batch.debug_id}: {outcome.reason}"))
    elif isinstance(outcome, capabilities.Failed):
        sink.add(_wrap(outcome.error, f"Failed to update {batch.gvk} {key} for {batch.debug_id}"))
    elif isinstance(outcome, capabilities.Patched):
        batch.object_logger(batch.existing[key]).debug(f"Patched {batch.gvk} for {batch.debug_id}.")


async def delete_object(
        batch: Batch,
        key: objectsets.ObjectKey,
        *,
        force: bool,
        sink: errors.ErrorSink,
) -> None:
    try:
        await batch.store.delete(key.namespace or None, key.name, force=force)
    except Exception as e:
        sink.add(_wrap(e, f"Failed to delete {batch.gvk} {key} for {batch.debug_id}"))
    else:
        body = batch.existing.get(key) or {'metadata': {'namespace': key.namespace, 'name': key.name}}
        batch.object_logger(body).debug(f"Deleted {batch.gvk} for {batch.debug_id}.")


def _wrap(error: BaseException, message: str) -> errors.ReconciliationError:
    wrapped = errors.ReconciliationError(f"{message}: {error}")
    wrapped.__cause__ = error
    return wrapped
