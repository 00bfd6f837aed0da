"""
Comparison of the existing & desired objects, and their patching if they differ.

The patch is a JSON merge-patch, built as a three-way merge of:

* the last-applied configuration (as stored in the object's annotation),
* the desired object (i.e. the new configuration to be applied),
* the existing object (i.e. the actual state in the cluster).

The fields that are changed in the desired object are patched. The fields
that were applied previously but are now absent in the desired object
are removed. The fields that were never applied by us (e.g. added by
other controllers or by the server) are left intact.

The last-applied configuration is updated with every patch, and is stamped
on the objects when they are created.
"""
import copy
import json
import logging
from typing import Any, Dict, Mapping, Optional

from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import bodies, patches, references
from desiredset._core.intents import capabilities

logger = logging.getLogger(__name__)

# The fields that never take part in the comparison: fixed or server-managed.
IGNORED_FIELDS = frozenset({'apiVersion', 'kind', 'status'})


def prepare_object_for_create(
        body: bodies.RawBody,
        *,
        settings: configuration.ApplySettings,
) -> bodies.RawBody:
    """
    Make a copy of the object ready for creation, with the last-applied configuration.
    """
    annotation = settings.labelling.applied_annotation
    result = _strip_metadata(copy.deepcopy(body), applied_annotation=annotation)
    result.pop('status', None)
    metadata = result.setdefault('metadata', {})
    annotations = metadata.setdefault('annotations', {})
    annotations[annotation] = _dump_applied(get_applied_config(body, applied_annotation=annotation))
    return result


def get_applied_config(
        body: Mapping[str, Any],
        *,
        applied_annotation: Optional[str],
) -> bodies.RawBody:
    """
    The configuration as it is applied: with no fixed & server-managed fields.

    The last-applied annotation itself is excluded, if its key is given.
    """
    result = {key: copy.deepcopy(val) for key, val in body.items() if key not in IGNORED_FIELDS}
    return _strip_metadata(result, applied_annotation=applied_annotation)


def get_last_applied(
        body: Mapping[str, Any],
        *,
        applied_annotation: str,
        logger: typedefs.Logger = logger,
) -> Optional[bodies.RawBody]:
    """
    The last-applied configuration as stored on the object, if it is there.
    """
    value = bodies.get_annotations(body).get(applied_annotation)
    if not value:
        return None
    try:
        result = json.loads(value)
    except ValueError:
        logger.warning("The last-applied configuration is not a valid JSON; ignoring it.")
        return None
    return result if isinstance(result, dict) else None


def build_merge_patch(
        original: Mapping[str, Any],
        modified: Mapping[str, Any],
        current: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Build a three-way JSON merge-patch to turn the current state to the modified one.

    The fields of the modified state that differ from the current state are set.
    The fields of the original state that are absent in the modified one
    are removed (if they are still present in the current state).
    The lists are replaced as a whole, as in any JSON merge-patch.
    """
    patch: Dict[str, Any] = {}
    for key, value in modified.items():
        existing = current.get(key)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            prior = original.get(key)
            subpatch = build_merge_patch(prior if isinstance(prior, Mapping) else {}, value, existing)
            if subpatch:
                patch[key] = subpatch
        elif key not in current or existing != value:
            patch[key] = copy.deepcopy(value)
    for key in original:
        if key not in modified and key in current:
            patch[key] = None
    return patch


async def compare_objects(
        *,
        gvk: references.GroupVersionKind,
        existing: bodies.RawBody,
        desired: bodies.RawBody,
        patcher: capabilities.Patcher,
        reconciler: Optional[capabilities.Reconciler] = None,
        settings: configuration.ApplySettings,
        other_work_pending: bool,
        debug_id: str = '',
        logger: typedefs.Logger = logger,
) -> capabilities.UpdateOutcome:
    """
    Compare the existing object with the desired one, and patch it if needed.

    If no other work is pending in the batch (no creations, no deletions),
    and the desired configuration is the same as the last applied one,
    the object is considered unchanged without a full comparison.

    The reconciler (if any) can override the patching, e.g. to demand
    a replacement. The failures are returned as outcomes, not raised.
    """
    annotation = settings.labelling.applied_annotation
    try:
        original = get_last_applied(existing, applied_annotation=annotation, logger=logger)
        applied = get_applied_config(desired, applied_annotation=annotation)
        if not other_work_pending and original is not None and original == applied:
            return capabilities.Unchanged()

        modified = copy.deepcopy(applied)
        modified.setdefault('metadata', {}).setdefault('annotations', {})[annotation] = _dump_applied(applied)
        current = get_applied_config(existing, applied_annotation=None)
        patch = build_merge_patch(original or {}, modified, current)
        if not patch:
            return capabilities.Unchanged()

        logger.debug(f"Comparing {gvk} for {debug_id}: patch is {patch!r}")
        if reconciler is not None:
            outcome = await reconciler(existing, desired)
            if outcome is not None:
                return outcome

        return await patcher(
            bodies.get_namespace(existing),
            bodies.get_name(existing) or '',
            patches.PatchType.MERGE,
            patches.dump_patch(patch),
        )
    except Exception as e:
        return capabilities.Failed(e)


def _strip_metadata(
        body: Dict[str, Any],
        *,
        applied_annotation: Optional[str],
) -> Dict[str, Any]:
    metadata = body.get('metadata')
    if isinstance(metadata, dict):
        for field in bodies.SERVER_METADATA_FIELDS:
            metadata.pop(field, None)
        annotations = metadata.get('annotations')
        if applied_annotation and isinstance(annotations, dict):
            annotations.pop(applied_annotation, None)
            if not annotations:
                del metadata['annotations']
    return body


def _dump_applied(applied: Mapping[str, Any]) -> str:
    return json.dumps(applied, separators=(',', ':'), sort_keys=True)
