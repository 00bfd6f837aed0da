"""
All the structures needed for Kubernetes patching.

The patches are produced as a JSON merge-patch (RFC 7386) by default,
i.e. a simple dictionary with field overrides, and ``None`` for field deletions.
Other patch types are supported for the custom patchers & reconcilers.
"""
import enum
import json
from typing import Any, Dict, MutableMapping


class PatchType(str, enum.Enum):
    JSON = 'application/json-patch+json'
    MERGE = 'application/merge-patch+json'
    STRATEGIC = 'application/strategic-merge-patch+json'

    @property
    def content_type(self) -> str:
        return self.value


EMPTY_PATCH = b'{}'


def dump_patch(patch: Dict[str, Any]) -> bytes:
    return json.dumps(patch, separators=(',', ':'), sort_keys=True).encode('utf-8')


def sanitize_patch(
        data: bytes,
        *,
        for_plan: bool = False,
        applied_annotation: str,
) -> bytes:
    """
    Remove the fields that must never be patched, or are noise in the plans.

    The type & version are fixed for the resource, the status is managed
    by the controllers, the creation timestamp by the server. In the plans,
    the last-applied annotation is noise, as it duplicates the whole patch.

    The original bytes are returned as is if nothing is removed.
    """
    patch = json.loads(data or b'{}')
    if not isinstance(patch, MutableMapping):
        return data  # e.g. a JSON-patch as a list of operations: nothing to sanitize.

    modified = False
    for field in ['kind', 'apiVersion', 'status']:
        if field in patch:
            del patch[field]
            modified = True

    meta = patch.get('metadata')
    if isinstance(meta, MutableMapping):
        if 'creationTimestamp' in meta:
            del meta['creationTimestamp']
            modified = True

        annotations = meta.get('annotations')
        if for_plan and isinstance(annotations, MutableMapping) and applied_annotation in annotations:
            del annotations[applied_annotation]
            modified = True
            if not annotations:
                del meta['annotations']

        if not meta:
            del patch['metadata']
            modified = True

    return dump_patch(patch) if modified else data
