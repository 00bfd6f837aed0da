"""
Loading of the object manifests from YAML streams.

Multiple documents per stream are supported (separated by ``---``).
The empty documents are skipped. The lists of objects (``kind: List``,
or any ``...List`` kind with ``items``) are flattened into the objects.
"""
from typing import Any, Iterable, List, Mapping, TextIO

import yaml

from desiredset._cogs.structs import bodies


def load_manifests(streams: Iterable[TextIO]) -> List[bodies.RawBody]:
    objs: List[bodies.RawBody] = []
    for stream in streams:
        for document in yaml.safe_load_all(stream):
            objs.extend(_flatten(document))
    return objs


def _flatten(document: Any) -> List[bodies.RawBody]:
    if document is None:
        return []
    if not isinstance(document, Mapping):
        raise ValueError(f"A manifest must be a mapping, got {type(document).__name__}.")
    kind = document.get('kind') or ''
    if kind.endswith('List') and isinstance(document.get('items'), list):
        return [obj for item in document['items'] for obj in _flatten(item)]
    return [dict(document)]
