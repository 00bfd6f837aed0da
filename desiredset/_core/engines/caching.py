"""
In-memory caches of the existing objects, as an informer stand-in.

The cache is filled by the owner of the cache (e.g. by a watch-stream
consumer, or explicitly in the tests), and is only read by the reconciliation.
"""
import copy
from typing import Collection, Dict, Iterable, List

from desiredset._cogs.structs import bodies, objectsets, references, selectors


class MemoryCache:
    """
    A cache of one resource kind, keyed by the objects' namespaces & names.

    Optionally, the cache can be restricted to some namespaces only (as the
    informers usually are); the objects of other namespaces are ignored.
    """

    def __init__(
            self,
            __src: Iterable[bodies.RawBody] = (),
            *,
            namespaces: Collection[str] = (),
    ) -> None:
        super().__init__()
        self._namespaces = frozenset(namespaces)
        self._items: Dict[objectsets.ObjectKey, bodies.RawBody] = {}
        for body in __src:
            self.put(body)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {len(self._items)} objects>'

    def __len__(self) -> int:
        return len(self._items)

    def put(self, body: bodies.RawBody) -> None:
        key = objectsets.ObjectKey.from_body(body)
        if not self._namespaces or key.namespace in self._namespaces:
            self._items[key] = copy.deepcopy(body)

    def remove(self, key: objectsets.ObjectKey) -> None:
        self._items.pop(key, None)

    def list(
            self,
            namespace: references.Namespace,
            selector: selectors.LabelSelector,
    ) -> List[bodies.RawBody]:
        return [
            copy.deepcopy(body)
            for key, body in sorted(self._items.items(), key=lambda item: str(item[0]))
            if namespace is None or key.namespace == namespace
            if selector.matches_body(body)
        ]
