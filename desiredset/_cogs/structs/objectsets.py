"""
Keys and keyed collections of objects: for one kind and for many kinds.

An :class:`ObjectKey` identifies an object within one kind. The per-kind
mapping (:data:`ObjectByKey`) represents either the desired or the existing
state of that kind. The multi-kind :class:`ObjectSet` is the whole desired
state of one apply run, keeping the kinds in the order they were added.
"""
import copy
from typing import Any, Collection, Dict, Iterable, Iterator, List, Mapping, NamedTuple

from desiredset._cogs.structs import bodies, references


class ObjectKey(NamedTuple):
    namespace: str
    name: str

    def __str__(self) -> str:
        return f'{self.namespace}/{self.name}' if self.namespace else self.name

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "ObjectKey":
        name = bodies.get_name(body)
        if not name:
            raise ValueError(f"The object has no name: {body.get('metadata')!r}")
        return cls(namespace=bodies.get_namespace(body), name=name)


ObjectByKey = Dict[ObjectKey, bodies.RawBody]


def sort_keys(keys: Iterable[ObjectKey]) -> List[ObjectKey]:
    """ Order the keys by their string form ("namespace/name") for reproducible runs. """
    return sorted(keys, key=str)


def get_namespaces(objs: Mapping[ObjectKey, Any]) -> List[str]:
    """ All distinct namespaces of the keys, including the empty one if present. """
    return sorted({key.namespace for key in objs})


class ObjectSet(Collection[bodies.RawBody]):
    """
    The desired objects of all kinds, grouped by kind and keyed within a kind.

    The kinds are iterated in the order of their first appearance, so that
    e.g. namespaces or custom resource definitions listed first are also
    created first. The objects are deep-copied when added: the set owns them.
    """

    def __init__(self, __src: Iterable[bodies.RawBody] = ()) -> None:
        super().__init__()
        self._objs: Dict[references.GroupVersionKind, ObjectByKey] = {}
        self.add(*__src)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({list(self)!r})'

    def __len__(self) -> int:
        return sum(len(objs) for objs in self._objs.values())

    def __iter__(self) -> Iterator[bodies.RawBody]:
        for objs in self._objs.values():
            yield from objs.values()

    def __contains__(self, body: object) -> bool:
        if not isinstance(body, Mapping):
            return False
        try:
            gvk = references.GroupVersionKind.from_body(body)
            key = ObjectKey.from_body(body)
        except ValueError:
            return False
        return key in self._objs.get(gvk, {})

    def add(self, *objs: bodies.RawBody) -> None:
        for body in objs:
            gvk = references.GroupVersionKind.from_body(body)
            key = ObjectKey.from_body(body)
            self._objs.setdefault(gvk, {})[key] = copy.deepcopy(body)

    def gvks(self) -> List[references.GroupVersionKind]:
        return list(self._objs)

    def objects(self, gvk: references.GroupVersionKind) -> ObjectByKey:
        """ A fresh per-kind mapping; the bodies are shared, so they must not be mutated. """
        return dict(self._objs.get(gvk, {}))

    def contains(self, group_kind: references.GroupKind, key: ObjectKey) -> bool:
        """ Check if the key is desired under any version of the same group & kind. """
        for gvk, objs in self._objs.items():
            if gvk.group_kind == group_kind and key in objs:
                return True
        return False

    def namespaces(self) -> List[str]:
        return sorted({key.namespace for objs in self._objs.values() for key in objs})
