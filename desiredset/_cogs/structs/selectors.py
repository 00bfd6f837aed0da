"""
Label selectors, both for the API-side listing and for the local caches.

Only the equality-based requirements are supported: it is sufficient
to select the objects of one desired set by their hash label.
"""
from typing import Any, Iterator, Mapping, Union

from desiredset._cogs.structs import bodies


class LabelSelector(Mapping[str, str]):
    """
    An immutable mapping of label requirements, all of which must match.

    An empty selector matches everything (as in K8s API).
    Its string form is usable in the ``labelSelector`` query parameter.
    """

    def __init__(self, __src: Union[None, Mapping[str, str]] = None, **kwargs: str) -> None:
        super().__init__()
        self._items = dict(__src or {}, **kwargs)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self._items!r})'

    def __str__(self) -> str:
        return ','.join(f'{key}={val}' for key, val in sorted(self._items.items()))

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __getitem__(self, key: str) -> str:
        return self._items[key]

    def __hash__(self) -> int:
        return hash(str(self))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, LabelSelector):
            return self._items == other._items
        return super().__eq__(other)

    def matches(self, labels: bodies.Labels) -> bool:
        return all(labels.get(key) == val for key, val in self._items.items())

    def matches_body(self, body: Mapping[str, Any]) -> bool:
        return self.matches(bodies.get_labels(body))


EVERYTHING = LabelSelector()
