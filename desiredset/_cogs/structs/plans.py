"""
The plan of a dry-run: what would be created, patched, and deleted.

The plan is the only artifact produced by the plan mode. It is built
without any mutating calls to the API, and is serializable as plain data.
"""
import dataclasses
from typing import Any, Dict, List

from desiredset._cogs.structs import objectsets, references


@dataclasses.dataclass(frozen=True)
class PlannedUpdate:
    gvk: references.GroupVersionKind
    namespace: str
    name: str
    patch: str


@dataclasses.dataclass
class Plan:
    create: Dict[references.GroupVersionKind, List[objectsets.ObjectKey]] = dataclasses.field(default_factory=dict)
    delete: Dict[references.GroupVersionKind, List[objectsets.ObjectKey]] = dataclasses.field(default_factory=dict)
    update: List[PlannedUpdate] = dataclasses.field(default_factory=list)

    def __bool__(self) -> bool:
        return any(self.create.values()) or any(self.delete.values()) or bool(self.update)

    def add_update(
            self,
            gvk: references.GroupVersionKind,
            namespace: str,
            name: str,
            patch: str,
    ) -> None:
        self.update.append(PlannedUpdate(gvk=gvk, namespace=namespace, name=name, patch=patch))

    def as_dict(self) -> Dict[str, Any]:
        """ The plain-data form of the plan, e.g. for YAML/JSON dumping. """
        return {
            'create': {
                str(gvk): [str(key) for key in keys]
                for gvk, keys in self.create.items() if keys
            },
            'delete': {
                str(gvk): [str(key) for key in keys]
                for gvk, keys in self.delete.items() if keys
            },
            'update': [
                {
                    'gvk': str(item.gvk),
                    'namespace': item.namespace,
                    'name': item.name,
                    'patch': item.patch,
                }
                for item in self.update
            ],
        }
