"""
The desired sets: the reconciliation of the desired objects with the actual ones.

A desired set is identified by its id and/or its owner. All the objects
applied by it are labelled with the digest of its identity, so that
the existing objects of the set can be found in the next runs (and deleted
if they are not desired anymore).

Every kind is processed separately (see :meth:`DesiredSet.process`):

* the kind is resolved to its scope, store, and cache;
* the desired objects are normalized: owned, and (un)namespaced;
* the existing objects are listed;
* the keys are compared to decide what to create, update, delete;
* the objects are created, updated, deleted (or recorded in the plan).

The failures of one object or kind do not stop the processing of others:
all of them are reported to the error sink, and raised together at the end.
"""
import hashlib
import logging
from typing import Any, Collection, Iterable, List, Mapping, Optional

from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import bodies, errors, objectsets, plans, references, selectors
from desiredset._core.actions import differ, execution, listing, normalizing
from desiredset._core.engines import stores
from desiredset._core.intents import capabilities

logger = logging.getLogger(__name__)


def get_set_hash(set_id: Optional[str], owner: Optional[Mapping[str, Any]]) -> str:
    """
    The digest of the set's identity: its id and its owner's identity (if any).
    """
    parts = [set_id or '']
    if owner is not None:
        gvk = references.GroupVersionKind.from_body(owner)
        parts.extend([str(gvk), bodies.get_namespace(owner), bodies.get_name(owner) or ''])
    return hashlib.sha1('/'.join(parts).encode('utf-8')).hexdigest()


class DesiredSet:
    """
    A set of the desired objects of many kinds, applied together.

    The set is re-applied as a whole: the objects of the set's kinds
    (and of ``prune_types``) that were applied previously but are not desired
    anymore are deleted, unless labelled to be kept. The deletion is possible
    only if the set has an owner, or if the kind is cached; otherwise,
    the objects not desired anymore cannot be reliably found.
    """

    def __init__(
            self,
            *,
            resolver: capabilities.ClientResolver,
            settings: Optional[configuration.ApplySettings] = None,
            set_id: Optional[str] = None,
            owner: Optional[bodies.RawBody] = None,
            patchers: Optional[Mapping[references.GroupVersionKind, capabilities.Patcher]] = None,
            reconcilers: Optional[Mapping[references.GroupVersionKind, capabilities.Reconciler]] = None,
            prune_types: Collection[references.GroupVersionKind] = (),
            logger: typedefs.Logger = logger,
    ) -> None:
        super().__init__()
        self.resolver = resolver
        self.settings = settings if settings is not None else configuration.ApplySettings()
        self.set_id = set_id
        self.owner = owner
        self.patchers = dict(patchers or {})
        self.reconcilers = dict(reconcilers or {})
        self.prune_types = list(prune_types)
        self.logger = logger

        self.objset = objectsets.ObjectSet()
        self.errors = errors.ErrorSink()
        self.plan: Optional[plans.Plan] = None

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self.debug_id}>'

    @property
    def debug_id(self) -> str:
        if self.owner is not None:
            gvk = references.GroupVersionKind.from_body(self.owner)
            key = objectsets.ObjectKey.from_body(self.owner)
            owner_id = f'{gvk.kind} {key}'
            return f'{self.set_id} of {owner_id}' if self.set_id else owner_id
        return self.set_id or ''

    @property
    def selector(self) -> selectors.LabelSelector:
        return selectors.LabelSelector({self.settings.labelling.hash_label: get_set_hash(self.set_id, self.owner)})

    async def apply(self, objs: Iterable[bodies.RawBody]) -> None:
        """
        Apply the desired objects. Raise all the errors together at the end.
        """
        await self._run(objs, plan=None)
        self.errors.raise_if_any()

    async def dry_run(self, objs: Iterable[bodies.RawBody]) -> plans.Plan:
        """
        Plan what would be done to apply the desired objects, but change nothing.
        """
        plan = plans.Plan()
        await self._run(objs, plan=plan)
        self.errors.raise_if_any()
        return plan

    async def _run(self, objs: Iterable[bodies.RawBody], *, plan: Optional[plans.Plan]) -> None:
        if self.set_id is None and self.owner is None:
            raise ValueError("Either a set id or an owner is required to apply the objects.")

        self.errors = errors.ErrorSink()
        self.plan = plan
        self.objset = objectsets.ObjectSet(self._stamp(body) for body in objs)

        gvks: List[references.GroupVersionKind] = self.objset.gvks()
        gvks.extend(gvk for gvk in self.prune_types if gvk not in gvks)
        selector = self.selector
        for gvk in gvks:
            await self.process(self.debug_id, selector, gvk, self.objset.objects(gvk))

    def _stamp(self, body: bodies.RawBody) -> bodies.RawBody:
        """ A copy of the object with the identity of the set in its labels & annotations. """
        labelling = self.settings.labelling
        metadata = dict(body.get('metadata') or {})
        labels = dict(metadata.get('labels') or {})
        annotations = dict(metadata.get('annotations') or {})
        labels[labelling.hash_label] = get_set_hash(self.set_id, self.owner)
        if self.set_id:
            annotations[labelling.id_annotation] = self.set_id
        if self.owner is not None:
            annotations[labelling.owner_gvk_annotation] = str(references.GroupVersionKind.from_body(self.owner))
            annotations[labelling.owner_name_annotation] = bodies.get_name(self.owner) or ''
            annotations[labelling.owner_namespace_annotation] = bodies.get_namespace(self.owner)
        metadata.update(labels=labels, annotations=annotations)
        return dict(body, metadata=metadata)

    async def process(
            self,
            debug_id: str,
            selector: selectors.LabelSelector,
            gvk: references.GroupVersionKind,
            objs: objectsets.ObjectByKey,
    ) -> None:
        """
        Reconcile the desired objects of one kind with the existing ones.

        Nothing is raised: all the failures are reported to the error sink.
        The caller's objects are never modified.
        """
        try:
            cache, store = await self.resolver.resolve(gvk, strict=self.settings.caching.strict)
            namespaced = await self.resolver.is_namespaced(gvk)
        except Exception as e:
            self.errors.add(e)
            return

        if not namespaced and self.settings.scoping.restrict_cluster_scoped:
            self.errors.add(errors.ScopeError(f"Invalid cluster-scoped kind {gvk} for {debug_id}."))
            return

        if self.owner is not None and self.settings.ownership.set_owner_reference:
            try:
                owner_gvk = references.GroupVersionKind.from_body(self.owner)
                owner_namespaced = await self.resolver.is_namespaced(owner_gvk)
            except Exception as e:
                self.errors.add(e)
                return
            objs = normalizing.assign_owner_references(
                objs,
                owner=self.owner,
                owner_namespaced=owner_namespaced,
                namespaced=namespaced,
                settings=self.settings,
            )

        if namespaced:
            objs = normalizing.adjust_namespace(objs, namespace=self.settings.scoping.namespace)
        else:
            objs = normalizing.clear_namespace(objs)

        patcher: capabilities.Patcher
        if gvk in self.patchers:
            patcher = self.patchers[gvk]
        elif gvk in self.settings.replacing.kinds:
            patcher = self.settings.replacing.patcher
        else:
            patcher = stores.StorePatcher(store)
        reconciler = self.reconcilers.get(gvk)

        existing, error = await listing.list_existing(
            namespaced=namespaced,
            cache=cache,
            store=store,
            selector=selector,
            desired=objs,
            has_owner=self.owner is not None,
            settings=self.settings,
            logger=self.logger,
        )
        if error is not None:
            wrapped = errors.ListingError(f"Failed to list {gvk} for {debug_id}: {error}")
            wrapped.__cause__ = error
            self.errors.add(wrapped)

        to_create, to_delete, to_update = differ.compare_sets(
            existing, objs, prune_label=self.settings.labelling.prune_label)

        # Check for the objects desired under another version of the same group & kind.
        to_delete = differ.filter_cross_version(
            gvk, to_delete,
            objset=self.objset,
            default_namespace=self.settings.scoping.namespace,
        )

        # Without an owner or a cache, the not-yet-seen & not-desired objects are indistinguishable.
        if self.owner is None and cache is None:
            to_delete = []

        planned_work = False
        if self.plan is not None:
            planned_work = bool(to_create or to_delete)
            self.plan.create[gvk] = list(to_create)
            self.plan.delete[gvk] = list(to_delete)
            patcher = stores.PlanningPatcher(plan=self.plan, gvk=gvk, settings=self.settings)
            reconciler = None
            to_create = []
            to_delete = []

        batch = execution.Batch(
            gvk=gvk,
            debug_id=debug_id,
            store=store,
            patcher=patcher,
            reconciler=reconciler,
            desired=objs,
            existing=existing,
            to_create=to_create,
            to_update=to_update,
            to_delete=to_delete,
            planned_work=planned_work,
        )
        await execution.execute(batch, settings=self.settings, sink=self.errors, logger=self.logger)
