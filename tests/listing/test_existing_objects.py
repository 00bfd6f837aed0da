import asyncio
import logging

import pytest
from conftest import CONFIGMAPS, FakeStore, make_body

from desiredset._cogs.structs.errors import AggregatedError, ListingError
from desiredset._cogs.structs.objectsets import ObjectKey
from desiredset._cogs.structs.selectors import LabelSelector
from desiredset._core.actions.listing import list_existing
from desiredset._core.engines.caching import MemoryCache

SELECTOR = LabelSelector({'desiredset.dev/hash': 'abc'})
LABELS = {'labels': {'desiredset.dev/hash': 'abc'}}


def keyed(*bodies):
    return {ObjectKey.from_body(body): body for body in bodies}


@pytest.fixture()
def store():
    return FakeStore(CONFIGMAPS, [
        make_body(CONFIGMAPS, 'a', 'ns1', metadata=LABELS),
        make_body(CONFIGMAPS, 'b', 'ns2', metadata=LABELS),
        make_body(CONFIGMAPS, 'c', 'ns3', metadata=LABELS),
        make_body(CONFIGMAPS, 'd', 'ns1'),  # not of this set
    ])


async def test_desired_namespaces_are_listed_one_by_one(store, settings):
    desired = keyed(make_body(CONFIGMAPS, 'x', 'ns1'), make_body(CONFIGMAPS, 'y', 'ns2'))
    objs, error = await list_existing(
        namespaced=True, cache=None, store=store, selector=SELECTOR,
        desired=desired, has_owner=False, settings=settings)
    assert error is None
    assert sorted(objs) == [ObjectKey('ns1', 'a'), ObjectKey('ns2', 'b')]
    assert sorted(store.calls) == [('list', 'ns1', str(SELECTOR)), ('list', 'ns2', str(SELECTOR))]


async def test_all_namespaces_are_listed_with_an_owner(store, settings):
    desired = keyed(make_body(CONFIGMAPS, 'x', 'ns1'))
    objs, error = await list_existing(
        namespaced=True, cache=None, store=store, selector=SELECTOR,
        desired=desired, has_owner=True, settings=settings)
    assert error is None
    assert sorted(objs) == [ObjectKey('ns1', 'a'), ObjectKey('ns2', 'b'), ObjectKey('ns3', 'c')]
    assert store.calls == [('list', None, str(SELECTOR))]


@pytest.mark.parametrize('has_owner', [True, False])
async def test_lister_namespace_overrides_everything(store, settings, has_owner):
    settings.scoping.lister_namespace = 'ns3'
    desired = keyed(make_body(CONFIGMAPS, 'x', 'ns1'))
    objs, error = await list_existing(
        namespaced=True, cache=None, store=store, selector=SELECTOR,
        desired=desired, has_owner=has_owner, settings=settings)
    assert error is None
    assert list(objs) == [ObjectKey('ns3', 'c')]
    assert store.calls == [('list', 'ns3', str(SELECTOR))]


async def test_cluster_objects_are_listed_cluster_wide(settings):
    store = FakeStore(CONFIGMAPS, [make_body(CONFIGMAPS, 'a', metadata=LABELS)], namespaced=False)
    desired = keyed(make_body(CONFIGMAPS, 'x'))
    objs, error = await list_existing(
        namespaced=False, cache=None, store=store, selector=SELECTOR,
        desired=desired, has_owner=False, settings=settings)
    assert error is None
    assert list(objs) == [ObjectKey('', 'a')]
    assert store.calls == [('list', None, str(SELECTOR))]


async def test_nothing_is_listed_when_nothing_is_desired(store, settings):
    objs, error = await list_existing(
        namespaced=True, cache=None, store=store, selector=SELECTOR,
        desired={}, has_owner=False, settings=settings)
    assert error is None
    assert objs == {}
    assert store.calls == []


async def test_cache_is_preferred_over_the_store(store, settings):
    cache = MemoryCache([
        make_body(CONFIGMAPS, 'cached1', 'ns1', metadata=LABELS),
        make_body(CONFIGMAPS, 'cached2', 'ns2', metadata=LABELS),
        make_body(CONFIGMAPS, 'cached3', 'ns2'),
    ])
    desired = keyed(make_body(CONFIGMAPS, 'x', 'ns1'))
    objs, error = await list_existing(
        namespaced=True, cache=cache, store=store, selector=SELECTOR,
        desired=desired, has_owner=False, settings=settings)
    assert error is None
    assert sorted(objs) == [ObjectKey('ns1', 'cached1'), ObjectKey('ns2', 'cached2')]
    assert store.calls == []


async def test_cache_is_restricted_to_the_lister_namespace(store, settings):
    settings.scoping.lister_namespace = 'ns2'
    cache = MemoryCache([
        make_body(CONFIGMAPS, 'cached1', 'ns1', metadata=LABELS),
        make_body(CONFIGMAPS, 'cached2', 'ns2', metadata=LABELS),
    ])
    objs, error = await list_existing(
        namespaced=True, cache=cache, store=store, selector=SELECTOR,
        desired={}, has_owner=False, settings=settings)
    assert error is None
    assert list(objs) == [ObjectKey('ns2', 'cached2')]


async def test_cache_failures_are_reported(store, settings, mocker):
    cache = mocker.Mock()
    cache.list.side_effect = RuntimeError('boom')
    objs, error = await list_existing(
        namespaced=True, cache=cache, store=store, selector=SELECTOR,
        desired={}, has_owner=False, settings=settings)
    assert objs == {}
    assert isinstance(error, AggregatedError)
    assert len(error) == 1
    assert isinstance(error.errors[0], ListingError)
    assert isinstance(error.errors[0].__cause__, RuntimeError)


async def test_partial_failures_keep_the_listed_objects(store, settings):
    store.errors[('list', 'ns2', None)] = RuntimeError('boom')
    desired = keyed(make_body(CONFIGMAPS, 'x', 'ns1'), make_body(CONFIGMAPS, 'y', 'ns2'))
    objs, error = await list_existing(
        namespaced=True, cache=None, store=store, selector=SELECTOR,
        desired=desired, has_owner=False, settings=settings)
    assert list(objs) == [ObjectKey('ns1', 'a')]
    assert isinstance(error, AggregatedError)
    assert len(error) == 1
    assert isinstance(error.errors[0], ListingError)
    assert 'ns2' in str(error.errors[0])
    assert isinstance(error.errors[0].__cause__, RuntimeError)


async def test_pending_namespaces_are_cancelled_on_failures(settings, caplog):
    caplog.set_level(logging.DEBUG)
    blocker = asyncio.Event()

    class SlowStore(FakeStore):
        async def list(self, namespace, selector):
            if namespace == 'ns1':
                await blocker.wait()
            raise RuntimeError('boom')

    store = SlowStore(CONFIGMAPS)
    desired = keyed(make_body(CONFIGMAPS, 'x', 'ns1'), make_body(CONFIGMAPS, 'y', 'ns2'))
    objs, error = await list_existing(
        namespaced=True, cache=None, store=store, selector=SELECTOR,
        desired=desired, has_owner=False, settings=settings)
    assert objs == {}
    assert len(error) == 1
    assert 'ns2' in str(error.errors[0])
    assert "Listing of namespace 'ns1' is cancelled" in caplog.text


async def test_concurrency_is_limited(settings):
    settings.listing.concurrency = 1
    running = []
    peaks = []

    class CountingStore(FakeStore):
        async def list(self, namespace, selector):
            running.append(namespace)
            peaks.append(len(running))
            await asyncio.sleep(0)
            running.remove(namespace)
            return []

    store = CountingStore(CONFIGMAPS)
    desired = keyed(*[make_body(CONFIGMAPS, 'x', f'ns{i}') for i in range(5)])
    objs, error = await list_existing(
        namespaced=True, cache=None, store=store, selector=SELECTOR,
        desired=desired, has_owner=False, settings=settings)
    assert error is None
    assert len(peaks) == 5
    assert max(peaks) == 1


async def test_unkeyable_objects_are_reported(settings):
    store = FakeStore(CONFIGMAPS)

    async def list_(namespace, selector):
        return [make_body(CONFIGMAPS, 'a', 'ns1'), {'metadata': {'namespace': 'ns1'}}]

    store.list = list_
    desired = keyed(make_body(CONFIGMAPS, 'x', 'ns1'))
    objs, error = await list_existing(
        namespaced=True, cache=None, store=store, selector=SELECTOR,
        desired=desired, has_owner=False, settings=settings)
    assert list(objs) == [ObjectKey('ns1', 'a')]
    assert len(error) == 1
    assert isinstance(error.errors[0], ListingError)
