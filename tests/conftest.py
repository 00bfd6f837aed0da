import copy
import json
import logging
from typing import Dict, List, Optional, Tuple

import aiohttp.web
import pytest

from desiredset._cogs.clients.auth import APIContext, context_var
from desiredset._cogs.clients.errors import APIAlreadyExistsError, APINotFoundError
from desiredset._cogs.configs.configuration import ApplySettings
from desiredset._cogs.structs.bodies import get_labels, get_name
from desiredset._cogs.structs.credentials import ConnectionInfo
from desiredset._cogs.structs.errors import ErrorSink, NoCacheError, ResourceLookupError
from desiredset._cogs.structs.objectsets import ObjectKey
from desiredset._cogs.structs.references import GroupVersionKind, Resource
from desiredset._core.actions.loggers import ObjectPrefixingTextFormatter, configure

CONFIGMAPS = GroupVersionKind('', 'v1', 'ConfigMap')
NAMESPACES = GroupVersionKind('', 'v1', 'Namespace')
DEPLOYMENTS = GroupVersionKind('apps', 'v1', 'Deployment')
OLD_DEPLOYMENTS = GroupVersionKind('apps', 'v1beta1', 'Deployment')


def make_body(gvk, name, namespace=None, **fields):
    """ A minimal object of a kind, as in the manifests. """
    metadata = {'name': name}
    if namespace is not None:
        metadata['namespace'] = namespace
    metadata.update(fields.pop('metadata', {}))
    return dict({'apiVersion': gvk.api_version, 'kind': gvk.kind, 'metadata': metadata}, **fields)


class FakeStore:
    """
    An in-memory store of one kind, with all the calls recorded for assertions.

    The errors can be injected per verb & namespace/name: they are raised
    instead of performing the verb.
    """

    def __init__(self, gvk, objs=(), *, namespaced=True):
        super().__init__()
        self.gvk = gvk
        self.namespaced = namespaced
        self.objects: Dict[ObjectKey, dict] = {}
        self.calls: List[Tuple] = []
        self.errors: Dict[Tuple[str, Optional[str], Optional[str]], Exception] = {}
        self.hidden_on_list: set = set()
        for body in objs:
            self.objects[ObjectKey.from_body(body)] = copy.deepcopy(body)

    @property
    def mutations(self):
        return [call for call in self.calls if call[0] in {'create', 'patch', 'delete'}]

    def _check(self, verb, namespace, name=None):
        error = self.errors.get((verb, namespace, name))
        if error is not None:
            raise error

    async def create(self, namespace, body):
        self.calls.append(('create', namespace, get_name(body), copy.deepcopy(body)))
        self._check('create', namespace, get_name(body))
        key = ObjectKey(namespace or '', get_name(body))
        if key in self.objects:
            raise APIAlreadyExistsError({'kind': 'Status', 'reason': 'AlreadyExists',
                                         'message': f'{key} already exists'}, status=409)
        self.objects[key] = copy.deepcopy(body)
        return copy.deepcopy(body)

    async def get(self, namespace, name):
        self.calls.append(('get', namespace, name))
        self._check('get', namespace, name)
        try:
            return copy.deepcopy(self.objects[ObjectKey(namespace or '', name)])
        except KeyError:
            raise APINotFoundError({'kind': 'Status', 'reason': 'NotFound'}, status=404)

    async def delete(self, namespace, name, *, force=False):
        self.calls.append(('delete', namespace, name, force))
        self._check('delete', namespace, name)
        self.objects.pop(ObjectKey(namespace or '', name), None)

    async def list(self, namespace, selector):
        self.calls.append(('list', namespace, str(selector)))
        self._check('list', namespace)
        return [
            copy.deepcopy(body)
            for key, body in sorted(self.objects.items())
            if namespace is None or key.namespace == namespace
            if selector.matches(get_labels(body))
            if key not in self.hidden_on_list
        ]

    async def patch(self, namespace, name, patch_type, data):
        self.calls.append(('patch', namespace, name, json.loads(data)))
        self._check('patch', namespace, name)
        key = ObjectKey(namespace or '', name)
        self.objects[key] = _merge(self.objects[key], json.loads(data))
        return copy.deepcopy(self.objects[key])


def _merge(body, patch):
    result = copy.deepcopy(body)
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        elif isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


class FakeResolver:
    """ A resolver of the kinds to the fake stores & caches, with no API calls. """

    def __init__(self):
        super().__init__()
        self.stores: Dict[GroupVersionKind, FakeStore] = {}
        self.caches: Dict[GroupVersionKind, object] = {}
        self.scopes: Dict[GroupVersionKind, bool] = {}

    def add(self, gvk, objs=(), *, namespaced=True, cache=None):
        self.stores[gvk] = FakeStore(gvk, objs, namespaced=namespaced)
        self.scopes[gvk] = namespaced
        if cache is not None:
            self.caches[gvk] = cache
        return self.stores[gvk]

    async def is_namespaced(self, gvk):
        try:
            return self.scopes[gvk]
        except KeyError:
            raise ResourceLookupError(f"No resource is found for {gvk}.")

    async def resolve(self, gvk, *, strict=False):
        try:
            store = self.stores[gvk]
        except KeyError:
            raise ResourceLookupError(f"No resource is found for {gvk}.")
        cache = self.caches.get(gvk)
        if cache is None and strict:
            raise NoCacheError(f"No cache is found for {gvk}.")
        return cache, store


@pytest.fixture()
def settings():
    return ApplySettings()


@pytest.fixture()
def sink():
    return ErrorSink()


@pytest.fixture()
def resolver():
    return FakeResolver()


@pytest.fixture()
def logger():
    return logging.getLogger('desiredset.tests')


@pytest.fixture()
def namespaced_resource():
    """ The resource used in the API tests. """
    return Resource('', 'v1', 'configmaps', kind='ConfigMap', namespaced=True)


@pytest.fixture()
def cluster_resource():
    """ The resource used in the API tests. """
    return Resource('', 'v1', 'namespaces', kind='Namespace', namespaced=False)


@pytest.fixture(params=[True, False], ids=['namespaced', 'cluster'])
def resource(request):
    """ The resource used in the API tests, of both scopes. """
    return Resource('desiredset.dev', 'v1', 'examples', kind='Example', namespaced=request.param)


@pytest.fixture()
def namespace(resource):
    return 'ns' if resource.namespaced else None


#
# Mocks for the Kubernetes API. No external calls must be made under any circumstances:
# the unit-tests must be fully isolated from the environment.
#

@pytest.fixture()
def hostname():
    """ A fake hostname to be used in all aiohttp/aresponses tests. """
    return 'fake-host'


@pytest.fixture()
async def fake_context(hostname):
    """
    An API context for the requests, pointing to the fake host.

    The requests to the host are intercepted by `aresponses`.
    """
    info = ConnectionInfo(server=f"http://{hostname}", default_namespace="default")
    async with APIContext(info) as context:
        yield context


# The context variable is set outside of the async fixtures: their values do not leak into the tests.
@pytest.fixture()
def api_context(fake_context):
    token = context_var.set(fake_context)
    try:
        yield fake_context
    finally:
        context_var.reset(token)


@pytest.fixture()
def resp_mocker(api_context, aresponses, mocker):
    """
    A factory of server-side callbacks for `aresponses` with mocking/spying.

    The value of the fixture is a function, which return a coroutine mock.
    That coroutine mock should be passed to `aresponses.add` as a response
    callback function. When called, it calls the mock defined by the function's
    arguments (specifically, return_value or side_effects).

    Sample usage::

        def test_me(resp_mocker):
            response = aiohttp.web.json_response({'a': 'b'})
            callback = resp_mocker(return_value=response)
            aresponses.add(hostname, '/path/', 'get', callback)
            do_something()
            assert callback.called
            assert callback.call_count == 1
    """
    def resp_maker(*args, **kwargs):
        actual_response = mocker.MagicMock(*args, **kwargs)

        async def resp_mock_effect(request):

            # The request's content can be read inside of the handler only. We preserve
            # the data into a conventional field, so that they could be asserted later.
            try:
                request.data = await request.json()
            except json.JSONDecodeError:
                request.data = await request.text()

            # Get a response/error as it was intended (via return_value/side_effect).
            return actual_response()

        return mocker.AsyncMock(side_effect=resp_mock_effect)
    return resp_maker


def status_response(status, reason, message='fake message'):
    """ A K8s-like error response, as the API returns it. """
    payload = {'apiVersion': 'v1', 'kind': 'Status', 'code': status,
               'status': 'Failure', 'reason': reason, 'message': message}
    return aiohttp.web.json_response(payload, status=status)


#
# Logging: capture all the messages with their object prefixes (if any).
#

@pytest.fixture()
def logstream(caplog):
    """ Prefixing is done at the final output. We have to intercept it. """
    logger = logging.getLogger()
    handlers = list(logger.handlers)

    # Setup all the default handlers first.
    configure(debug=True)

    # Inject our stream-intercepting handler to be the only one.
    formatter = ObjectPrefixingTextFormatter('prefix %(message)s')
    caplog.handler.setFormatter(formatter)
    logger.handlers[:] = [caplog.handler]

    try:
        yield caplog
    finally:
        logger.handlers[:] = handlers

