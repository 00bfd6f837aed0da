import pytest

from desiredset._cogs.structs.references import GroupKind, GroupVersionKind, Resource


@pytest.mark.parametrize('gvk, expected', [
    (GroupVersionKind('', 'v1', 'ConfigMap'), 'v1, Kind=ConfigMap'),
    (GroupVersionKind('apps', 'v1', 'Deployment'), 'apps/v1, Kind=Deployment'),
])
def test_gvk_string_form(gvk, expected):
    assert str(gvk) == expected


@pytest.mark.parametrize('text, expected', [
    ('v1, Kind=ConfigMap', GroupVersionKind('', 'v1', 'ConfigMap')),
    ('apps/v1, Kind=Deployment', GroupVersionKind('apps', 'v1', 'Deployment')),
    ('Kind=ConfigMap', GroupVersionKind('', 'v1', 'ConfigMap')),
    ('v1/ConfigMap', GroupVersionKind('', 'v1', 'ConfigMap')),
    ('apps/v1/Deployment', GroupVersionKind('apps', 'v1', 'Deployment')),
])
def test_gvk_parsing(text, expected):
    assert GroupVersionKind.parse(text) == expected


@pytest.mark.parametrize('text', ['', 'ConfigMap', 'v1/'])
def test_gvk_parsing_errors(text):
    with pytest.raises(ValueError):
        GroupVersionKind.parse(text)


def test_gvk_from_body():
    gvk = GroupVersionKind.from_body({'apiVersion': 'apps/v1', 'kind': 'Deployment'})
    assert gvk == GroupVersionKind('apps', 'v1', 'Deployment')
    assert gvk.api_version == 'apps/v1'
    assert gvk.group_kind == GroupKind('apps', 'Deployment')


@pytest.mark.parametrize('body', [{}, {'apiVersion': 'v1'}, {'kind': 'ConfigMap'}])
def test_gvk_from_incomplete_body(body):
    with pytest.raises(ValueError):
        GroupVersionKind.from_body(body)


def test_group_kind_is_shared_across_versions():
    gvk1 = GroupVersionKind('apps', 'v1', 'Deployment')
    gvk2 = GroupVersionKind('apps', 'v1beta1', 'Deployment')
    assert gvk1 != gvk2
    assert gvk1.group_kind == gvk2.group_kind


def test_resource_equality_ignores_informational_fields():
    resource1 = Resource('apps', 'v1', 'deployments', kind='Deployment', namespaced=True)
    resource2 = Resource('apps', 'v1', 'deployments')
    assert resource1 == resource2
    assert hash(resource1) == hash(resource2)


def test_resource_gvk():
    resource = Resource('apps', 'v1', 'deployments', kind='Deployment', namespaced=True)
    assert resource.gvk == GroupVersionKind('apps', 'v1', 'Deployment')


@pytest.mark.parametrize('namespace, name, expected', [
    (None, None, '/apis/apps/v1/deployments'),
    ('ns1', None, '/apis/apps/v1/namespaces/ns1/deployments'),
    ('ns1', 'name1', '/apis/apps/v1/namespaces/ns1/deployments/name1'),
])
def test_urls_of_namespaced_resources(namespace, name, expected):
    resource = Resource('apps', 'v1', 'deployments', namespaced=True)
    assert resource.get_url(namespace=namespace, name=name) == expected


def test_urls_of_cluster_resources():
    resource = Resource('', 'v1', 'namespaces', namespaced=False)
    assert resource.get_url() == '/api/v1/namespaces'
    assert resource.get_url(name='ns1') == '/api/v1/namespaces/ns1'


def test_urls_with_params_and_server():
    resource = Resource('', 'v1', 'configmaps', namespaced=True)
    url = resource.get_url(server='https://host/', namespace='ns1', params={'labelSelector': 'a=b'})
    assert url == 'https://host/api/v1/namespaces/ns1/configmaps?labelSelector=a%3Db'


def test_urls_of_cluster_resources_refuse_namespaces():
    resource = Resource('', 'v1', 'namespaces', namespaced=False)
    with pytest.raises(ValueError):
        resource.get_url(namespace='ns1')


def test_urls_of_namespaced_objects_require_namespaces():
    resource = Resource('', 'v1', 'configmaps', namespaced=True)
    with pytest.raises(ValueError):
        resource.get_url(name='name1')
