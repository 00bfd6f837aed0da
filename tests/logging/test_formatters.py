import json
import logging.handlers

import pytest

from desiredset._core.actions.loggers import ObjectJsonFormatter, ObjectLogger, \
                                             ObjectPrefixingJsonFormatter, \
                                             ObjectPrefixingTextFormatter, ObjectTextFormatter


@pytest.fixture()
def ns_body():
    return {
        'kind': 'kind1',
        'apiVersion': 'api1/v1',
        'metadata': {'uid': 'uid1', 'name': 'name1', 'namespace': 'namespace1'},
    }


@pytest.fixture()
def cluster_body():
    return {
        'kind': 'kind1',
        'apiVersion': 'api1/v1',
        'metadata': {'uid': 'uid1', 'name': 'name1'},
    }


def _make_record(caplog, body, **kwargs):
    caplog.set_level(logging.DEBUG)
    handler = logging.handlers.BufferingHandler(capacity=100)
    logger = ObjectLogger(body=body)
    logger.logger.addHandler(handler)
    try:
        logger.info("hello", **kwargs)
    finally:
        logger.logger.removeHandler(handler)
    return handler.buffer[0]


@pytest.fixture()
def ns_record(caplog, ns_body):
    return _make_record(caplog, ns_body)


@pytest.fixture()
def cluster_record(caplog, cluster_body):
    return _make_record(caplog, cluster_body)


def test_prefixing_text_formatter_adds_prefixes_when_namespaced(ns_record):
    formatter = ObjectPrefixingTextFormatter()
    formatted = formatter.format(ns_record)
    assert formatted == '[namespace1/name1] hello'


def test_prefixing_text_formatter_adds_prefixes_when_cluster(cluster_record):
    formatter = ObjectPrefixingTextFormatter()
    formatted = formatter.format(cluster_record)
    assert formatted == '[name1] hello'


def test_prefixing_json_formatter_adds_prefixes_when_namespaced(ns_record):
    formatter = ObjectPrefixingJsonFormatter()
    formatted = formatter.format(ns_record)
    decoded = json.loads(formatted)
    assert decoded['message'] == '[namespace1/name1] hello'


def test_prefixing_json_formatter_adds_prefixes_when_clustered(cluster_record):
    formatter = ObjectPrefixingJsonFormatter()
    formatted = formatter.format(cluster_record)
    decoded = json.loads(formatted)
    assert decoded['message'] == '[name1] hello'


def test_regular_text_formatter_omits_prefixes(ns_record):
    formatter = ObjectTextFormatter()
    formatted = formatter.format(ns_record)
    assert formatted == 'hello'


def test_regular_json_formatter_omits_prefixes(ns_record):
    formatter = ObjectJsonFormatter()
    formatted = formatter.format(ns_record)
    decoded = json.loads(formatted)
    assert decoded['message'] == 'hello'


def test_json_formatter_adds_the_references(ns_record):
    formatter = ObjectJsonFormatter()
    formatted = formatter.format(ns_record)
    decoded = json.loads(formatted)
    assert decoded['object'] == {
        'apiVersion': 'api1/v1',
        'kind': 'kind1',
        'name': 'name1',
        'uid': 'uid1',
        'namespace': 'namespace1',
    }
    assert 'k8s_ref' not in decoded
    assert decoded['severity'] == 'info'
    assert 'timestamp' in decoded


def test_json_formatter_with_custom_refkey(ns_record):
    formatter = ObjectJsonFormatter(refkey='k8s-obj')
    formatted = formatter.format(ns_record)
    decoded = json.loads(formatted)
    assert decoded['k8s-obj']['name'] == 'name1'
    assert 'object' not in decoded


def test_extras_are_merged_with_the_reference(caplog, ns_body):
    record = _make_record(caplog, ns_body, extra={'custom': 'value'})
    assert record.custom == 'value'
    assert record.k8s_ref['name'] == 'name1'


def test_references_are_fixed_at_construction(caplog, ns_body):
    logger = ObjectLogger(body=ns_body)
    ns_body['metadata']['name'] = 'renamed'
    assert logger.extra['k8s_ref']['name'] == 'name1'


def test_json_formatter_adds_the_set_reference(caplog, ns_body):
    caplog.set_level(logging.DEBUG)
    handler = logging.handlers.BufferingHandler(capacity=100)
    logger = ObjectLogger(body=ns_body, debug_id='set=set1')
    logger.logger.addHandler(handler)
    try:
        logger.info("hello")
    finally:
        logger.logger.removeHandler(handler)

    decoded = json.loads(ObjectJsonFormatter().format(handler.buffer[0]))
    assert decoded['desiredset'] == 'set=set1'
    assert 'set_ref' not in decoded


def test_json_formatter_skips_the_absent_set_reference(ns_record):
    decoded = json.loads(ObjectJsonFormatter().format(ns_record))
    assert 'desiredset' not in decoded
