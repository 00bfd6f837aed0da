import json

import pytest

from desiredset._cogs.structs.patches import EMPTY_PATCH, PatchType, dump_patch, sanitize_patch

APPLIED = 'desiredset.dev/applied'


def test_patch_types_are_content_types():
    assert PatchType.MERGE.content_type == 'application/merge-patch+json'
    assert PatchType.JSON.content_type == 'application/json-patch+json'
    assert PatchType.STRATEGIC.content_type == 'application/strategic-merge-patch+json'


def test_dumping_is_compact_and_sorted():
    assert dump_patch({'b': 1, 'a': {'y': None, 'x': [1, 2]}}) == b'{"a":{"x":[1,2],"y":null},"b":1}'


def test_unchanged_patch_is_returned_as_is():
    data = b'{ "spec": {"x": "y"} }'
    assert sanitize_patch(data, applied_annotation=APPLIED) is data


def test_fixed_and_server_fields_are_removed():
    data = dump_patch({
        'apiVersion': 'v1',
        'kind': 'ConfigMap',
        'status': {'a': 'b'},
        'metadata': {'creationTimestamp': None, 'labels': {'x': 'y'}},
    })
    result = sanitize_patch(data, applied_annotation=APPLIED)
    assert json.loads(result) == {'metadata': {'labels': {'x': 'y'}}}


def test_emptied_metadata_is_removed():
    data = dump_patch({'metadata': {'creationTimestamp': None}})
    assert sanitize_patch(data, applied_annotation=APPLIED) == EMPTY_PATCH


def test_applied_annotation_is_kept_for_execution():
    data = dump_patch({'metadata': {'annotations': {APPLIED: '{}'}}})
    assert sanitize_patch(data, applied_annotation=APPLIED) is data


@pytest.mark.parametrize('annotations, expected', [
    ({APPLIED: '{}'}, {}),
    ({APPLIED: '{}', 'other': 'x'}, {'metadata': {'annotations': {'other': 'x'}}}),
])
def test_applied_annotation_is_removed_for_plans(annotations, expected):
    data = dump_patch({'metadata': {'annotations': annotations}})
    result = sanitize_patch(data, for_plan=True, applied_annotation=APPLIED)
    assert json.loads(result) == expected


def test_json_patches_are_not_sanitized():
    data = b'[{"op": "remove", "path": "/status"}]'
    assert sanitize_patch(data, for_plan=True, applied_annotation=APPLIED) is data
