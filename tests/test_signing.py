from __future__ import annotations

import hashlib

import pytest

from vke.infra.signing import SIGNATURE_VERSION, sign, signature_headers

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

BASE = {
    "secret": "s3cret",
    "method": "PUT",
    "endpoint": "https://vke.example.net",
    "path": "/cluster/c1/nodegroups/p1",
    "body": b'{"maxNodes":5}',
    "timestamp": 1_700_000_000,
}


def test_signature_is_sha1_of_joined_fields():
    expected = hashlib.sha1(
        b's3cret+PUT+https://vke.example.net+/cluster/c1/nodegroups/p1{"maxNodes":5}+1700000000'
    ).hexdigest()
    assert sign(**BASE) == expected


def test_identical_inputs_give_identical_signatures():
    assert sign(**BASE) == sign(**BASE)


def test_str_and_bytes_body_sign_the_same():
    assert sign(**{**BASE, "body": BASE["body"].decode()}) == sign(**BASE)


def test_method_is_case_insensitive():
    assert sign(**{**BASE, "method": "put"}) == sign(**BASE)


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("secret", "other-secret"),
        ("method", "POST"),
        ("endpoint", "https://ca.vke.example.net"),
        ("path", "/cluster/c1/nodegroups/p2"),
        ("body", b'{"maxNodes":6}'),
        ("timestamp", 1_700_000_001),
    ],
)
def test_changing_any_field_changes_signature(field: str, value: object):
    assert sign(**{**BASE, field: value}) != sign(**BASE)


def test_signature_headers():
    headers = signature_headers("app-key", "abc123", 42)
    assert headers == {
        "X-VKE-Application": "app-key",
        "X-VKE-Timestamp": "42",
        "X-VKE-Signature": f"{SIGNATURE_VERSION}abc123",
    }
