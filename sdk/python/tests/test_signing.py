import base64
import json
from pathlib import Path

import pytest

from chainsign import (
    SignatureError,
    base64_to_hex,
    canonical_header_string,
    canonical_query_string,
    canonical_request,
    handshake_secret,
    serialize_body,
    sign_handshake,
    sign_request,
)

FIXTURES = Path(__file__).resolve().parent / "fixtures"
SECRET = "secretKey123"


def _key() -> str:
    return (FIXTURES / "handshake_rsa_key.pem").read_text()


def _raw_key() -> str:
    lines = _key().strip().splitlines()
    return "".join(line for line in lines if not line.startswith("-----"))


def _handshake_vector() -> dict:
    return json.loads((FIXTURES / "handshake_v1.json").read_text())


def _canonical_cases() -> list:
    return json.loads((FIXTURES / "canonical_v1.json").read_text())["cases"]


def test_handshake_signature_known_vector():
    fx = _handshake_vector()
    sig = sign_handshake(fx["identity"], fx["timestamp_ms"], _key())
    assert sig == fx["expected_signature_base64"]


def test_handshake_signature_is_deterministic():
    assert sign_handshake("tenant-A", 1700000000000, _key()) == sign_handshake("tenant-A", 1700000000000, _key())
    assert sign_handshake("tenant-A", 1700000000000, _key()) != sign_handshake("tenant-A", 1700000000001, _key())


def test_handshake_signature_accepts_raw_key_without_pem_envelope():
    fx = _handshake_vector()
    assert sign_handshake(fx["identity"], fx["timestamp_ms"], _raw_key()) == fx["expected_signature_base64"]


def test_handshake_secret_known_vector():
    fx = _handshake_vector()
    secret = handshake_secret(fx["identity"], fx["timestamp_ms"], _key())
    assert secret == fx["expected_secret_hex"]
    assert secret == base64.b64decode(fx["expected_signature_base64"]).hex()
    assert secret == secret.lower()
    assert len(secret) == 512


def test_base64_to_hex_decodes_bytes_not_text():
    assert base64_to_hex("AAEC/w==") == "000102ff"
    assert base64_to_hex("") == ""
    with pytest.raises(SignatureError):
        base64_to_hex("not base64!")


def test_handshake_signing_rejects_bad_keys():
    with pytest.raises(SignatureError):
        sign_handshake("tenant-A", 1, "")
    with pytest.raises(SignatureError):
        sign_handshake("tenant-A", 1, "bm90IGEga2V5")


@pytest.mark.parametrize("case", _canonical_cases(), ids=lambda c: c["name"])
def test_canonical_known_vectors(case):
    canonical = canonical_request(case["path"], case["headers"], case["params"], case["body"])
    assert canonical.content() == case["expected_content"].encode("utf-8")
    assert sign_request(case["path"], case["headers"], case["params"], case["body"], SECRET) == case["expected_signature"]


def test_canonical_scenario_page_query():
    canonical = canonical_request(
        "/api/project/pageQuery",
        {"x-tenant-id": "t1", "x-isv-ak": "ak1"},
        {"page": "1", "pageSize": "10"},
        None,
    )
    assert canonical.content() == b"/api/project/pageQueryx-isv-ak=ak1&x-tenant-id=t1page=1&pageSize=10"


def test_input_order_does_not_change_signature():
    a = sign_request("/p", {"b": "2", "a": "1", "c": "3"}, {"z": "9", "y": "8"}, None, SECRET)
    b = sign_request("/p", {"c": "3", "a": "1", "b": "2"}, {"y": "8", "z": "9"}, None, SECRET)
    assert a == b


def test_multi_value_query_matches_joined_single_value():
    assert canonical_query_string({"tags": ["a", "b"]}) == canonical_query_string({"tags": "a,b"})
    assert sign_request("/t", {}, {"tags": ["a", "b"]}, None, SECRET) == sign_request("/t", {}, {"tags": "a,b"}, None, SECRET)


def test_sorting_is_ordinal_not_locale_aware():
    assert canonical_header_string({"b": "1", "B": "2", "a": "3"}) == "B=2&a=3&b=1"


def test_empty_maps_and_empty_values():
    assert canonical_header_string({}) == ""
    assert canonical_query_string(None) == ""
    assert canonical_query_string({"q": "", "flag": True, "n": 3}) == "flag=true&n=3&q="
    assert canonical_request("/x", {}, {}, None).content() == b"/x"


def test_signature_header_is_never_signed():
    headers = {"x-isv-ak": "ak1", "x-tenant-id": "t1"}
    with_sig = dict(headers, **{"x-signature": "stale", "X-Signature": "stale"})
    assert canonical_header_string(with_sig) == canonical_header_string(headers)
    assert sign_request("/p", with_sig, {}, None, SECRET) == sign_request("/p", headers, {}, None, SECRET)


def test_body_serialization():
    assert serialize_body(None) == b""
    assert serialize_body('{"a": 1}') == b'{"a": 1}'
    assert serialize_body(b"\x00\xff") == b"\x00\xff"
    assert serialize_body({"b": 1, "a": [1, 2], "name": "区块"}) == '{"b":1,"a":[1,2],"name":"区块"}'.encode("utf-8")


def test_text_and_structured_body_sign_identically():
    text = '{"name":"api_test","writable":true}'
    obj = {"name": "api_test", "writable": True}
    assert sign_request("/d", {}, {}, text, SECRET) == sign_request("/d", {}, {}, obj, SECRET)
    assert sign_request("/d", {}, {}, text.encode("utf-8"), SECRET) == sign_request("/d", {}, {}, obj, SECRET)


def test_sign_request_failures():
    with pytest.raises(SignatureError):
        sign_request("/p", {}, {}, None, "")
    with pytest.raises(SignatureError):
        sign_request("/p", {}, {}, None, None)
    with pytest.raises(SignatureError):
        sign_request("/p", {}, {}, {"when": object()}, SECRET)
    for body in ({"v": float("nan")}, {"i": float("inf")}, [float("-inf")]):
        with pytest.raises(SignatureError):
            serialize_body(body)
        with pytest.raises(SignatureError):
            sign_request("/p", {}, {}, body, SECRET)
