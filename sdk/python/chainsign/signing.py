from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from .errors import SignatureError
from .keys import ensure_pem

logger = logging.getLogger(__name__)

AUTH_VERSION_HEADER = "x-authentication-version"
AUTH_TYPE_HEADER = "x-authentication-type"
SIGNATURE_METHOD_HEADER = "x-signature-method"
ISV_AK_HEADER = "x-isv-ak"
TENANT_ID_HEADER = "x-tenant-id"
SIGNATURE_HEADER = "x-signature"

QueryValue = Union[str, int, float, bool, None, Sequence[Any]]


def _load_rsa_key(private_key: str) -> rsa.RSAPrivateKey:
    if not private_key or not private_key.strip():
        raise SignatureError("private key is required for handshake signing")
    try:
        key = load_pem_private_key(ensure_pem(private_key).encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SignatureError(f"cannot parse private key: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SignatureError(f"only RSA keys are supported, got {type(key).__name__}")
    return key


def sign_handshake(identity: str, timestamp_ms: int, private_key: str) -> str:
    """Sign ``identity + str(timestamp_ms)`` with SHA256withRSA and return Base64."""
    key = _load_rsa_key(private_key)
    message = f"{identity}{int(timestamp_ms)}".encode("utf-8")
    try:
        raw = key.sign(message, padding.PKCS1v15(), hashes.SHA256())
    except (ValueError, TypeError) as exc:
        raise SignatureError(f"rsa signing failed: {exc}") from exc
    return base64.b64encode(raw).decode("ascii")


def base64_to_hex(signature_b64: str) -> str:
    """Decode a Base64 signature to raw bytes and re-encode them as lowercase hex.

    The handshake endpoint expects this form, not a hex transform of the text.
    """
    try:
        raw = base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SignatureError(f"signature is not valid base64: {exc}") from exc
    return raw.hex()


def handshake_secret(identity: str, timestamp_ms: int, private_key: str) -> str:
    return base64_to_hex(sign_handshake(identity, timestamp_ms, private_key))


def _param_value(value: Any) -> str:
    if value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def _join_pairs(pairs: Mapping[str, str]) -> str:
    return "&".join(f"{k}={pairs[k]}" for k in sorted(pairs))


def canonical_header_string(headers: Optional[Mapping[str, str]]) -> str:
    if not headers:
        return ""
    items = {k: _param_value(v) for k, v in headers.items() if k.lower() != SIGNATURE_HEADER}
    return _join_pairs(items)


def canonical_query_string(params: Optional[Mapping[str, QueryValue]]) -> str:
    if not params:
        return ""
    items = {}
    for k, v in params.items():
        if isinstance(v, (list, tuple)):
            items[k] = ",".join(_param_value(x) for x in v)
        else:
            items[k] = _param_value(v)
    return _join_pairs(items)


def compact_json(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def serialize_body(body: Any) -> bytes:
    if body is None:
        return b""
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    try:
        return compact_json(body).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SignatureError(f"request body is not JSON serializable: {exc}") from exc


@dataclass(frozen=True)
class CanonicalRequest:
    path: str
    header_string: str
    query_string: str
    body: bytes

    def content(self) -> bytes:
        head = f"{self.path}{self.header_string}{self.query_string}".encode("utf-8")
        return head + self.body


def canonical_request(
    path: str,
    headers: Optional[Mapping[str, str]] = None,
    params: Optional[Mapping[str, QueryValue]] = None,
    body: Any = None,
) -> CanonicalRequest:
    return CanonicalRequest(
        path=path,
        header_string=canonical_header_string(headers),
        query_string=canonical_query_string(params),
        body=serialize_body(body),
    )


def sign_request(
    path: str,
    headers: Optional[Mapping[str, str]],
    params: Optional[Mapping[str, QueryValue]],
    body: Any,
    shared_secret: Optional[str],
) -> str:
    """HMAC-SHA256 over ``path || headers || query || body``, Base64 encoded.

    Headers and query parameters are sorted by key before joining, so the
    order of the input mappings does not matter. The ``x-signature`` header is
    never part of the signed content.
    """
    if not shared_secret:
        raise SignatureError("shared secret is required for request signing")
    canonical = canonical_request(path, headers, params, body)
    logger.debug(
        "canonical request path=%s headers=%d query=%d body=%d bytes",
        canonical.path,
        len(canonical.header_string),
        len(canonical.query_string),
        len(canonical.body),
    )
    mac = hmac.new(shared_secret.encode("utf-8"), canonical.content(), hashlib.sha256).digest()
    return base64.b64encode(mac).decode("ascii")
