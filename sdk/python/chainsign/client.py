from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

import httpx

from .config import ChainConfig, GatewayConfig
from .errors import GatewayError, TokenExpiredDownstream
from .keys import DEFAULT_SHARED_SECRET_SOURCE, KeySource, load_key
from .signing import (
    AUTH_TYPE_HEADER,
    AUTH_VERSION_HEADER,
    ISV_AK_HEADER,
    SIGNATURE_HEADER,
    SIGNATURE_METHOD_HEADER,
    TENANT_ID_HEADER,
    QueryValue,
    compact_json,
    serialize_body,
    sign_request,
)
from .tokens import TokenManager

logger = logging.getLogger(__name__)

USER_AGENT = "chainsign-python/0.1.0"

CHAIN_CALL_PATH = "/api/contract/chainCall"
CHAIN_CALL_FOR_BIZ_PATH = "/api/contract/chainCallForBiz"
PROJECT_PAGE_QUERY_PATH = "/api/project/pageQuery"


class AuthStrategy:
    def apply(self, headers: Dict[str, str], method: str, path: str, params: Optional[Mapping[str, QueryValue]], body_bytes: bytes) -> None:
        raise NotImplementedError


class IsvHmacAuth(AuthStrategy):
    """Signs gateway requests with the ISV access key and shared secret.

    Only the identity headers take part in the signature; the signature is
    computed after they are final and written last.
    """

    def __init__(self, config: GatewayConfig, shared_secret: str):
        self.config = config
        self.shared_secret = shared_secret

    def identity_headers(self) -> Dict[str, str]:
        headers = {
            AUTH_VERSION_HEADER: self.config.authentication_version,
            AUTH_TYPE_HEADER: self.config.authentication_type,
            SIGNATURE_METHOD_HEADER: self.config.signature_method,
            ISV_AK_HEADER: self.config.isv_ak,
        }
        if self.config.tenant_id:
            headers[TENANT_ID_HEADER] = self.config.tenant_id
        return headers

    def apply(self, headers: Dict[str, str], method: str, path: str, params: Optional[Mapping[str, QueryValue]], body_bytes: bytes) -> None:
        if not self.config.isv_ak:
            raise ValueError("isv access key is required for hmac auth")
        signed = self.identity_headers()
        headers.update(signed)
        headers[SIGNATURE_HEADER] = sign_request(path, signed, params, body_bytes, self.shared_secret)


def _to_error(resp: httpx.Response) -> GatewayError:
    try:
        parsed = resp.json()
    except ValueError:
        return GatewayError(resp.status_code, None, resp.text or f"HTTP {resp.status_code}")
    if not isinstance(parsed, dict):
        return GatewayError(resp.status_code, None, f"HTTP {resp.status_code}", details=parsed)
    inner = parsed.get("error") if isinstance(parsed.get("error"), dict) else parsed
    return GatewayError(
        status_code=resp.status_code,
        error_code=inner.get("error_code") or inner.get("code"),
        message=inner.get("message") or inner.get("errorMsg") or f"HTTP {resp.status_code}",
        request_id=inner.get("request_id") or inner.get("traceId") or parsed.get("request_id"),
        details=inner.get("details"),
    )


def _decode(resp: httpx.Response) -> Dict[str, Any]:
    if not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError:
        return {"success": True, "message": resp.text}


class GatewayClient:
    """Client for the canonical-request-signing (ISV) gateway."""

    def __init__(
        self,
        config: GatewayConfig,
        shared_secret: Optional[str] = None,
        key_source: KeySource = DEFAULT_SHARED_SECRET_SOURCE,
        timeout_seconds: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.config = config
        self.headers = headers or {}
        self.http = httpx.Client(timeout=timeout_seconds)
        self.auth = IsvHmacAuth(config, shared_secret or load_key(key_source, "shared secret"))

    def set_shared_secret(self, shared_secret: str) -> None:
        self.auth = IsvHmacAuth(self.config, shared_secret)

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, QueryValue]] = None,
        body: Any = None,
    ) -> Dict[str, Any]:
        # the same bytes are signed and sent
        body_bytes = serialize_body(body)
        headers: Dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
            **self.headers,
        }
        if body_bytes:
            headers["Content-Type"] = "application/json; charset=utf-8"
        self.auth.apply(headers, method, path, params, body_bytes)
        logger.debug("%s %s", method.upper(), path)
        resp = self.http.request(
            method.upper(),
            self.config.rest_url + path,
            params=dict(params) if params else None,
            content=body_bytes or None,
            headers=headers,
        )
        if 200 <= resp.status_code < 300:
            return _decode(resp)
        raise _to_error(resp)

    def page_query_projects(self, page: int = 1, page_size: int = 10) -> Dict[str, Any]:
        return self.request("GET", PROJECT_PAGE_QUERY_PATH, {"page": str(page), "pageSize": str(page_size)})


class ChainClient:
    """Client for the chain REST gateway; the bearer token travels in the body."""

    def __init__(
        self,
        config: ChainConfig,
        tokens: Optional[TokenManager] = None,
        timeout_seconds: float = 10.0,
    ):
        self.config = config
        self.http = httpx.Client(timeout=timeout_seconds)
        self.tokens = tokens or TokenManager(config, timeout_seconds=timeout_seconds)

    def request(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        token = self.tokens.fetch_token()
        payload = {**body, "token": token}
        resp = self.http.post(
            self.config.rest_url + path,
            content=compact_json(payload).encode("utf-8"),
            headers={"Content-Type": "application/json;charset=UTF-8", "User-Agent": USER_AGENT},
        )
        if resp.status_code in (401, 403):
            self.tokens.invalidate_token(rejected=token)
            raise TokenExpiredDownstream(resp.status_code)
        if 200 <= resp.status_code < 300:
            return _decode(resp)
        raise _to_error(resp)

    def _contract_body(
        self,
        method_signature: str,
        input_params: Optional[List[Any]],
        output_types: Optional[List[str]],
        contract_name: Optional[str],
        method: str,
    ) -> Dict[str, Any]:
        return {
            "accessId": self.config.access_id,
            "account": self.config.account,
            "bizid": self.config.biz_id,
            "gas": 0,
            "inputParamListStr": compact_json(input_params or []),
            "method": method,
            "methodSignature": method_signature,
            "mykmsKeyId": self.config.kms_key_id,
            "orderId": str(uuid.uuid4()),
            "outTypes": compact_json(output_types or []),
            "tenantid": self.config.tenant_id,
            "withGasHold": False,
            "contractName": contract_name or self.config.contract_name,
        }

    def chain_call_for_biz(
        self,
        method_signature: str,
        input_params: Optional[List[Any]] = None,
        output_types: Optional[List[str]] = None,
        contract_name: Optional[str] = None,
        is_local_transaction: bool = False,
    ) -> Dict[str, Any]:
        body = self._contract_body(method_signature, input_params, output_types, contract_name, "CALLWASMCONTRACTASYNC")
        if is_local_transaction:
            body["isLocalTransaction"] = True
        return self.request(CHAIN_CALL_FOR_BIZ_PATH, body)

    def chain_call(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "accessId": self.config.access_id,
            "bizid": self.config.biz_id,
            "method": method,
            **params,
        }
        return self.request(CHAIN_CALL_PATH, body)

    def query_transaction(self, tx_hash: str) -> Dict[str, Any]:
        return self.chain_call("QUERYTRANSACTION", {"hash": tx_hash})
