from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_HANDSHAKE_PATH = "/api/contract/shakeHand"


def _require_env(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"{name} is required")
    return value


@dataclass(frozen=True)
class ChainConfig:
    rest_url: str
    access_id: str
    tenant_id: str = ""
    biz_id: str = ""
    account: str = ""
    kms_key_id: str = ""
    contract_name: str = ""
    handshake_path: str = DEFAULT_HANDSHAKE_PATH

    def __post_init__(self) -> None:
        object.__setattr__(self, "rest_url", self.rest_url.rstrip("/"))

    @classmethod
    def from_env(cls) -> "ChainConfig":
        return cls(
            rest_url=_require_env("BLOCKCHAIN_REST_URL"),
            access_id=_require_env("BLOCKCHAIN_ACCESS_ID"),
            tenant_id=os.getenv("BLOCKCHAIN_TENANT_ID", ""),
            biz_id=os.getenv("BLOCKCHAIN_BIZ_ID", ""),
            account=os.getenv("BLOCKCHAIN_ACCOUNT", ""),
            kms_key_id=os.getenv("BLOCKCHAIN_KMS_KEY_ID", ""),
            contract_name=os.getenv("BLOCKCHAIN_CONTRACT_NAME", ""),
        )


@dataclass(frozen=True)
class GatewayConfig:
    rest_url: str
    isv_ak: str
    tenant_id: str
    authentication_type: str = "isv"
    authentication_version: str = "1.0"
    signature_method: str = "SHA256_HMAC"

    def __post_init__(self) -> None:
        object.__setattr__(self, "rest_url", self.rest_url.rstrip("/"))

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        return cls(
            rest_url=_require_env("GATEWAY_REST_URL"),
            isv_ak=_require_env("GATEWAY_ISV_AK"),
            tenant_id=_require_env("GATEWAY_TENANT_ID"),
        )
