from .client import (
    AuthStrategy,
    ChainClient,
    GatewayClient,
    IsvHmacAuth,
)
from .config import ChainConfig, GatewayConfig
from .errors import (
    ChainSignError,
    GatewayError,
    HandshakeFailure,
    KeyLoadError,
    SignatureError,
    TokenExpiredDownstream,
)
from .keys import (
    DEFAULT_PRIVATE_KEY_SOURCE,
    DEFAULT_SHARED_SECRET_SOURCE,
    KeyMaterial,
    KeyMaterialSource,
    KeySource,
    ensure_pem,
    load_key,
    load_key_material,
)
from .signing import (
    CanonicalRequest,
    base64_to_hex,
    canonical_header_string,
    canonical_query_string,
    canonical_request,
    handshake_secret,
    serialize_body,
    sign_handshake,
    sign_request,
)
from .tokens import DEFAULT_TOKEN_VALIDITY_MS, CachedToken, TokenManager, TokenState

__all__ = [
    "AuthStrategy",
    "ChainClient",
    "GatewayClient",
    "IsvHmacAuth",
    "ChainConfig",
    "GatewayConfig",
    "ChainSignError",
    "GatewayError",
    "HandshakeFailure",
    "KeyLoadError",
    "SignatureError",
    "TokenExpiredDownstream",
    "DEFAULT_PRIVATE_KEY_SOURCE",
    "DEFAULT_SHARED_SECRET_SOURCE",
    "KeyMaterial",
    "KeyMaterialSource",
    "KeySource",
    "ensure_pem",
    "load_key",
    "load_key_material",
    "CanonicalRequest",
    "base64_to_hex",
    "canonical_header_string",
    "canonical_query_string",
    "canonical_request",
    "handshake_secret",
    "serialize_body",
    "sign_handshake",
    "sign_request",
    "DEFAULT_TOKEN_VALIDITY_MS",
    "CachedToken",
    "TokenManager",
    "TokenState",
]
