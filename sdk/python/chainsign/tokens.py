from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import httpx

from .config import ChainConfig
from .errors import HandshakeFailure, KeyLoadError, SignatureError
from .keys import DEFAULT_PRIVATE_KEY_SOURCE, KeySource, ensure_pem, load_key
from .signing import handshake_secret

logger = logging.getLogger(__name__)

# Kept shorter than the server-side token lifetime.
DEFAULT_TOKEN_VALIDITY_MS = 20 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


class TokenState(enum.Enum):
    ABSENT = "absent"
    VALID = "valid"


@dataclass(frozen=True)
class CachedToken:
    value: str = field(repr=False)
    expires_at: int

    def is_valid(self, now_ms: int) -> bool:
        return self.expires_at > now_ms


class TokenManager:
    """Single-slot bearer token cache, either ABSENT or VALID.

    A handshake signs ``access_id + now`` with the RSA private key and posts
    the hex-encoded signature to the handshake endpoint.
    """

    def __init__(
        self,
        config: ChainConfig,
        key_source: KeySource = DEFAULT_PRIVATE_KEY_SOURCE,
        private_key: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        clock: Optional[Callable[[], int]] = None,
        validity_ms: int = DEFAULT_TOKEN_VALIDITY_MS,
        timeout_seconds: float = 10.0,
    ):
        self.config = config
        self.key_source = key_source
        self.http = http or httpx.Client(timeout=timeout_seconds)
        self.clock = clock or _now_ms
        self.validity_ms = validity_ms
        self._private_key: Optional[str] = ensure_pem(private_key) if private_key else None
        self._token: Optional[CachedToken] = None
        self._lock = threading.Lock()
        self._generation = 0
        self._handshakes = 0

    @property
    def state(self) -> TokenState:
        token = self._token
        if token is not None and token.is_valid(self.clock()):
            return TokenState.VALID
        return TokenState.ABSENT

    @property
    def handshake_count(self) -> int:
        return self._handshakes

    def set_private_key(self, private_key: str) -> None:
        with self._lock:
            self._private_key = ensure_pem(private_key)

    def get_token(self, force_refresh: bool = False) -> Optional[str]:
        """Return a bearer token, performing a handshake when needed.

        Returns None when the handshake does not succeed; the reason is
        logged and the manager is left ABSENT.
        """
        if not force_refresh:
            token = self._token
            if token is not None and token.is_valid(self.clock()):
                return token.value

        observed = self._generation
        with self._lock:
            token = self._token
            if token is not None and token.is_valid(self.clock()):
                # another caller refreshed while we were waiting
                if not force_refresh or self._generation != observed:
                    return token.value
            try:
                self._token = self._handshake()
            except HandshakeFailure as exc:
                logger.warning("token handshake failed: %s", exc)
                self._token = None
            except (KeyLoadError, SignatureError) as exc:
                logger.error("token handshake not attempted: %s", exc)
                self._token = None
            finally:
                self._generation += 1
            return self._token.value if self._token is not None else None

    def fetch_token(self, force_refresh: bool = False) -> str:
        token = self.get_token(force_refresh=force_refresh)
        if token is None:
            raise HandshakeFailure("no bearer token available")
        return token

    def invalidate_token(self, rejected: Optional[str] = None) -> None:
        """Drop the cached token.

        With ``rejected``, the slot is only cleared while it still holds that
        value, so a token installed by a concurrent refresh survives.
        """
        with self._lock:
            if rejected is None or (self._token is not None and self._token.value == rejected):
                self._token = None

    def _handshake(self) -> CachedToken:
        if self._private_key is None:
            self._private_key = ensure_pem(load_key(self.key_source, "private key"))
        now = self.clock()
        identity = self.config.access_id
        params = {
            "accessId": identity,
            "time": str(now),
            "secret": handshake_secret(identity, now, self._private_key),
        }
        url = self.config.rest_url + self.config.handshake_path
        self._handshakes += 1
        try:
            resp = self.http.post(url, json=params, headers={"Content-Type": "application/json;charset=UTF-8"})
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise HandshakeFailure(f"handshake request failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise HandshakeFailure(f"handshake returned HTTP {resp.status_code}", status_code=resp.status_code, details=resp.text)
        try:
            data = resp.json()
        except ValueError as exc:
            raise HandshakeFailure("handshake response is not JSON", status_code=resp.status_code, details=resp.text) from exc
        value = self._token_from_payload(data)
        logger.info("bearer token refreshed for %s", identity)
        return CachedToken(value=value, expires_at=now + self._validity_for(data))

    @staticmethod
    def _token_from_payload(data: Any) -> str:
        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("message") if isinstance(data, dict) else None
            raise HandshakeFailure(f"handshake rejected: {message or 'success flag not set'}")
        value = data.get("data")
        if not isinstance(value, str) or not value:
            raise HandshakeFailure("handshake response carries no token")
        return value

    def _validity_for(self, data: dict) -> int:
        expires_in = data.get("expiresIn")
        if isinstance(expires_in, int) and not isinstance(expires_in, bool) and expires_in > 0:
            return min(expires_in * 1000, self.validity_ms)
        return self.validity_ms
