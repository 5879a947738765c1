from __future__ import annotations

from typing import Any, Optional


class ChainSignError(Exception):
    pass


class KeyLoadError(ChainSignError):
    def __init__(self, name: str, source: str, message: Optional[str] = None):
        self.name = name
        self.source = source
        super().__init__(message or f"{name} not available from {source}")


class SignatureError(ChainSignError):
    pass


class HandshakeFailure(ChainSignError):
    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class TokenExpiredDownstream(ChainSignError):
    def __init__(self, status_code: int, message: str = "bearer token rejected"):
        super().__init__(f"{message} (HTTP {status_code})")
        self.status_code = status_code


class GatewayError(ChainSignError):
    def __init__(self, status_code: int, error_code: Optional[str], message: str, request_id: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.request_id = request_id
        self.details = details
