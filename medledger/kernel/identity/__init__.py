"""
Identity Core - bearer token verification.
"""

from medledger.kernel.identity.jwt import (
    JWTManager,
    AccessTokenPayload,
    verify_access_token,
)

__all__ = [
    "JWTManager",
    "AccessTokenPayload",
    "verify_access_token",
]
