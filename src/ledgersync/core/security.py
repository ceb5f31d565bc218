"""Owner identity from bearer tokens.

Tokens are issued by the external identity provider; this service only
verifies them and reads the owner id from the ``sub`` claim.
"""

from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from ledgersync.config import settings


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        JWTError: If token is invalid or expired
    """
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def get_owner_id_from_token(token: str) -> UUID:
    """
    Extract the owner ID from a JWT token.

    Args:
        token: JWT token string

    Returns:
        Owner ID as UUID

    Raises:
        JWTError: If token is invalid or expired
        ValueError: If the owner ID is not a valid UUID
    """
    payload = decode_token(token)
    owner_id = payload.get("sub")
    if owner_id is None:
        raise JWTError("Token missing 'sub' claim")
    return UUID(owner_id)
