"""Shared-secret generation for webhooks."""
import secrets

DEFAULT_TOKEN_BYTES = 32


def create_token(nbytes: int = DEFAULT_TOKEN_BYTES) -> str:
    """
    Generate a random webhook secret.

    Args:
        nbytes: Number of random bytes (the result is twice as many hex chars)

    Returns:
        Hex-encoded random string
    """
    return secrets.token_hex(nbytes)
