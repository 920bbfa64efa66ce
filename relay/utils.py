"""
Utility functions for the chat relay.
"""

import logging
import secrets

logger = logging.getLogger(__name__)


def base64_decoded_length(data: str) -> int:
    """
    Number of bytes a base64 string decodes to, without decoding it.

    Padding is ignored, so both padded and unpadded payloads are measured
    the same way.

    Args:
        data: Base64-encoded payload

    Returns:
        Decoded size in bytes
    """
    stripped = data.rstrip("=")
    return (len(stripped) * 3) // 4


def generate_otp() -> str:
    """
    Generate a 6-digit one-time code, uniform in [100000, 999999].

    Returns:
        The code as a string
    """
    return str(100000 + secrets.randbelow(900000))
