"""Confirmation-code transport encoding.

Learn: Confirmation codes travel inside a query string, so they are
base64url-encoded (RFC 4648 §5) without '=' padding. Decoding accepts
input with or without padding and inverts encode_code exactly.
"""

import base64
import binascii


class CodeDecodeError(ValueError):
    """Raised when a code is not valid base64url text."""


def encode_code(code: str) -> str:
    """UTF-8 encode, then base64url without padding."""
    raw = base64.urlsafe_b64encode(code.encode("utf-8"))
    return raw.rstrip(b"=").decode("ascii")


def decode_code(encoded: str) -> str:
    """Reverse encode_code. Padding is optional."""
    text = encoded.strip()
    if len(text) % 4 == 1:
        raise CodeDecodeError("Invalid base64url length")
    padded = text + "=" * (-len(text) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        return raw.decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise CodeDecodeError(f"Invalid confirmation code: {e}") from e
