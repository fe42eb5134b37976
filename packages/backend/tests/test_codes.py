"""Confirmation-code transport encoding tests."""

import secrets

import pytest

from storefront.auth.codes import CodeDecodeError, decode_code, encode_code


def test_store_code_survives_encoding():
    code = secrets.token_urlsafe(32)
    assert decode_code(encode_code(code)) == code


def test_encoded_text_is_url_safe_and_unpadded():
    # "?>" encodes to "...vz8+" in standard base64
    encoded = encode_code("ûÿ?>")
    assert "+" not in encoded and "/" not in encoded and "=" not in encoded
    assert decode_code(encoded) == "ûÿ?>"


def test_padding_is_tolerated():
    encoded = encode_code("ab")
    assert decode_code(encoded + "=") == "ab"
    assert decode_code(encoded) == "ab"


def test_impossible_length_rejected():
    with pytest.raises(CodeDecodeError):
        decode_code("abcde")


def test_non_utf8_payload_rejected():
    with pytest.raises(CodeDecodeError):
        decode_code("__8")  # decodes to 0xff 0xff
