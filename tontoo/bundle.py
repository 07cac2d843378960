"""
Bundle codec.

A bundle is a project's file map (relative path → text) serialised to
JSON, encrypted with AES-256-CBC under a key derived from the shared
secret, written as ``hex(iv):hex(ciphertext)`` and gzip-compressed.
"""

from __future__ import annotations

import binascii
import gzip
import hashlib
import json
import os
import zlib
from typing import Dict, Mapping, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from tontoo.config import get_settings
from tontoo.errors import CorruptBundleError

COMMENT_MARKER = "#"
_IV_SIZE = 16


def _derive_key(secret: Optional[str]) -> bytes:
    secret = secret if secret is not None else get_settings().secret_key
    return hashlib.sha256(secret.encode("utf-8")).digest()


def encrypt_text(text: str, *, secret: Optional[str] = None) -> str:
    """Encrypt ``text`` and return ``hex(iv):hex(ciphertext)``."""
    iv = os.urandom(_IV_SIZE)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(text.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(_derive_key(secret)), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return f"{iv.hex()}:{ciphertext.hex()}"


def decrypt_text(payload: str, *, secret: Optional[str] = None) -> str:
    """Inverse of :func:`encrypt_text`; splits on the first ``:``."""
    iv_hex, sep, cipher_hex = payload.partition(":")
    if not sep:
        raise ValueError("missing ':' separator between IV and ciphertext")
    iv = bytes.fromhex(iv_hex)
    if len(iv) != _IV_SIZE:
        raise ValueError(f"initialization vector must be {_IV_SIZE} bytes, got {len(iv)}")
    decryptor = Cipher(algorithms.AES(_derive_key(secret)), modes.CBC(iv)).decryptor()
    padded = decryptor.update(bytes.fromhex(cipher_hex)) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")


def encode(files: Mapping[str, str], *, secret: Optional[str] = None) -> bytes:
    """Serialise, encrypt and compress a file map."""
    serialised = json.dumps(dict(files), ensure_ascii=False, separators=(",", ":"))
    return gzip.compress(encrypt_text(serialised, secret=secret).encode("utf-8"))


def decode(data: bytes, *, secret: Optional[str] = None) -> Dict[str, str]:
    """
    Reverse :func:`encode`.

    Raises:
        CorruptBundleError: if decompression, decryption or parsing fails.
    """
    try:
        payload = gzip.decompress(data).decode("utf-8")
        files = json.loads(decrypt_text(payload, secret=secret))
    except (OSError, EOFError, zlib.error, UnicodeDecodeError, binascii.Error, ValueError) as exc:
        raise CorruptBundleError(f"Could not read or decrypt bundle: {exc}") from exc
    if not isinstance(files, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in files.items()
    ):
        raise CorruptBundleError("Bundle does not contain a file map")
    return files


def strip_comments(text: str) -> str:
    """Drop full-line comments from directive source text."""
    return "\n".join(
        line for line in text.split("\n") if not line.strip().startswith(COMMENT_MARKER)
    )


def encode_distributable(
    files: Mapping[str, str],
    *,
    secret: Optional[str] = None,
    source_extension: Optional[str] = None,
) -> bytes:
    """Encode ``files`` with comments stripped from every source entry."""
    extension = source_extension or get_settings().source_extension
    stripped = {
        name: strip_comments(content) if name.endswith(extension) else content
        for name, content in files.items()
    }
    return encode(stripped, secret=secret)


__all__ = [
    "encode",
    "decode",
    "encode_distributable",
    "strip_comments",
    "encrypt_text",
    "decrypt_text",
]
