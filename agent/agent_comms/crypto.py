"""
AES-256-CBC with a key derived from a shared secret (the agent name).

Wire layout of a ciphertext: 4-byte little-endian IV length, the IV, then
the PKCS7-padded CBC ciphertext. A fresh IV is drawn for every message.
"""

import os
import struct

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .constants import KDF_SALT, KDF_ITERATIONS, AES_KEY_BYTES
from .exceptions import PayloadError

_IV_BYTES = 16
_LEN_PREFIX = struct.Struct("<i")


def derive_key(secret):
    if not secret:
        raise ValueError("Encryption secret must not be empty")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA1(),
        length=AES_KEY_BYTES,
        salt=KDF_SALT,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(secret.encode("utf-8"))


def encrypt(plaintext, secret):
    """Encrypt a str with a key derived from `secret`. Returns raw bytes."""
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")
    iv = os.urandom(_IV_BYTES)

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(derive_key(secret)), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return _LEN_PREFIX.pack(len(iv)) + iv + ciphertext


def decrypt(data, secret):
    """Inverse of encrypt(). Raises PayloadError on a malformed message."""
    if len(data) < _LEN_PREFIX.size:
        raise PayloadError("Ciphertext too short")
    (iv_len,) = _LEN_PREFIX.unpack_from(data)
    start = _LEN_PREFIX.size
    if iv_len != _IV_BYTES or len(data) < start + iv_len:
        raise PayloadError(f"Bad IV length {iv_len}")
    iv = data[start:start + iv_len]
    ciphertext = data[start + iv_len:]

    try:
        decryptor = Cipher(algorithms.AES(derive_key(secret)), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return plaintext.decode("utf-8")
    except ValueError as e:
        raise PayloadError(f"Could not decrypt payload: {e}") from e
