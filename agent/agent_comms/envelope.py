"""
Envelope codec: serialize → (encrypt → base64 → wrap → serialize again).

    insecure:  JSON(payload)
    secure:    JSON({"Payload": base64(encrypt(JSON(payload), key))})
"""

import base64
import binascii
import json

from pydantic import BaseModel

from . import crypto
from .exceptions import PayloadError
from .models import EncryptedPayload, WireModel


def to_json(payload):
    if isinstance(payload, WireModel):
        return payload.to_json()
    if isinstance(payload, BaseModel):
        return payload.model_dump_json(by_alias=True)
    return json.dumps(payload)


def encrypt_encode(plaintext, key):
    return base64.b64encode(crypto.encrypt(plaintext, key)).decode("ascii")


def decode_decrypt(encoded, key):
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PayloadError(f"Payload is not base64: {e}") from e
    return crypto.decrypt(data, key)


def encode_payload(payload, key, secure):
    """JSON string ready to POST, wrapped in an EncryptedPayload when secure."""
    body = to_json(payload)
    if not secure:
        return body
    return EncryptedPayload(payload=encrypt_encode(body, key)).to_json()


def decode_payload(body, key, secure):
    """Inverse of encode_payload. Returns the inner JSON text."""
    if not secure:
        return body
    try:
        envelope = EncryptedPayload.model_validate_json(body)
    except ValueError as e:
        raise PayloadError(f"Not an encrypted envelope: {e}") from e
    return decode_decrypt(envelope.payload, key)
