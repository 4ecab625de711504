"""
Credential and token utilities.

Pure functions for field encryption, input sanitization, bank identifier
checksums, token generation and password hashing. Nothing here keeps state
apart from the derived-key cache.
"""

import base64
import hashlib
import json
import logging
import re
import secrets
from functools import lru_cache
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from contracthub.core.config import settings
from contracthub.core.exceptions import EncryptionError, ValidationError

logger = logging.getLogger(__name__)

IV_LENGTH = 16
TAG_LENGTH = 16

# scrypt parameters for password hashes
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1

ROUTING_BLACKLIST = {"111111111", "123456789"}


@lru_cache(maxsize=8)
def _derive_key(secret: str) -> bytes:
    """AES-256 key from the configured secret, compatible with stored records"""
    return hashlib.scrypt(secret.encode("utf-8"), salt=b"salt", n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P, dklen=32)


def encrypt(text: str, secret: Optional[str] = None) -> str:
    """
    Encrypt a sensitive field before it is persisted.

    Uses AES-256-GCM with a fresh IV per call.

    Returns:
        JSON string with base64 ``content``, ``iv`` and ``tag``
    """
    if not text:
        raise ValidationError("Cannot encrypt empty or null data", field="text")

    key = _derive_key(secret or settings.ENCRYPTION_KEY)
    iv = secrets.token_bytes(IV_LENGTH)

    sealed = AESGCM(key).encrypt(iv, text.encode("utf-8"), None)
    content, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

    return json.dumps({
        "content": base64.b64encode(content).decode("ascii"),
        "iv": base64.b64encode(iv).decode("ascii"),
        "tag": base64.b64encode(tag).decode("ascii"),
    })


def decrypt(payload: str, secret: Optional[str] = None, allow_legacy: Optional[bool] = None) -> str:
    """
    Decrypt a field produced by :func:`encrypt`.

    Payloads that are not JSON were written by the old CBC scheme and are
    handed to :func:`legacy_decrypt` unless the fallback is disabled.
    """
    secret = secret or settings.ENCRYPTION_KEY
    if allow_legacy is None:
        allow_legacy = settings.ENCRYPTION_LEGACY_FALLBACK

    try:
        parsed = json.loads(payload)
    except (TypeError, ValueError):
        if allow_legacy:
            return legacy_decrypt(payload, secret)
        raise EncryptionError("Invalid encrypted data format")

    if not isinstance(parsed, dict) or not all(parsed.get(k) for k in ("content", "iv", "tag")):
        raise EncryptionError("Invalid encrypted data format")

    try:
        content = base64.b64decode(parsed["content"])
        iv = base64.b64decode(parsed["iv"])
        tag = base64.b64decode(parsed["tag"])
        plain = AESGCM(_derive_key(secret)).decrypt(iv, content + tag, None)
    except (InvalidTag, TypeError, ValueError) as e:
        logger.error(f"Decryption error: {type(e).__name__}")
        raise EncryptionError("Failed to decrypt data") from e

    return plain.decode("utf-8")


def legacy_decrypt(encrypted_text: str, secret: Optional[str] = None) -> str:
    """Decrypt the pre-GCM format: base64 AES-256-CBC with a key-derived IV"""
    secret = secret or settings.ENCRYPTION_KEY
    key = _derive_key(secret)
    iv = hashlib.sha256(secret.encode("utf-8")).digest()[:IV_LENGTH]

    try:
        raw = base64.b64decode(encrypted_text, validate=True)
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(raw) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plain = unpadder.update(padded) + unpadder.finalize()
        return plain.decode("utf-8")
    except ValueError as e:
        logger.error(f"Legacy decryption error: {type(e).__name__}")
        raise EncryptionError("Failed to decrypt data with legacy method") from e


def mask_account_number(account_number: Optional[str]) -> str:
    """Mask all but the last four characters, e.g. ****1234"""
    if not account_number or len(account_number) < 4:
        return "****"
    return "****" + account_number[-4:]


def sanitize_input(value: Optional[str], context: str = "text") -> str:
    """
    Neutralize user input for the given output context.

    Args:
        value: Raw input
        context: One of ``text``, ``html``, ``sql``, ``js``
    """
    if not value:
        return ""

    if context == "html":
        return (value
                .replace("&", "&amp;")
                .replace("<", "&lt;")
                .replace(">", "&gt;")
                .replace('"', "&quot;")
                .replace("'", "&#x27;")
                .replace("/", "&#x2F;"))

    if context == "sql":
        cleaned = value.replace("'", "''").replace(";", "").replace("--", "")
        return cleaned.replace("/*", "").replace("*/", "")

    if context == "js":
        cleaned = value.replace("\\", "\\\\").replace('"', '\\"').replace("'", "\\'")
        return re.sub(r"</?script", "", cleaned, flags=re.IGNORECASE)

    return re.sub(r"[<>\"'&;]", "", value)


def validate_routing_number(routing_number: str) -> bool:
    """
    Validate a US ABA routing number.

    Rejects well-known test numbers and Federal Reserve prefixes outside
    01-12 before applying the 3-7-1 weighted checksum.
    """
    cleaned = re.sub(r"[^0-9]", "", routing_number or "")

    if len(cleaned) != 9:
        return False

    if cleaned.startswith("00") or cleaned in ROUTING_BLACKLIST:
        return False

    if not 1 <= int(cleaned[:2]) <= 12:
        return False

    d = [int(c) for c in cleaned]
    checksum = (
        3 * (d[0] + d[3] + d[6]) +
        7 * (d[1] + d[4] + d[7]) +
        1 * (d[2] + d[5] + d[8])
    )
    return checksum % 10 == 0


def validate_sort_code(sort_code: str) -> bool:
    """UK sort codes are six digits, separators allowed"""
    cleaned = re.sub(r"[^0-9]", "", sort_code or "")
    return len(cleaned) == 6


def validate_iban(iban: str) -> bool:
    """Validate an IBAN with the ISO 7064 mod-97 check"""
    cleaned = re.sub(r"\s+", "", iban or "").upper()

    if not re.fullmatch(r"[A-Z]{2}[0-9]{2}[A-Z0-9]{1,30}", cleaned):
        return False

    rearranged = cleaned[4:] + cleaned[:4]
    # A=10, B=11, ...
    converted = "".join(str(ord(ch) - 55) if ch.isalpha() else ch for ch in rearranged)

    return int(converted) % 97 == 1


def generate_secure_token(nbytes: int = 32) -> str:
    """Random hex token, two characters per byte"""
    return secrets.token_hex(nbytes)


def hash_password(password: str) -> str:
    """Hash a password with scrypt and a random salt"""
    if not password:
        raise ValidationError("Password is required", field="password")

    salt = secrets.token_bytes(16)
    digest = hashlib.scrypt(password.encode("utf-8"), salt=salt, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P, dklen=64)
    return f"scrypt${SCRYPT_N}${SCRYPT_R}${SCRYPT_P}${salt.hex()}${digest.hex()}"


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Constant-time check of a password against :func:`hash_password` output"""
    if not password or not password_hash:
        return False

    try:
        scheme, n, r, p, salt_hex, digest_hex = password_hash.split("$")
    except ValueError:
        return False
    if scheme != "scrypt":
        return False

    expected = bytes.fromhex(digest_hex)
    candidate = hashlib.scrypt(
        password.encode("utf-8"),
        salt=bytes.fromhex(salt_hex),
        n=int(n), r=int(r), p=int(p),
        dklen=len(expected)
    )
    return secrets.compare_digest(candidate, expected)
