import base64
import datetime
import hashlib
import hmac
import os
import secrets
import threading
import uuid

import bcrypt
import jwt
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.config import settings

PBKDF2_ITERATIONS = 100_000
ENCRYPTION_SALT = b"baby-control-salt"
IV_BYTES = 12


def new_uuid() -> str:
    """UUID v4 como string (compatible con columnas UUID-as-text)."""
    return str(uuid.uuid4())


def random_token(nbytes: int) -> str:
    """Token aleatorio en hexadecimal (verificación, reset, setup)."""
    return secrets.token_hex(nbytes)


# =====================================================================
# CONTRASEÑAS (bcrypt)
# =====================================================================

def _pw_bytes(plain: str) -> bytes:
    # bcrypt solo usa los primeros 72 bytes (y bcrypt>=5 rechaza más)
    return plain.encode("utf-8")[:72]


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(_pw_bytes(plain), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    # hashed es bcrypt (formato $2b$...) compatible con bcrypt.checkpw
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(_pw_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        return False


def secrets_match(given: str | None, expected: str | None) -> bool:
    """Comparación en tiempo constante para PINs y contraseñas en claro."""
    if given is None or expected is None:
        return False
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


# =====================================================================
# TOKENS JWT
# =====================================================================

def create_access_token(claims: dict, expires_seconds: int | None = None) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    payload = {
        **{k: v for k, v in claims.items() if v is not None},
        "iat": now,
        "exp": now + datetime.timedelta(seconds=expires_seconds or settings.auth_life),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])


# Tokens invalidados por logout: token -> exp (epoch). Vive en memoria del proceso.
_blacklist: dict[str, float] = {}
_blacklist_lock = threading.Lock()


def invalidate_token(token: str) -> None:
    try:
        exp = jwt.decode(token, options={"verify_signature": False}).get("exp")
    except jwt.PyJWTError:
        exp = None
    if exp is None:
        exp = (datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(seconds=settings.account_auth_life)).timestamp()
    with _blacklist_lock:
        _blacklist[token] = float(exp)


def is_token_invalidated(token: str) -> bool:
    now = datetime.datetime.now(datetime.timezone.utc).timestamp()
    with _blacklist_lock:
        for expired in [t for t, exp in _blacklist.items() if exp < now]:
            del _blacklist[expired]
        return token in _blacklist


def clear_token_blacklist() -> None:
    with _blacklist_lock:
        _blacklist.clear()


# =====================================================================
# CIFRADO DE CONFIGURACIÓN (AES-256-GCM, formato "iv:salt:tag:ciphertext")
# =====================================================================

def _encryption_key() -> bytes:
    return hashlib.pbkdf2_hmac("sha256", settings.enc_hash.encode("utf-8"), ENCRYPTION_SALT, PBKDF2_ITERATIONS, dklen=32)


def encrypt(plain: str) -> str:
    """Cifra un secreto de configuración. La sal viaja como dato autenticado."""
    iv = os.urandom(IV_BYTES)
    salt = os.urandom(16)
    sealed = AESGCM(_encryption_key()).encrypt(iv, plain.encode("utf-8"), salt)
    ciphertext, tag = sealed[:-16], sealed[-16:]
    parts = (iv, salt, tag, ciphertext)
    return ":".join(base64.b64encode(p).decode() for p in parts)


def decrypt(encrypted: str) -> str:
    try:
        iv, salt, tag, ciphertext = (base64.b64decode(p) for p in encrypted.split(":"))
        plain = AESGCM(_encryption_key()).decrypt(iv, ciphertext + tag, salt)
    except (ValueError, InvalidTag) as exc:
        raise ValueError("Unable to decrypt value") from exc
    return plain.decode("utf-8")


def is_encrypted(value: str | None) -> bool:
    if not value:
        return False
    parts = value.split(":")
    return len(parts) == 4 and all(parts)
