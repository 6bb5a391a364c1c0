"""Password hashing, PIN hashing and random token/password generation."""

import hashlib
import re
import secrets

import bcrypt

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

PIN_PATTERN = re.compile(r"^\d{8}$")

# 32 random bytes, hex encoded (64 chars).
SESSION_TOKEN_BYTES = 32

PASSWORD_UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
PASSWORD_LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
PASSWORD_DIGITS = "0123456789"
PASSWORD_SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
PASSWORD_MIN_GENERATED_LEN = 4
PASSWORD_MAX_GENERATED_LEN = 256


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def is_valid_pin(pin: object) -> bool:
    """True only for a string of exactly 8 ASCII digits."""
    return isinstance(pin, str) and PIN_PATTERN.fullmatch(pin) is not None


def hash_pin(pin: str) -> str:
    """
    Unsalted SHA-256 hex digest of a PIN.

    Unsalted on purpose: registry login finds the user by an equality lookup on
    this value, and ADMIN_PIN_HASH is configured as the same digest.
    """
    return hashlib.sha256(pin.encode("utf-8")).hexdigest()


def hash_token(token: str) -> str:
    """SHA-256 of an opaque session token, for server-side bindings."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_session_token() -> str:
    """Cryptographically random opaque token."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def generate_secure_password(length: int = 32) -> str:
    """
    Random password with at least one uppercase, lowercase, digit and symbol.

    Raises ValueError when length is outside [4, 256].
    """
    if length < PASSWORD_MIN_GENERATED_LEN or length > PASSWORD_MAX_GENERATED_LEN:
        raise ValueError(
            f"Password length must be between {PASSWORD_MIN_GENERATED_LEN} "
            f"and {PASSWORD_MAX_GENERATED_LEN}"
        )
    rng = secrets.SystemRandom()
    alphabet = PASSWORD_UPPERCASE + PASSWORD_LOWERCASE + PASSWORD_DIGITS + PASSWORD_SYMBOLS
    chars = [
        rng.choice(PASSWORD_UPPERCASE),
        rng.choice(PASSWORD_LOWERCASE),
        rng.choice(PASSWORD_DIGITS),
        rng.choice(PASSWORD_SYMBOLS),
    ]
    chars.extend(rng.choice(alphabet) for _ in range(length - len(chars)))
    rng.shuffle(chars)
    return "".join(chars)
