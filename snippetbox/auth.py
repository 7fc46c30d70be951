"""bcrypt password hashing."""

import secrets

import bcrypt

DEFAULT_ROUNDS = 12

# bcrypt only reads this many bytes of the password
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return the 60-character bcrypt hash of ``password`` at cost ``rounds``."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check ``password`` against a stored hash; a malformed hash never matches."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("ascii"))
    except ValueError:
        return False


def dummy_hash(rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash of a throwaway secret, checked against when an account does not exist."""
    return hash_password(secrets.token_urlsafe(16), rounds=rounds)
