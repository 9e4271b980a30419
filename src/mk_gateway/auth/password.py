"""bcrypt password hashing.

bcrypt only looks at the first 72 bytes of its input and bcrypt >= 5 raises
on longer input, so registration rejects such passwords up front and
verification treats them as a mismatch.
"""

import bcrypt

MAX_PASSWORD_BYTES = 72


def exceeds_bcrypt_limit(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    if exceeds_bcrypt_limit(plain):
        raise ValueError(f"Password longer than {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    if exceeds_bcrypt_limit(plain):
        return False
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
