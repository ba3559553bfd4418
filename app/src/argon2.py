from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError

passwordHasher = PasswordHasher(encoding="utf-8")


def makePassword(password: str) -> str:
    """Hash an admin password with Argon2 for storage in `admin.password`."""
    return passwordHasher.hash(password)


def checkPassword(password: str, passwordHash: str) -> bool:
    """
    Verify a sign-in password against the stored Argon2 hash.

    Args:
        password (str): Plain-text password submitted at sign-in.
        passwordHash (str): Hash stored for the admin.

    Returns:
        bool: True if the password matches, False for a mismatch or a
        malformed hash.
    """
    try:
        return passwordHasher.verify(passwordHash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False
