from pwdlib import PasswordHash


MIN_PASSWORD_LENGTH = 8

password_hash = PasswordHash.recommended()


def hash_password(raw_password: str) -> str:
    return password_hash.hash(raw_password)


def verify_password(raw_password: str, hashed_password: str) -> bool:
    return password_hash.verify(raw_password, hashed_password)


def verify_and_upgrade(raw_password: str, hashed_password: str) -> tuple[bool, str | None]:
    """Verify, and return a fresh hash when the stored one uses outdated parameters."""
    return password_hash.verify_and_update(raw_password, hashed_password)


def validate_new_password(raw_password: str) -> str:
    if len(raw_password or '') < MIN_PASSWORD_LENGTH:
        raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    return raw_password
