import bcrypt

BCRYPT_ROUNDS = 12


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    if not isinstance(plain_password, str) or not plain_password:
        raise ValueError("Password must be a non-empty string")
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def check_credentials(user, plain_password: str) -> tuple[bool, str | None]:
    """
    Returns (ok, reason). The reason is for logs and security events only,
    clients always get the same generic message.
    """
    if user is None:
        return False, "unknown_email"
    if not user.is_active:
        return False, "inactive_account"
    if not plain_password or not user.password_hash:
        return False, "missing_password"
    try:
        ok = bcrypt.checkpw(plain_password.encode("utf-8"), user.password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False, "invalid_hash"
    return (True, None) if ok else (False, "wrong_password")
