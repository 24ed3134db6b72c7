"""
auth.py
Officer accounts: bcrypt hashing, verify, login, change password.
"""

from __future__ import annotations

from datetime import datetime

import bcrypt

import db
from errors import ValidationError
from models import Officer, Role


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(secret, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def get_officer_row(username: str):
    return db.fetch_one("SELECT * FROM officers WHERE username = ?", (username,))


def authenticate(username: str, password: str) -> Officer | None:
    row = get_officer_row(username)
    if not row or not verify_password(password, row["password_hash"]):
        return None
    return Officer.from_row(row)


def create_officer(username: str, name: str, password: str, role: str = Role.OFFICER.value) -> int:
    username = username.strip()
    if not username or not name.strip():
        raise ValidationError("Username and name are required.")
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters.")
    if role not in {r.value for r in Role}:
        raise ValidationError(f"Unknown role: {role}")
    if get_officer_row(username):
        raise ValidationError(f"Username {username!r} is already taken.")
    return db.execute(
        "INSERT INTO officers(username, name, role, password_hash, created_at) VALUES(?,?,?,?,?)",
        (username, name.strip(), role, hash_password(password), datetime.utcnow().isoformat(timespec="seconds")),
    )


def change_password(username: str, new_password: str) -> None:
    db.execute(
        "UPDATE officers SET password_hash = ? WHERE username = ?",
        (hash_password(new_password), username),
    )
    db.clear_force_password_change()
