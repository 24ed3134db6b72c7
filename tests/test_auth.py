import pytest

import auth
import db
from errors import ValidationError


def test_default_supervisor_must_change_password(temp_db):
    officer = auth.authenticate("admin", "admin123")
    assert officer is not None
    assert officer.role == "SUPERVISOR"
    assert db.is_force_password_change()

    auth.change_password("admin", "s3cret-pass")
    assert not db.is_force_password_change()
    assert auth.authenticate("admin", "admin123") is None
    assert auth.authenticate("admin", "s3cret-pass").username == "admin"


def test_create_officer(temp_db):
    auth.create_officer("kojo", "Kojo Mensah", "counting1")
    officer = auth.authenticate("kojo", "counting1")
    assert officer.name == "Kojo Mensah"
    assert officer.role == "OFFICER"
    assert auth.authenticate("nobody", "counting1") is None


@pytest.mark.parametrize(
    "username,name,password,role",
    [("", "X", "longenough", "OFFICER"), ("x", "X", "short", "OFFICER"), ("x", "X", "longenough", "BISHOP"),
     ("admin", "Dup", "longenough", "OFFICER")],
)
def test_create_officer_validation(temp_db, username, name, password, role):
    with pytest.raises(ValidationError):
        auth.create_officer(username, name, password, role)


def test_long_passwords_truncate_to_72_bytes():
    h = auth.hash_password("a" * 80)
    assert auth.verify_password("a" * 72 + "different", h)
