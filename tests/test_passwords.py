# tests/test_passwords.py
# PURPOSE: bcrypt hashing helpers and the registration password policy.

from taskboard.auth import burn_password_check, hash_password, verify_password
from taskboard.models import password_is_strong


def test_hash_is_salted_and_verifiable():
    h1 = hash_password("Abcdef1!", rounds=4)
    h2 = hash_password("Abcdef1!", rounds=4)
    assert h1 != h2  # per-record salt
    assert h1.startswith("$2")
    assert "Abcdef1!" not in h1
    assert verify_password("Abcdef1!", h1)
    assert verify_password("Abcdef1!", h2)
    assert not verify_password("Abcdef1?", h1)


def test_work_factor_is_encoded_in_hash():
    assert hash_password("Abcdef1!", rounds=12).split("$")[2] == "12"


def test_verify_against_garbage_hash_is_false():
    assert verify_password("Abcdef1!", "not-a-bcrypt-hash") is False


def test_burn_password_check_runs_without_error():
    burn_password_check("anything")


def test_password_policy():
    assert password_is_strong("Abcdef1!")
    assert password_is_strong("Zz9#zzzz")
    assert not password_is_strong("Abcde1!")  # too short
    assert not password_is_strong("abcdef1!")  # no upper
    assert not password_is_strong("ABCDEF1!")  # no lower
    assert not password_is_strong("Abcdefg!")  # no digit
    assert not password_is_strong("Abcdefg1")  # no symbol
