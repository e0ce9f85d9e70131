from libstore.config import settings
from libstore.validators import RegistrationValidator


def validate(**overrides):
    fields = dict(first="Ann", last="Lee", username="ann", password="pass", confirm="pass", type="user", admin_code=None)
    fields.update(overrides)
    return RegistrationValidator.validate_registration(**fields)


def test_valid_user_registration():
    assert validate() is None


def test_missing_fields():
    assert validate(first="  ") == "Please fill out all fields."
    assert validate(confirm="") == "Please fill out all fields."


def test_password_mismatch():
    assert validate(confirm="other") == "Passwords do not match."


def test_length_rules():
    assert validate(username="an") == "Username must be at least 3 characters."
    assert validate(password="abc", confirm="abc") == "Password must be at least 4 characters."


def test_admin_requires_invite_code():
    assert validate(type="admin") == "Invalid admin code."
    assert validate(type="admin", admin_code=settings.admin_invite_code) is None


def test_new_password_rules():
    assert RegistrationValidator.validate_new_password("abc", "abc") == "Password must be at least 4 characters."
    assert RegistrationValidator.validate_new_password("abcd", "abce") == "New passwords do not match."
    assert RegistrationValidator.validate_new_password("abcd", "abcd") is None


def test_username_cannot_contain_commas():
    assert validate(username="smith,j") == "Username cannot contain commas."
