from typing import Optional

from libstore.config import settings

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 4


class RegistrationValidator:
    """Input rules applied before an account is created or its password changed.

    Each check returns an error message, or ``None`` when the input is fine.
    """

    @staticmethod
    def validate_registration(first: str, last: str, username: str, password: str, confirm: str,
                              type: str = "user", admin_code: Optional[str] = None) -> Optional[str]:
        fields = [(first or "").strip(), (last or "").strip(), (username or "").strip(), password or "", confirm or ""]
        if any(not f for f in fields):
            return "Please fill out all fields."
        if password != confirm:
            return "Passwords do not match."
        if len(username.strip()) < MIN_USERNAME_LENGTH:
            return f"Username must be at least {MIN_USERNAME_LENGTH} characters."
        if "," in username:
            return "Username cannot contain commas."
        if len(password) < MIN_PASSWORD_LENGTH:
            return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
        if (type or "").lower() == "admin" and admin_code != settings.admin_invite_code:
            return "Invalid admin code."
        return None

    @staticmethod
    def validate_new_password(new: str, confirm: str) -> Optional[str]:
        if len(new or "") < MIN_PASSWORD_LENGTH:
            return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
        if new != confirm:
            return "New passwords do not match."
        return None
