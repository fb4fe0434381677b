"""Client-side form validation, run before any request is sent."""

import re

from taskboard.errors import ValidationFailure

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
PASSWORD_STRENGTH = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6


def _check_name(name: str | None, errors: dict[str, str]) -> None:
    if not name or not name.strip():
        errors["name"] = "Name is required"
    elif len(name) < MIN_NAME_LENGTH:
        errors["name"] = f"Name must be at least {MIN_NAME_LENGTH} characters"


def _check_email(email: str | None, errors: dict[str, str]) -> None:
    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.search(email):
        errors["email"] = "Email is invalid"


def _check_new_password(
    password: str | None, field: str, errors: dict[str, str], label: str = "Password"
) -> None:
    if not password:
        errors[field] = f"{label} is required"
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors[field] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    elif not PASSWORD_STRENGTH.search(password):
        errors[field] = (
            "Password must contain at least one uppercase letter, "
            "one lowercase letter, and one number"
        )


def _check_confirmation(
    password: str | None, confirm: str | None, errors: dict[str, str]
) -> None:
    if confirm is None:
        return
    if not confirm:
        errors["confirmPassword"] = "Please confirm your password"
    elif confirm != password:
        errors["confirmPassword"] = "Passwords do not match"


def _raise_if_any(errors: dict[str, str]) -> None:
    if errors:
        raise ValidationFailure(field_errors=errors)


def validate_login(email: str, password: str) -> None:
    """Raises ValidationFailure when the login form is incomplete."""
    errors: dict[str, str] = {}
    _check_email(email, errors)
    if not password:
        errors["password"] = "Password is required"
    _raise_if_any(errors)


def validate_registration(
    name: str, email: str, password: str, confirm_password: str | None = None
) -> None:
    """Raises ValidationFailure for an invalid registration form."""
    errors: dict[str, str] = {}
    _check_name(name, errors)
    _check_email(email, errors)
    _check_new_password(password, "password", errors)
    _check_confirmation(password, confirm_password, errors)
    _raise_if_any(errors)


def validate_profile(name: str | None, email: str | None) -> None:
    """Validate only the profile fields being changed."""
    errors: dict[str, str] = {}
    if name is not None:
        _check_name(name, errors)
    if email is not None:
        _check_email(email, errors)
    _raise_if_any(errors)


def validate_password_change(
    current_password: str, new_password: str, confirm_password: str | None = None
) -> None:
    errors: dict[str, str] = {}
    if not current_password:
        errors["currentPassword"] = "Current password is required"
    _check_new_password(new_password, "newPassword", errors, label="New password")
    _check_confirmation(new_password, confirm_password, errors)
    _raise_if_any(errors)


def validate_task_title(title: str | None) -> None:
    if not title or not title.strip():
        raise ValidationFailure(field_errors={"title": "Title is required"})
