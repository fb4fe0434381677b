"""Tests for client-side form validation."""

import pytest

from taskboard.errors import ValidationFailure
from taskboard.session.validation import (
    validate_login,
    validate_password_change,
    validate_profile,
    validate_registration,
    validate_task_title,
)


def test_valid_forms_pass() -> None:
    """Test that well-formed input raises nothing."""
    validate_login("ada@example.com", "anything")
    validate_registration("Ada", "ada@example.com", "Secret1", "Secret1")
    validate_profile("Ada", None)
    validate_password_change("old", "Secret2", "Secret2")
    validate_task_title("Write report")


@pytest.mark.parametrize(
    "email",
    ["", "ada", "ada@example", "@example.com"],
)
def test_login_rejects_bad_email(email: str) -> None:
    """Test the email pattern."""
    with pytest.raises(ValidationFailure) as exc_info:
        validate_login(email, "pw")

    assert "email" in exc_info.value.field_errors


@pytest.mark.parametrize(
    ("password", "expected"),
    [
        ("", "Password is required"),
        ("Ab1", "Password must be at least 6 characters"),
        (
            "alllower1",
            "Password must contain at least one uppercase letter, "
            "one lowercase letter, and one number",
        ),
    ],
)
def test_registration_password_rules(password: str, expected: str) -> None:
    """Test password strength rules for new passwords."""
    with pytest.raises(ValidationFailure) as exc_info:
        validate_registration("Ada", "ada@example.com", password)

    assert exc_info.value.field_errors == {"password": expected}
    assert exc_info.value.message == expected


def test_registration_collects_every_field_error() -> None:
    """Test that all invalid fields are reported together."""
    with pytest.raises(ValidationFailure) as exc_info:
        validate_registration("", "nope", "Secret1", "Secret2")

    assert exc_info.value.field_errors == {
        "name": "Name is required",
        "email": "Email is invalid",
        "confirmPassword": "Passwords do not match",
    }


def test_profile_only_checks_changed_fields() -> None:
    """Test that omitted profile fields are not validated."""
    validate_profile(None, None)

    with pytest.raises(ValidationFailure) as exc_info:
        validate_profile("A", None)

    assert exc_info.value.field_errors == {"name": "Name must be at least 2 characters"}


def test_password_change_field_names() -> None:
    """Test that password change errors use the form's field names."""
    with pytest.raises(ValidationFailure) as exc_info:
        validate_password_change("", "short", "")

    assert exc_info.value.field_errors == {
        "currentPassword": "Current password is required",
        "newPassword": "Password must be at least 6 characters",
        "confirmPassword": "Please confirm your password",
    }


@pytest.mark.parametrize("title", [None, "", "   "])
def test_task_title_required(title: str | None) -> None:
    """Test that blank titles are rejected."""
    with pytest.raises(ValidationFailure, match="Title is required"):
        validate_task_title(title)
