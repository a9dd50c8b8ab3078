"""Tests for identity field validation used by setup."""

from folioauth.utils.validators import (
    validate_email_address,
    validate_setup_form,
    validate_username,
)

from tests.conftest import STRONG_PASSWORD


class TestValidateUsername:

    def test_valid_username(self):
        assert validate_username("site_admin-01") == []

    def test_missing_username(self):
        assert validate_username("") == ["Username is required"]
        assert validate_username(None) == ["Username is required"]

    def test_too_short(self):
        assert validate_username("ab") == ["Username must be at least 3 characters long"]

    def test_too_long(self):
        assert validate_username("a" * 51) == ["Username must not exceed 50 characters"]
        assert validate_username("a" * 50) == []

    def test_rejects_other_characters(self):
        errors = validate_username("bad name!")

        assert errors == ["Username can only contain letters, numbers, underscores, and hyphens"]


class TestValidateEmailAddress:

    def test_valid_email_is_normalized(self):
        normalized, error = validate_email_address("  Admin@Example.COM ")

        assert error is None
        assert normalized == "Admin@example.com"

    def test_missing_email(self):
        assert validate_email_address("") == (None, "Email is required")
        assert validate_email_address("   ") == (None, "Email is required")

    def test_invalid_email(self):
        assert validate_email_address("not-an-email") == (None, "Invalid email format")


class TestValidateSetupForm:

    def test_valid_form(self):
        errors = validate_setup_form("admin", "admin@example.com", STRONG_PASSWORD, STRONG_PASSWORD)

        assert errors == []

    def test_mismatched_confirmation(self):
        errors = validate_setup_form("admin", "admin@example.com", STRONG_PASSWORD, STRONG_PASSWORD + "x")

        assert errors == ["Passwords do not match"]

    def test_collects_every_problem_in_order(self):
        errors = validate_setup_form("", "nope", "short", "")

        assert errors[0] == "Username is required"
        assert errors[1] == "Invalid email format"
        assert errors[2] == "Password must be at least 15 characters long"
        assert errors[-1] == "Please confirm your password"

    def test_missing_password(self):
        errors = validate_setup_form("admin", "admin@example.com", "", "")

        assert errors == ["Password is required", "Please confirm your password"]
