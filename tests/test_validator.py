"""
Unit tests for form validation helpers.
"""

from snippetbox.validator import (
    EMAIL_RX,
    Validator,
    allowed_value,
    matches,
    max_chars,
    min_chars,
    not_blank,
)


class TestPredicates:
    """Test the individual check functions."""

    def test_not_blank(self):
        assert not_blank("x")
        assert not not_blank("")
        assert not not_blank("  \t\n")

    def test_max_chars_counts_characters_not_bytes(self):
        assert max_chars("a" * 100, 100)
        assert not max_chars("a" * 101, 100)
        assert max_chars("é" * 100, 100)

    def test_min_chars(self):
        assert min_chars("12345678", 8)
        assert not min_chars("1234567", 8)

    def test_allowed_value(self):
        assert allowed_value(7, 1, 7, 365)
        assert not allowed_value(2, 1, 7, 365)

    def test_email_pattern(self):
        assert matches("alice@example.com", EMAIL_RX)
        assert matches("a.b+tag@sub.example.co.uk", EMAIL_RX)
        assert not matches("not-an-email", EMAIL_RX)
        assert not matches("alice@", EMAIL_RX)
        assert not matches("@example.com", EMAIL_RX)


class TestValidator:
    """Test error accumulation."""

    def test_new_validator_is_valid(self):
        assert Validator().valid()

    def test_check_field_records_failures_only(self):
        v = Validator()
        v.check_field(True, "title", "never recorded")
        v.check_field(False, "content", "This field cannot be blank")

        assert not v.valid()
        assert v.field_errors == {"content": ["This field cannot be blank"]}

    def test_first_error_keeps_insertion_order(self):
        v = Validator()
        v.add_field_error("email", "first")
        v.add_field_error("email", "second")

        assert v.first_error("email") == "first"
        assert v.first_error("name") is None

    def test_non_field_errors(self):
        v = Validator()
        v.add_non_field_error("Email or password is incorrect")

        assert not v.valid()
        assert v.non_field_errors == ["Email or password is incorrect"]
