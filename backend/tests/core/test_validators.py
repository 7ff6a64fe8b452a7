"""
Tests for credential validation and free-text sanitization.
"""
import pytest
from pydantic import ValidationError

from picquiz.core.validators import CredentialValidator, StringSanitizer
from picquiz.schemas.auth import UserRegister


class TestCredentialValidator:
    @pytest.mark.parametrize("value", ["abcde", "Player1", "שלום123", "12345"])
    def test_valid(self, value):
        assert CredentialValidator.is_valid(value)

    @pytest.mark.parametrize(
        "value",
        ["", None, "abcd", "with space", "semi;colon", "emoji😀ab", "a" * 65, "héllo"],
    )
    def test_invalid(self, value):
        assert not CredentialValidator.is_valid(value)


class TestUserRegisterSchema:
    def test_accepts_valid_credentials(self):
        data = UserRegister(username="שחקן1", password="secret1")
        assert data.username == "שחקן1"

    def test_rejects_bad_charset(self):
        with pytest.raises(ValidationError):
            UserRegister(username="bad name", password="secret1")

    def test_rejects_short_password(self):
        with pytest.raises(ValidationError):
            UserRegister(username="player1", password="1234")


class TestStringSanitizer:
    def test_escapes_html(self):
        assert StringSanitizer.sanitize_string("<b>hi</b>") == "&lt;b&gt;hi&lt;/b&gt;"

    def test_strips_control_characters(self):
        assert StringSanitizer.sanitize_string(" a\x00b\x07c ") == "abc"

    def test_keeps_newlines(self):
        assert StringSanitizer.sanitize_string("a\nb", allow_html=True) == "a\nb"

    def test_report_is_truncated_before_escaping(self):
        message = "x" * 1999 + "<script>"
        sanitized = StringSanitizer.sanitize_report(message)
        assert sanitized == "x" * 1999 + "&lt;"
