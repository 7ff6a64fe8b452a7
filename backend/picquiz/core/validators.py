"""
Input validation and sanitization utilities.
"""

import re
import html
from typing import Optional


class CredentialValidator:
    """
    Username/password rule shared by registration and login.

    Both fields use the same rule: at least MIN_LENGTH characters drawn from
    English letters, digits and the Hebrew alphabet.
    """

    MIN_LENGTH = 5
    MAX_LENGTH = 64

    ALLOWED_PATTERN = re.compile(r"^[a-zA-Z0-9א-ת]+$")

    @classmethod
    def is_valid(cls, value: Optional[str]) -> bool:
        if not value:
            return False
        if len(value) < cls.MIN_LENGTH or len(value) > cls.MAX_LENGTH:
            return False
        return cls.ALLOWED_PATTERN.match(value) is not None


class StringSanitizer:
    """
    String sanitization utilities for user-supplied free text.
    """

    # Control characters to strip (except newlines, tabs, carriage returns)
    CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

    MAX_REPORT_LENGTH = 2000

    @classmethod
    def sanitize_string(cls, value: str, allow_html: bool = False) -> str:
        """
        Strip control characters and surrounding whitespace, then escape HTML.

        Args:
            value: String to sanitize
            allow_html: Whether to leave HTML unescaped (default: False)
        """
        value = cls.CONTROL_CHARS_PATTERN.sub("", value)
        value = value.strip()
        if not allow_html:
            value = html.escape(value)
        return value

    @classmethod
    def sanitize_report(cls, message: str) -> str:
        """
        Sanitize an error report before it is embedded into an HTML email.

        Truncates before escaping so that entities are never cut in half.
        """
        message = cls.sanitize_string(message, allow_html=True)
        if len(message) > cls.MAX_REPORT_LENGTH:
            message = message[: cls.MAX_REPORT_LENGTH]
        return html.escape(message)
