"""
Pattern-based content-type classification for spreadsheet cells.
"""

import re
from enum import Enum

NUMBER_PATTERN = re.compile(r"[0-9]+(\.[0-9]+)?")
DATE_PATTERN = re.compile(r"[0-9]{1,2}[/\-][0-9]{1,2}[/\-][0-9]{2,4}")
EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
URL_PATTERN = re.compile(r"https?://\S+")
CAPS_PATTERN = re.compile(r"^[A-Z\s]+$")

HEADER_MAX_LENGTH = 50


class ContentType(Enum):
    """Content-type tags, in classification priority order."""
    NUMBER = "Number"
    DATE = "Date"
    EMAIL = "Email"
    URL = "URL"
    HEADER = "Header"
    TEXT = "Text"


def is_numeric(text: str) -> bool:
    return NUMBER_PATTERN.fullmatch(text.strip()) is not None


def is_date(text: str) -> bool:
    return DATE_PATTERN.search(text) is not None


def is_email(text: str) -> bool:
    return EMAIL_PATTERN.search(text) is not None


def is_url(text: str) -> bool:
    return URL_PATTERN.search(text) is not None


def is_header(text: str) -> bool:
    return len(text) < HEADER_MAX_LENGTH and (
        text.upper() == text or CAPS_PATTERN.match(text) is not None
    )


_RULES = (
    (ContentType.NUMBER, is_numeric),
    (ContentType.DATE, is_date),
    (ContentType.EMAIL, is_email),
    (ContentType.URL, is_url),
    (ContentType.HEADER, is_header),
)


def classify_content(text: str) -> ContentType:
    """Classify a line of text; the first matching rule wins."""
    for content_type, matches in _RULES:
        if matches(text):
            return content_type
    return ContentType.TEXT
