from __future__ import annotations

import re
from typing import Any

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WS_RE = re.compile(r"[\r\n\t ]+")
_EMAIL_CHARS_RE = re.compile(r"[^A-Za-z0-9.!#$%&'*+/=?^_`{|}~@-]")
_EMAIL_LOCAL_RE = re.compile(r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~.-]+$")
_EMAIL_LABEL_RE = re.compile(r"^[A-Za-z0-9-]+$")


def strip_tags(text: str) -> str:
    text = _SCRIPT_STYLE_RE.sub("", text)
    return _TAG_RE.sub("", text)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return ""
    return str(value)


def sanitize_text_field(value: Any) -> str:
    """Single-line text: markup removed, line breaks and runs of whitespace collapsed."""
    text = strip_tags(_as_text(value))
    text = _CONTROL_RE.sub("", text)
    return _WS_RE.sub(" ", text).strip()


def sanitize_textarea_field(value: Any) -> str:
    """Multi-line text: like sanitize_text_field but line breaks survive."""
    text = _as_text(value).replace("\r\n", "\n").replace("\r", "\n")
    text = strip_tags(text)
    text = _CONTROL_RE.sub("", text)
    return text.strip()


def sanitize_email(value: Any) -> str:
    text = _as_text(value).strip()
    return _EMAIL_CHARS_RE.sub("", text)


def is_email(value: str) -> bool:
    email = value or ""
    if len(email) < 6 or email.count("@") != 1:
        return False
    local, domain = email.split("@", 1)
    if not local or not _EMAIL_LOCAL_RE.match(local):
        return False
    if ".." in domain or domain.strip(".-") != domain:
        return False
    labels = domain.split(".")
    if len(labels) < 2:
        return False
    for label in labels:
        if not label or label.startswith("-") or label.endswith("-"):
            return False
        if not _EMAIL_LABEL_RE.match(label):
            return False
    return True
