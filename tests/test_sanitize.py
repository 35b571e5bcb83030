from __future__ import annotations

import pytest

from forms_demo.runtime.sanitize import is_email, sanitize_email, sanitize_text_field, sanitize_textarea_field


@pytest.mark.parametrize(
    "email",
    ["ann@example.com", "first.last+tag@mail.example.org", "o'brien@example.ie", "x_y@sub-domain.example.co"],
)
def test_valid_emails(email):
    assert is_email(email)


@pytest.mark.parametrize(
    "email",
    [
        "not-an-email",
        "a@b.c",
        "@example.com",
        "ann@",
        "ann@localhost",
        "ann@-example.com",
        "ann@example-.com",
        "ann@.example.com",
        "ann smith@example.com",
        "ann@exa_mple.com",
    ],
)
def test_invalid_emails(email):
    assert not is_email(email)


def test_sanitize_email_strips_whitespace_and_odd_characters():
    assert sanitize_email("  ann(at)@example.com ") == "annat@example.com"


def test_text_field_collapses_to_one_line():
    assert sanitize_text_field("  Ann \r\n  <i>Lee</i>\x00 ") == "Ann Lee"


def test_text_field_drops_script_bodies():
    assert sanitize_text_field("<script>alert('x')</script>Ann") == "Ann"


def test_textarea_keeps_line_breaks():
    assert sanitize_textarea_field("one\r\ntwo\rthree <br>") == "one\ntwo\nthree"


def test_non_text_values_become_empty():
    assert sanitize_text_field(None) == ""
    assert sanitize_textarea_field(["a"]) == ""
    assert sanitize_text_field(12) == "12"
