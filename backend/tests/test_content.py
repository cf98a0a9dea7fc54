from __future__ import annotations

import pytest

from qrlink.core.content import (
    ContentError,
    build_content,
    encodable_content,
    format_contact,
    format_email,
    format_phone,
    format_wifi,
    normalize_url,
    validate_url,
)


def test_wifi_fields_render_wifi_payload():
    content = build_content(
        "wifi",
        fields={"ssid": "Home", "password": "abc123", "security": "WPA", "hidden": False},
    )

    assert content == "WIFI:T:WPA;S:Home;P:abc123;H:false;;"


def test_wifi_security_defaults_to_wpa_and_accepts_string_hidden():
    assert format_wifi("Cafe", "", None, "true") == "WIFI:T:WPA;S:Cafe;P:;H:true;;"


def test_email_uses_question_mark_then_ampersand():
    assert format_email("a@b.co") == "mailto:a@b.co"
    assert format_email("a@b.co", subject="Hi there") == "mailto:a@b.co?subject=Hi%20there"
    assert format_email("a@b.co", body="x&y") == "mailto:a@b.co?body=x%26y"
    assert (
        format_email("a@b.co", subject="Hello!", body="See (attached)")
        == "mailto:a@b.co?subject=Hello!&body=See%20(attached)"
    )


def test_phone_payload():
    assert format_phone("+1234567890") == "tel:+1234567890"


def test_contact_keeps_empty_fields_as_blank_lines():
    card = format_contact(name="Ada Lovelace", email="ada@example.com")

    assert card.split("\n") == [
        "BEGIN:VCARD",
        "VERSION:3.0",
        "FN:Ada Lovelace",
        "ORG:",
        "TEL:",
        "EMAIL:ada@example.com",
        "URL:",
        "END:VCARD",
    ]


def test_url_is_stored_as_entered_but_encoded_with_scheme():
    stored = build_content("url", "example.com")

    assert stored == "example.com"
    assert encodable_content("url", stored) == "https://example.com"
    assert normalize_url("http://example.com") == "http://example.com"


def test_validate_url():
    assert validate_url("https://example.com/path")
    assert not validate_url("https://")
    assert not validate_url("not a url")
    assert validate_url("https://example.com:8443/path")


@pytest.mark.parametrize(
    "url",
    [
        "https://WIFI:T:WPA;S:Home;P:abc;H:false;;",
        "https://tel:+3112345",
        "https://exa mple.com",
        "https://example.com:port",
    ],
)
def test_validate_url_rejects_payloads_that_are_not_hosts(url):
    assert not validate_url(url)


@pytest.mark.parametrize(
    "content_type, content, fields, message",
    [
        ("url", "   ", None, "Content is required"),
        ("url", "http://", None, "valid URL"),
        ("email", None, {"subject": "hi"}, "Email address is required"),
        ("wifi", None, {"password": "x"}, "SSID"),
        ("barcode", "x", None, "Unsupported content type"),
    ],
)
def test_build_content_rejects_bad_input(content_type, content, fields, message):
    with pytest.raises(ContentError) as excinfo:
        build_content(content_type, content, fields)

    assert message in str(excinfo.value)


def test_structured_type_accepts_preformatted_content():
    assert build_content("phone", "tel:+44123") == "tel:+44123"
