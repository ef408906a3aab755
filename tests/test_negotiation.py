import pytest

from tonic.negotiation import (
    body_allowed_for_status,
    bracket_map,
    content_disposition,
    escape_quotes,
    filter_flags,
    negotiate_format,
    parse_accept,
)

MIME_JSON = "application/json"
MIME_XML = "application/xml"
MIME_HTML = "text/html"

BROWSER_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9;q=0.8"


def test_parse_accept_drops_parameters():
    assert parse_accept(BROWSER_ACCEPT) == [
        "text/html",
        "application/xhtml+xml",
        "application/xml",
    ]


def test_parse_accept_empty_header():
    assert parse_accept("") == []


def test_parse_accept_trims_and_skips_blank_parts():
    assert parse_accept(" text/html , ,application/json ") == ["text/html", "application/json"]


def test_negotiate_without_offers_raises():
    with pytest.raises(ValueError):
        negotiate_format([], [])


def test_negotiate_without_accept_takes_first_offer():
    assert negotiate_format([], [MIME_JSON, MIME_XML]) == MIME_JSON
    assert negotiate_format([], [MIME_HTML, MIME_JSON]) == MIME_HTML


def test_negotiate_with_accept_header():
    accepted = parse_accept(BROWSER_ACCEPT)
    assert negotiate_format(accepted, [MIME_JSON, MIME_XML]) == MIME_XML
    assert negotiate_format(accepted, [MIME_XML, MIME_HTML]) == MIME_HTML
    assert negotiate_format(accepted, [MIME_JSON]) == ""


@pytest.mark.parametrize(
    "offer",
    ["*/*", "text/*", "application/*", MIME_JSON, MIME_XML, MIME_HTML],
)
def test_negotiate_full_wildcard_accepts_everything(offer):
    assert negotiate_format(["*/*"], [offer]) == offer


@pytest.mark.parametrize(
    "offer, expected",
    [
        ("*/*", "*/*"),
        ("text/*", "text/*"),
        ("application/*", ""),
        (MIME_JSON, ""),
        (MIME_XML, ""),
        (MIME_HTML, MIME_HTML),
    ],
)
def test_negotiate_partial_wildcard(offer, expected):
    assert negotiate_format(["text/*"], [offer]) == expected


def test_negotiate_custom_accepted():
    accepted = [MIME_JSON, MIME_XML]
    assert negotiate_format(accepted, [MIME_JSON, MIME_XML]) == MIME_JSON
    assert negotiate_format(accepted, [MIME_XML, MIME_HTML]) == MIME_XML
    assert negotiate_format(accepted, [MIME_JSON]) == MIME_JSON


def test_negotiate_longer_accept_does_not_match_prefix_offer():
    assert negotiate_format(["image/tiff-fx"], ["image/tiff"]) == ""


def test_filter_flags():
    assert filter_flags("application/json; charset=utf-8") == "application/json"
    assert filter_flags("text/plain charset") == "text/plain"
    assert filter_flags("text/csv") == "text/csv"


@pytest.mark.parametrize(
    "status, allowed",
    [(100, False), (102, False), (199, False), (204, False), (304, False),
     (200, True), (201, True), (500, True)],
)
def test_body_allowed_for_status(status, allowed):
    assert body_allowed_for_status(status) is allowed


def test_escape_quotes():
    assert escape_quotes('a"b\\c') == 'a\\"b\\\\c'


def test_content_disposition_plain():
    assert content_disposition("new_filename.go") == 'attachment; filename="new_filename.go"'


def test_content_disposition_escapes_malicious_name():
    malicious = 'tampering_field.sh"; \\"; dummy=.go'
    escaped = 'tampering_field.sh\\"; \\\\\\"; dummy=.go'
    assert content_disposition(malicious) == f'attachment; filename="{escaped}"'


def test_content_disposition_utf8():
    assert (
        content_disposition("new🧡_filename.go")
        == "attachment; filename*=UTF-8''new%F0%9F%A7%A1_filename.go"
    )


def test_content_disposition_utf8_encodes_spaces_as_plus():
    assert content_disposition("a é.txt") == "attachment; filename*=UTF-8''a+%C3%A9.txt"


QUERY = {
    "both": ["GET"],
    "id": ["main", "omit"],
    "array[]": ["first", "second"],
    "ids[a]": ["hi"],
    "ids[b]": ["3.14"],
}


def test_bracket_map_found():
    result, found = bracket_map(QUERY, "ids")
    assert found is True
    assert result == {"a": "hi", "b": "3.14"}


@pytest.mark.parametrize("key", ["nokey", "both", "array"])
def test_bracket_map_missing(key):
    result, found = bracket_map(QUERY, key)
    assert found is False
    assert result == {}


def test_bracket_map_form_names():
    form = {"names[a]": ["thinkerou"], "names[b]": ["tianou"], "foo": ["bar"]}
    result, found = bracket_map(form, "names")
    assert found is True
    assert result == {"a": "thinkerou", "b": "tianou"}


def test_bracket_map_ignores_key_without_prefix():
    result, found = bracket_map({"[a]": ["x"]}, "")
    assert found is False
    assert result == {}