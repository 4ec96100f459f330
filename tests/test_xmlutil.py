import xml.etree.ElementTree as ET

import pytest

from s3v2_client import xmlutil
from s3v2_client.transport import BufferedHttpResponse
from s3v2_client.xmlutil import (
    Characters,
    EndDocument,
    EndElement,
    StartDocument,
    StartElement,
    XmlCursor,
    XmlParseError,
    advance_to_next_start,
    deserialize_object,
    expect_end,
    expect_start,
    parse_bool,
    parse_top_level,
    peek_at_name,
    read_tagged_text,
    read_tagged_value,
    read_text,
    skip_subtree,
    tokenize,
    write_text_element,
)


def cursor_for(xml: str) -> XmlCursor:
    cursor = XmlCursor.from_bytes(xml.encode())
    advance_to_next_start(cursor)
    return cursor


def test_tokenize_merges_text_and_keeps_structure():
    tokens = list(tokenize(b'<a x="1">b &amp; c<d/></a>'))

    assert tokens == [
        StartDocument(),
        StartElement("a", {"x": "1"}),
        Characters("b & c"),
        StartElement("d"),
        EndElement("d"),
        EndElement("a"),
        EndDocument(),
    ]


def test_tokenize_uses_local_names():
    body = b'<R xmlns="http://s3.amazonaws.com/doc/2006-03-01/"><K>v</K></R>'
    names = [t.name for t in tokenize(body) if isinstance(t, StartElement)]
    assert names == ["R", "K"]


def test_malformed_xml_raises_and_stays_failed():
    cursor = XmlCursor.from_bytes(b"<a><b></a>")
    with pytest.raises(XmlParseError):
        while cursor.advance() is not None:
            pass

    with pytest.raises(XmlParseError):
        cursor.peek()


def test_cursor_skips_whitespace():
    cursor = cursor_for("<a>\n   <b>x</b>\n</a>")
    assert cursor.advance() == StartElement("a")
    assert cursor.peek() == StartElement("b")
    assert peek_at_name(cursor) == "b"


def test_expect_start_wrong_name():
    cursor = cursor_for("<Bar/>")
    with pytest.raises(XmlParseError, match="START Expected Foo got Bar"):
        expect_start(cursor, "Foo")


def test_expect_start_wrong_token():
    cursor = cursor_for("<a>text</a>")
    cursor.advance()
    with pytest.raises(XmlParseError, match="Expected StartElement Foo"):
        expect_start(cursor, "Foo")


def test_expect_end_wrong_name():
    cursor = cursor_for("<a><b/></a>")
    cursor.advance()
    cursor.advance()
    with pytest.raises(XmlParseError, match="END Expected a got b"):
        expect_end(cursor, "a")


def test_read_text_of_empty_element():
    cursor = cursor_for("<a></a>")
    expect_start(cursor, "a")
    assert read_text(cursor) == ""
    expect_end(cursor, "a")


def test_read_tagged_value():
    cursor = cursor_for("<Size>42</Size>")
    assert read_tagged_value(cursor, "Size", int) == 42

    cursor = cursor_for("<Size>big</Size>")
    with pytest.raises(XmlParseError, match="Invalid value for Size"):
        read_tagged_value(cursor, "Size", int)


def test_parse_bool():
    assert parse_bool("true") is True
    assert parse_bool(" false ") is False
    with pytest.raises(ValueError):
        parse_bool("yes")


def test_skip_subtree_consumes_nested_children():
    cursor = cursor_for("<r><skip><x><y/></x></skip><keep>v</keep></r>")
    expect_start(cursor, "r")

    skip_subtree(cursor)

    assert read_tagged_text(cursor, "keep") == "v"
    expect_end(cursor, "r")


def test_deserialize_object_empty_parent_returns_default():
    def handler(name, cursor, obj):
        raise AssertionError("no children expected")

    default = {"children": []}
    cursor = cursor_for("<Parent></Parent>")

    assert deserialize_object("Parent", cursor, default, handler) is default


def test_deserialize_object_calls_handler_per_child():
    def handler(name, cursor, obj):
        if name == "Item":
            obj.append(read_tagged_text(cursor, name))
        else:
            skip_subtree(cursor)

    cursor = cursor_for(
        "<List>\n <Item>a</Item>\n <Other><Deep/></Other>\n <Item>b</Item>\n</List>"
    )

    assert deserialize_object("List", cursor, [], handler) == ["a", "b"]


def test_parse_top_level_empty_body_does_not_parse(monkeypatch):
    def fail(body):
        raise AssertionError("tokenize must not be called")

    monkeypatch.setattr(xmlutil, "tokenize", fail)
    response = BufferedHttpResponse(200, body=b"")

    assert parse_top_level(response, lambda tag, cursor: "parsed", "default") == (
        "default"
    )


def test_parse_top_level_passes_root_name():
    response = BufferedHttpResponse(
        200, body=b'<?xml version="1.0"?>\n<Root><A>1</A></Root>'
    )
    seen = []

    def deserialize(tag, cursor):
        seen.append(tag)
        return deserialize_object(tag, cursor, {}, lambda n, c, o: skip_subtree(c))

    assert parse_top_level(response, deserialize, None) == {}
    assert seen == ["Root"]


def test_write_text_element():
    root = ET.Element("Root")
    write_text_element(root, "Name", "value")
    assert ET.tostring(root) == b"<Root><Name>value</Name></Root>"
