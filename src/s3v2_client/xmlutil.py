"""Token-level XML helpers for response deserializers.

Bodies are read through ``xml.dom.pulldom`` and exposed as a flat token
stream with one token of lookahead (``XmlCursor``). Deserializers are built
from the small primitives below, mostly ``deserialize_object``.
"""

import io
import xml.etree.ElementTree as ET
import xml.sax
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar
from xml.dom import pulldom

from .exceptions import S3ParseError

T = TypeVar("T")


class XmlParseError(S3ParseError):
    pass


@dataclass(frozen=True)
class StartDocument:
    pass


@dataclass(frozen=True)
class EndDocument:
    pass


@dataclass(frozen=True)
class StartElement:
    name: str
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class EndElement:
    name: str


@dataclass(frozen=True)
class Characters:
    data: str


@dataclass(frozen=True)
class Whitespace:
    data: str


@dataclass(frozen=True)
class Other:
    kind: str


Token = (
    StartDocument
    | EndDocument
    | StartElement
    | EndElement
    | Characters
    | Whitespace
    | Other
)


def _local_name(node) -> str:
    return node.localName or node.nodeName


def _text_token(data: str) -> Characters | Whitespace:
    if data.strip():
        return Characters(data)
    return Whitespace(data)


def tokenize(body: bytes) -> Iterator[Token]:
    """Lazily turns an XML document into tokens.

    Whitespace is kept (as ``Whitespace`` tokens) and adjacent character
    events are merged, so "a &amp; b" comes out as a single token.
    """
    events = pulldom.parse(io.BytesIO(body))
    text: list[str] = []
    try:
        for event, node in events:
            if event in (pulldom.CHARACTERS, pulldom.IGNORABLE_WHITESPACE):
                text.append(node.data)
                continue
            if text:
                yield _text_token("".join(text))
                text = []

            match event:
                case pulldom.START_DOCUMENT:
                    yield StartDocument()
                case pulldom.END_DOCUMENT:
                    yield EndDocument()
                    return
                case pulldom.START_ELEMENT:
                    attributes = {
                        _local_name(attr): attr.value
                        for attr in node.attributes.values()
                    }
                    yield StartElement(_local_name(node), attributes)
                case pulldom.END_ELEMENT:
                    yield EndElement(_local_name(node))
                case _:
                    yield Other(event)
    # expat reports unknown encodings as LookupError and bad bytes as ValueError
    except (xml.sax.SAXException, LookupError, ValueError) as e:
        raise XmlParseError(f"Malformed XML: {e}") from e

    if text:
        yield _text_token("".join(text))
    yield EndDocument()


_UNSET = object()


class XmlCursor:
    """One-token-lookahead cursor that skips whitespace tokens.

    A tokenizer error is raised from ``peek``/``advance`` and stays pending,
    so every later call raises it again.
    """

    def __init__(self, tokens: Iterable[Token]):
        self._tokens = iter(tokens)
        self._lookahead: Any = _UNSET
        self._error: XmlParseError | None = None

    @classmethod
    def from_bytes(cls, body: bytes) -> "XmlCursor":
        return cls(tokenize(body))

    def _pull(self) -> Token | None:
        if self._error is not None:
            raise self._error
        try:
            return next(self._tokens, None)
        except XmlParseError as e:
            self._error = e
            raise

    def peek(self) -> Token | None:
        while self._lookahead is _UNSET or isinstance(self._lookahead, Whitespace):
            self._lookahead = self._pull()
        return self._lookahead

    def advance(self) -> Token | None:
        token = self.peek()
        self._lookahead = _UNSET
        return token


def expect_start(cursor: XmlCursor, name: str) -> dict[str, str]:
    """Consumes a start tag called name and returns its attributes."""
    token = cursor.advance()
    if not isinstance(token, StartElement):
        raise XmlParseError(f"Expected StartElement {name} got {token!r}")
    if token.name != name:
        raise XmlParseError(f"START Expected {name} got {token.name}")
    return dict(token.attributes)


def expect_end(cursor: XmlCursor, name: str) -> None:
    token = cursor.advance()
    if not isinstance(token, EndElement):
        raise XmlParseError(f"Expected EndElement {name} got {token!r}")
    if token.name != name:
        raise XmlParseError(f"END Expected {name} got {token.name}")


def read_text(cursor: XmlCursor) -> str:
    """Text content of the current element; "" for an empty element."""
    if isinstance(cursor.peek(), EndElement):
        return ""
    token = cursor.advance()
    if isinstance(token, Characters):
        return token.data
    raise XmlParseError(f"Expected characters got {token!r}")


def read_tagged_text(cursor: XmlCursor, name: str) -> str:
    expect_start(cursor, name)
    value = read_text(cursor)
    expect_end(cursor, name)
    return value


def read_tagged_value(cursor: XmlCursor, name: str, convert: Callable[[str], T]) -> T:
    text = read_tagged_text(cursor, name)
    try:
        return convert(text)
    except ValueError as e:
        raise XmlParseError(f"Invalid value for {name}: {text!r}") from e


def parse_bool(text: str) -> bool:
    match text.strip():
        case "true":
            return True
        case "false":
            return False
    raise ValueError(f"not a boolean: {text!r}")


def peek_at_name(cursor: XmlCursor) -> str:
    token = cursor.peek()
    if isinstance(token, StartElement):
        return token.name
    return ""


def skip_subtree(cursor: XmlCursor) -> None:
    """Consumes the element at (or around) the cursor with all its children."""
    depth = 0
    while True:
        token = cursor.advance()
        match token:
            case None:
                return
            case StartElement():
                depth += 1
            case EndElement():
                if depth > 1:
                    depth -= 1
                else:
                    return


def advance_to_next_start(cursor: XmlCursor) -> None:
    """Drops tokens until a start tag, a parse error or the end of the stream."""
    while True:
        try:
            token = cursor.peek()
        except XmlParseError:
            return
        if token is None or isinstance(token, StartElement):
            return
        cursor.advance()


def deserialize_object(
    tag: str,
    cursor: XmlCursor,
    default: T,
    handler: Callable[[str, XmlCursor, T], None],
) -> T:
    """Reads <tag>...</tag>, calling handler for every child start tag.

    The handler receives the child's local name and must consume the child
    element (for unknown children, ``skip_subtree``); it updates ``default``
    in place, which is returned.
    """
    obj = default
    expect_start(cursor, tag)

    while True:
        token = cursor.peek()
        match token:
            case None | EndElement():
                break
            case StartElement(name=name):
                handler(name, cursor, obj)
            case _:
                cursor.advance()

    expect_end(cursor, tag)
    return obj


class _Response(Protocol):
    body: bytes


def parse_top_level(
    response: _Response,
    deserialize: Callable[[str, XmlCursor], T],
    default: T,
) -> T:
    """Runs deserialize on the root element of a buffered response.

    An empty body gives ``default`` without starting the XML parser.
    """
    if not response.body:
        return default

    cursor = XmlCursor.from_bytes(response.body)
    cursor.advance()  # start of document
    return deserialize(peek_at_name(cursor), cursor)


def write_text_element(parent: ET.Element, name: str, text: str) -> ET.Element:
    element = ET.SubElement(parent, name)
    element.text = text
    return element
