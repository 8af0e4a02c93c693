"""
Parser for the datalist structured-data text format.

Turns compact, human-writable documents built from three bracket dialects,
line comments and quoted strings into Python lists, dicts and pair-lists.
"""

import logging
import os
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import IO
from typing import Any

from ._positions import LineIndex

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

type Position = int

# Hook type definitions - hooks can return custom types
ParseFloatHook = Callable[[str], Any] | None
ListHook = Callable[[list[Any]], Any] | None
MapHook = Callable[[dict[Any, Any]], Any] | None
PairsHook = Callable[["PairList"], Any] | None

# More permissive type for values that hooks may have transformed
DatalistValueLoose = Any

MAX_DEPTH = 256

# Profiling infrastructure - zero-cost when disabled
PROFILE_HOT_PATHS = __debug__ and "DATALIST_PROFILE" in os.environ


@dataclass
class HotPathStats:
    """Statistics for profiling hot paths during parsing."""

    function_name: str
    call_count: int = 0
    total_time_ns: int = 0
    bytes_processed: int = 0

    def record_call(self, duration_ns: int, size: int = 0) -> None:
        """Records one call with its timing and the bytes it handled."""
        self.call_count += 1
        self.total_time_ns += duration_ns
        self.bytes_processed += size


if PROFILE_HOT_PATHS:
    _hot_path_stats: dict[str, HotPathStats] = {}

    class ProfileContext:
        """Context manager for profiling hot paths."""

        def __init__(self, func_name: str, size: int = 0):
            self.func_name = func_name
            self.size = size
            self.start_time = 0

        def __enter__(self) -> "ProfileContext":
            self.start_time = time.perf_counter_ns()
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            duration = time.perf_counter_ns() - self.start_time
            stats = _hot_path_stats.get(self.func_name)
            if stats is None:
                stats = _hot_path_stats[self.func_name] = HotPathStats(
                    self.func_name
                )
            stats.record_call(duration, self.size)

    def get_hot_path_stats() -> dict[str, HotPathStats]:
        """Returns current profiling statistics."""
        return _hot_path_stats.copy()

    def clear_hot_path_stats() -> None:
        """Clears profiling statistics."""
        _hot_path_stats.clear()

else:

    class ProfileContext:  # type: ignore[no-redef]
        def __init__(self, func_name: str, size: int = 0) -> None:
            pass

        def __enter__(self) -> "ProfileContext":
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            pass

    def get_hot_path_stats() -> dict[str, HotPathStats]:
        return {}

    def clear_hot_path_stats() -> None:
        pass


class TokenKind(Enum):
    """Lexical classes produced by DatalistLexer."""

    BRACKET = "bracket"
    SYMBOL = "symbol"
    LAYER = "layer"
    STRING = "string"
    ESCAPED_STRING = "escaped_string"
    ATOM = "atom"
    EOF = "eof"


class DatalistDecodeError(ValueError):
    """
    Raised when a datalist document cannot be parsed.

    Carries the failing byte offset plus the line and column derived from
    it. Every failure aborts the whole parse, so a caller never sees a
    partially built value.
    """

    def __init__(self, msg: str, doc: bytes = b"", pos: Position = 0) -> None:
        if not isinstance(msg, str):
            raise TypeError("msg must be a string")
        if not isinstance(pos, int) or pos < 0:
            raise ValueError("pos must be a non-negative integer")

        self.msg = msg
        self.doc = doc
        self.pos = pos
        self.lineno, self.colno = LineIndex(doc).locate(pos)

        super().__init__(f"{msg} at line {self.lineno}, column {self.colno}")

    def __reduce__(self) -> tuple[Any, tuple[Any, ...]]:
        return self.__class__, (self.msg, self.doc, self.pos)


class PairList(list[tuple[Any, Any]]):
    """
    Ordered ``(key, value)`` entries from a keyed ``[ ]`` block.

    Unlike a dict, repeated keys are all kept, in document order.
    """

    def get_all(self, key: Any) -> list[Any]:
        """Returns every value stored under ``key``, in order."""
        return [value for entry_key, value in self if entry_key == key]

    def __repr__(self) -> str:
        return f"PairList({list.__repr__(self)})"


type DatalistValue = (
    str
    | bytes
    | int
    | float
    | bool
    | None
    | list[DatalistValue]
    | dict[str, DatalistValue]
    | PairList
)


@dataclass(frozen=True, slots=True)
class Token:
    """
    A classified lexical unit.

    ``start`` and ``end`` delimit the token inside the lexer's source
    buffer; for quoted strings the span excludes the quotes.
    """

    kind: TokenKind
    start: Position
    end: Position


_BACKSLASH = ord("\\")
_DASH = ord("-")
_STAR = ord("*")
_OPEN_PAREN = ord("(")
_SKIPPED = frozenset(b" \t\r\n,")
_NEWLINES = frozenset(b"\r\n")
_BRACKETS = frozenset(b"()[]{}")
_SYMBOLS = frozenset(b":=")
_LAYER_CHARS = frozenset(b"#*")
_QUOTES = frozenset(b"\"'")
_ATOM_STOP = frozenset(b" \t\r\n,#*()[]{}:=\"'")
_CLOSERS = {ord("("): ord(")"), ord("["): ord("]"), ord("{"): ord("}")}
_CLOSING = frozenset(_CLOSERS.values())


class DatalistLexer:
    """
    Tokenizes a datalist document held in memory.

    Skips whitespace, commas and ``--`` line comments between tokens and
    keeps only a cursor and the current token as state.
    """

    def __init__(self, data: bytes):
        self.data = data
        self.length = len(data)
        # NUL sentinel keeps the one-byte comment lookahead in bounds
        self.source = data + b"\0"
        self.pos = 0
        self.token = Token(TokenKind.EOF, 0, 0)
        self._line_index: LineIndex | None = None

    def span(self, token: Token) -> bytes:
        """Returns the raw bytes covered by ``token``."""
        return self.data[token.start : token.end]

    def layer_of(self, token: Token) -> int:
        """Returns the signed depth of a layer token, negative for ``*``."""
        depth = token.end - token.start - 1
        return -depth if self.source[token.start] == _STAR else depth

    def locate(self, pos: Position) -> tuple[int, int]:
        """Returns the 1-based ``(lineno, colno)`` of a byte offset."""
        if self._line_index is None:
            self._line_index = LineIndex(self.data)
        return self._line_index.locate(pos)

    def _emit(self, kind: TokenKind, start: Position, end: Position) -> Token:
        self.token = Token(kind, start, end)
        self.pos = end
        return self.token

    def skip_line_comment(self, pos: Position) -> Position:
        """Returns the offset of the line break ending a comment."""
        source = self.source
        while pos < self.length and source[pos] not in _NEWLINES:
            pos += 1
        return pos

    def scan_layer(self) -> Token:
        """Scans a run of identical ``#`` or ``*`` characters."""
        start = self.pos
        char = self.source[start]
        end = start + 1
        while end < self.length and self.source[end] == char:
            end += 1

        # A lone # or * is an ordinary atom
        kind = TokenKind.LAYER if end - start > 1 else TokenKind.ATOM
        return self._emit(kind, start, end)

    def scan_string(self) -> Token:
        """Scans a quoted string, flagging it when it holds escapes."""
        with ProfileContext("scan_string"):
            start = self.pos
            quote = self.source[start]
            kind = TokenKind.STRING
            pos = start + 1

            while pos < self.length:
                char = self.source[pos]
                if char == quote:
                    token = self._emit(kind, start + 1, pos)
                    self.pos = pos + 1
                    return token
                if char in _NEWLINES:
                    break
                if char == _BACKSLASH:
                    kind = TokenKind.ESCAPED_STRING
                    pos += 1
                pos += 1

            raise DatalistDecodeError("Unterminated string", self.data, start)

    def scan_atom(self) -> Token:
        """Scans a bare word: number, keyword, key or unquoted string."""
        start = self.pos
        end = start + 1
        while end < self.length and self.source[end] not in _ATOM_STOP:
            end += 1
        return self._emit(TokenKind.ATOM, start, end)

    def next_token(self) -> Token:
        """Advances to and returns the next token, EOF at the end."""
        with ProfileContext("next_token"):
            source = self.source
            pos = self.pos

            while pos < self.length:
                char = source[pos]
                if char == _DASH and source[pos + 1] == _DASH:
                    pos = self.skip_line_comment(pos)
                elif char in _SKIPPED:
                    pos += 1
                else:
                    break
            else:
                return self._emit(TokenKind.EOF, self.length, self.length)

            self.pos = pos
            if char in _BRACKETS:
                return self._emit(TokenKind.BRACKET, pos, pos + 1)
            elif char in _SYMBOLS:
                return self._emit(TokenKind.SYMBOL, pos, pos + 1)
            elif char in _LAYER_CHARS:
                return self.scan_layer()
            elif char in _QUOTES:
                return self.scan_string()
            else:
                return self.scan_atom()

    def __iter__(self) -> "DatalistLexer":
        return self

    def __next__(self) -> Token:
        token = self.next_token()
        if token.kind is TokenKind.EOF:
            raise StopIteration
        return token


_DIGITS = frozenset(b"0123456789")
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
_NUMBER_LEAD = frozenset(b"+-.0123456789")
_SIMPLE_ESCAPES = {
    ord("n"): ord("\n"),
    ord("r"): ord("\r"),
    ord("t"): ord("\t"),
    ord("a"): ord("\a"),
    ord("b"): ord("\b"),
    ord("v"): ord("\v"),
    ord("'"): ord("'"),
    ord('"'): ord('"'),
}
_KEYWORDS: dict[bytes, bool | None] = {
    b"true": True,
    b"yes": True,
    b"on": True,
    b"false": False,
    b"no": False,
    b"off": False,
    b"nil": None,
}

_UINT64 = 1 << 64
_INT64_SIGN = 1 << 63
# Longest decimal that can still fit in 64 unsigned bits
_UINT64_DIGITS = 20

_UNSIGNED_RE = re.compile(rb"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    rb"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    rb"|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_HEX_FLOAT_RE = re.compile(
    rb"[+-]?0x(?:[0-9a-f]+\.?[0-9a-f]*|\.[0-9a-f]+)(?:p[+-]?[0-9]+)?",
    re.IGNORECASE,
)


class _InvalidEscape(ValueError):
    """Offset of a bad backslash inside a string body."""

    def __init__(self, pos: Position) -> None:
        super().__init__(pos)
        self.pos = pos


def _hex_value(char: int) -> int:
    """Returns the value of a hex digit byte, or -1."""
    if char in _HEX_DIGITS:
        return int(chr(char), 16)
    return -1


def _process_escape_sequence(
    raw: bytes, i: int, out: bytearray
) -> Position:
    """Decode the escape whose backslash is at ``i``; return the next index."""
    size = len(raw)
    i += 1
    char = raw[i]

    if char in _DIGITS:
        value = char - 48
        if i + 1 < size and raw[i + 1] in _DIGITS:
            value = value * 10 + raw[i + 1] - 48
            i += 1
        if i + 1 < size and raw[i + 1] in _DIGITS:
            wider = value * 10 + raw[i + 1] - 48
            if wider <= 255:
                value = wider
                i += 1
        out.append(value)
        return i + 1

    if char in b"xX":
        if i + 2 >= size:
            raise _InvalidEscape(i - 1)
        value = _hex_value(raw[i + 1])
        if value < 0:
            raise _InvalidEscape(i - 1)
        # The second byte is always consumed; a 0 digit or a non-hex byte
        # contributes nothing, so \x40 decodes to 0x04
        low = _hex_value(raw[i + 2])
        if low > 0:
            value = value * 16 + low
        out.append(value)
        return i + 3

    if char in _SIMPLE_ESCAPES:
        out.append(_SIMPLE_ESCAPES[char])
        return i + 1

    raise _InvalidEscape(i - 1)


def _unescape(raw: bytes) -> bytes:
    if b"\\" not in raw:
        return raw

    with ProfileContext("decode_escapes", len(raw)):
        out = bytearray()
        i = 0
        size = len(raw)
        while i < size:
            if raw[i] == _BACKSLASH and i + 1 < size:
                i = _process_escape_sequence(raw, i, out)
            elif raw[i] == _BACKSLASH:
                raise _InvalidEscape(i)
            else:
                out.append(raw[i])
                i += 1
        return bytes(out)


def decode_escapes(raw: bytes) -> bytes:
    """
    Decodes the backslash escapes in the body of a quoted string.

    Supports ``\\n \\r \\t \\a \\b \\v \\' \\"``, decimal ``\\NNN`` byte
    values and ``\\xH[H]`` hex bytes. The result is never longer than the
    input, and input without a backslash is returned unchanged.

    Raises:
        DatalistDecodeError: on an unsupported or malformed escape; ``pos``
            is relative to ``raw``
    """
    try:
        return _unescape(raw)
    except _InvalidEscape as e:
        raise DatalistDecodeError(
            "Invalid escape sequence", raw, e.pos
        ) from None


def _wrap_int64(value: int) -> int:
    """Reinterprets the low 64 bits of ``value`` as a signed integer."""
    value &= _UINT64 - 1
    return value - _UINT64 if value >= _INT64_SIGN else value


def _parse_unsigned(raw: bytes) -> int:
    """Parses a signed decimal the way C ``strtoull`` does."""
    negative = raw[0] == _DASH
    digits = raw.lstrip(b"+-").lstrip(b"0")
    if len(digits) > _UINT64_DIGITS or (digits and int(digits) >= _UINT64):
        # Out of range saturates, whatever the sign
        return _wrap_int64(_UINT64 - 1)
    value = int(digits) if digits else 0
    return _wrap_int64(-value if negative else value)


def _coerce_number(
    raw: bytes, parse_float: ParseFloatHook
) -> Any:
    """Returns the numeric value of ``raw``, or None if it is not one."""
    if len(raw) == 1:
        return raw[0] - 48 if raw[0] in _DIGITS else None

    if (
        len(raw) >= 3
        and raw[0] == ord("0")
        and raw[1] in b"xX"
        and all(c in _HEX_DIGITS for c in raw[2:])
    ):
        return _wrap_int64(int(raw[2:], 16))

    if _UNSIGNED_RE.fullmatch(raw):
        return _parse_unsigned(raw)

    if _FLOAT_RE.fullmatch(raw):
        if parse_float:
            return parse_float(raw.decode("ascii"))
        return float(raw)

    if _HEX_FLOAT_RE.fullmatch(raw):
        return float.fromhex(raw.decode("ascii"))

    return None


def coerce_token(
    raw: bytes, kind: TokenKind, parse_float: ParseFloatHook = None
) -> bytes | int | float | bool | None | Any:
    """
    Turns the raw bytes of a scalar token into a value.

    Quoted strings stay strings. Anything else that reads as a whole
    number (decimal or ``0x`` hex) or float becomes one, atoms spelling a
    keyword become bool or None, and the rest is returned as raw bytes.
    """
    with ProfileContext("coerce_token", len(raw)):
        if kind is TokenKind.STRING:
            return raw
        if kind is TokenKind.ESCAPED_STRING:
            return decode_escapes(raw)

        if raw and raw[0] in _NUMBER_LEAD:
            number = _coerce_number(raw, parse_float)
            if number is not None:
                return number

        if kind is TokenKind.ATOM and raw in _KEYWORDS:
            return _KEYWORDS[raw]

        return raw


@dataclass(frozen=True)
class ParseConfig:
    """
    Configures datalist parsing behavior with immutable settings.

    Covers string decoding, the float hook, the container hooks applied to
    every finished list, map and pair-list, and the nesting limit.
    """

    decode_strings: bool = True
    encoding: str = "utf-8"
    errors: str = "surrogateescape"
    parse_float: ParseFloatHook = None
    list_hook: ListHook = None
    map_hook: MapHook = None
    pairs_hook: PairsHook = None
    max_depth: int = MAX_DEPTH

    def __post_init__(self) -> None:
        if not isinstance(self.decode_strings, bool):
            raise TypeError("decode_strings must be a boolean")
        if not isinstance(self.encoding, str):
            raise TypeError("encoding must be a string")
        if not isinstance(self.errors, str):
            raise TypeError("errors must be a string")
        for name in ("parse_float", "list_hook", "map_hook", "pairs_hook"):
            hook = getattr(self, name)
            if hook is not None and not callable(hook):
                raise TypeError(f"{name} must be callable")
        if isinstance(self.max_depth, bool) or not isinstance(
            self.max_depth, int
        ):
            raise TypeError("max_depth must be an integer")
        if self.max_depth < 1:
            raise ValueError("max_depth must be positive")


# Returned by parse_value when the current token closes the container
_CLOSE = object()


class DatalistParser:
    """
    Recursive descent parser over a DatalistLexer token stream.

    ``( )`` always holds positional values. ``[ ]`` and ``{ }`` hold
    ``key sep value`` entries when their first token is an atom followed
    by ``:`` or ``=``, and positional values otherwise. The document
    itself follows the same rule without brackets.
    """

    def __init__(self, lexer: DatalistLexer, config: ParseConfig):
        self.lexer = lexer
        self.config = config

    def _error(
        self, msg: str, token: Token | None = None
    ) -> DatalistDecodeError:
        token = token or self.lexer.token
        return DatalistDecodeError(msg, self.lexer.data, token.start)

    def _text(self, raw: bytes, token: Token) -> str | bytes:
        if not self.config.decode_strings:
            return raw
        try:
            return raw.decode(self.config.encoding, self.config.errors)
        except UnicodeDecodeError as e:
            raise self._error("Invalid string encoding", token) from e

    def _scalar(self, token: Token) -> DatalistValueLoose:
        raw = self.lexer.span(token)
        if token.kind is TokenKind.ESCAPED_STRING:
            try:
                value = _unescape(raw)
            except _InvalidEscape:
                raise self._error("Invalid escape sequence", token) from None
        else:
            value = coerce_token(raw, token.kind, self.config.parse_float)
        if isinstance(value, bytes):
            return self._text(value, token)
        return value

    def _probe_key(self) -> tuple[Token | None, bool]:
        """
        Reads ahead to tell keyed content from positional content.

        Returns the leading atom (or None) and whether a separator follows
        it. The lexer is left on the separator, on the token after the
        atom, or on the first non-atom token respectively.
        """
        token = self.lexer.next_token()
        if token.kind is not TokenKind.ATOM:
            return None, False
        return token, self.lexer.next_token().kind is TokenKind.SYMBOL

    def parse_value(self, close: int | None, depth: int) -> DatalistValueLoose:
        """Parses the value at the current token, or returns _CLOSE."""
        token = self.lexer.token
        kind = token.kind

        if kind is TokenKind.EOF:
            if close is None:
                return _CLOSE
            raise self._error("Unclosed bracket")
        elif kind is TokenKind.BRACKET:
            char = self.lexer.source[token.start]
            if char in _CLOSERS:
                return self.parse_container(char, depth + 1)
            if char != close:
                raise self._error("Invalid closing bracket")
            return _CLOSE
        elif kind is TokenKind.SYMBOL:
            raise self._error("Unexpected symbol")
        elif kind is TokenKind.LAYER:
            raise self._error("Invalid layer symbol")
        return self._scalar(token)

    def _expect_end(self, key: Token | None, close: int | None) -> None:
        """Checks that keyed content stopped at its closing token."""
        token = self.lexer.token
        if key is not None:
            raise self._error("Expecting value")
        if token.kind is TokenKind.EOF:
            if close is None:
                return
            raise self._error("Unclosed bracket")
        if (
            token.kind is TokenKind.BRACKET
            and self.lexer.source[token.start] in _CLOSING
        ):
            if self.lexer.source[token.start] == close:
                return
            raise self._error("Invalid closing bracket")
        raise self._error("Expecting key")

    def parse_container(self, opener: int | None, depth: int) -> Any:
        """
        Parses bracketed content, or the whole document when ``opener`` is
        None, starting just after the opening token.

        Entries are parsed inline so each nesting level costs two Python
        frames (this method and parse_value).
        """
        lexer = self.lexer
        if depth > self.config.max_depth:
            raise self._error("Nesting too deep")
        close = None if opener is None else _CLOSERS[opener]

        if opener == _OPEN_PAREN:
            lexer.next_token()
            key, keyed = None, False
        else:
            key, keyed = self._probe_key()

        if not keyed:
            values = [] if key is None else [self._scalar(key)]
            while (value := self.parse_value(close, depth)) is not _CLOSE:
                values.append(value)
                lexer.next_token()
            if opener is None and len(values) == 1:
                return values[0]
            if self.config.list_hook:
                return self.config.list_hook(values)
            return values

        separator = lexer.source[lexer.token.start]
        pairs: list[tuple[Any, Any]] = []
        while keyed and key is not None:
            name = self._text(lexer.span(key), key)
            lexer.next_token()
            value = self.parse_value(close, depth)
            if value is _CLOSE:
                raise self._error("Expecting value")
            pairs.append((name, value))

            key, keyed = self._probe_key()
            if (
                keyed
                and opener is None
                and lexer.source[lexer.token.start] != separator
            ):
                raise self._error("Inconsistent separator")
        self._expect_end(key, close)

        if opener == ord("[") or (opener is None and separator == ord(":")):
            pair_list = PairList(pairs)
            if self.config.pairs_hook:
                return self.config.pairs_hook(pair_list)
            return pair_list

        mapping = dict(pairs)
        if self.config.map_hook:
            return self.config.map_hook(mapping)
        return mapping

    def parse_document(self) -> DatalistValueLoose:
        """Parses the entire input as one bracket-less document."""
        with ProfileContext("parse_document", self.lexer.length):
            try:
                return self.parse_container(None, 0)
            except RecursionError:
                # Interpreter stack ran out before max_depth
                raise self._error("Nesting too deep") from None


def _as_bytes(s: Any, config: ParseConfig) -> bytes:
    if isinstance(s, str):
        try:
            return s.encode(config.encoding, config.errors)
        except UnicodeEncodeError as e:
            prefix = s[: e.start].encode(config.encoding, config.errors)
            raise DatalistDecodeError(
                "Invalid string encoding", prefix, len(prefix)
            ) from e
    if isinstance(s, bytes | bytearray | memoryview):
        return bytes(s)
    raise TypeError(
        "the datalist document must be str, bytes or bytearray, "
        f"not {type(s).__name__}"
    )


def tokenize(s: str | bytes, **kwargs: Any) -> list[Token]:
    """
    Splits a document into tokens, excluding the final EOF.

    Offsets refer to the UTF-8 (or ``encoding``) bytes of ``s``.
    """
    config = ParseConfig(**kwargs)
    return list(DatalistLexer(_as_bytes(s, config)))


def loads(s: str | bytes, **kwargs: Any) -> DatalistValueLoose:
    """
    Parses a datalist document into Python objects.

    Keyword arguments build a ParseConfig. Raises DatalistDecodeError with
    the failing line on malformed input.
    """
    config = ParseConfig(**kwargs)
    data = _as_bytes(s, config)

    parser = DatalistParser(DatalistLexer(data), config)
    try:
        return parser.parse_document()
    except DatalistDecodeError as e:
        logger.debug("datalist parse failed at line %d: %s", e.lineno, e.msg)
        raise


def parse(data: bytes) -> DatalistValueLoose:
    """Parses a datalist document with the default configuration."""
    return loads(data)


def load(fp: IO[str] | IO[bytes], **kwargs: Any) -> DatalistValueLoose:
    """
    Parses a datalist document from a text or binary file-like object.
    """
    if not hasattr(fp, "read"):
        raise TypeError("fp must have a read() method")

    return loads(fp.read(), **kwargs)


__all__ = [
    "MAX_DEPTH",
    "DatalistDecodeError",
    "DatalistLexer",
    "DatalistParser",
    "HotPathStats",
    "PairList",
    "ParseConfig",
    "Token",
    "TokenKind",
    "clear_hot_path_stats",
    "coerce_token",
    "decode_escapes",
    "get_hot_path_stats",
    "load",
    "loads",
    "parse",
    "tokenize",
]
