# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Quoted string and exec-form array literals.
"""
import re
import string
from typing import List, Optional, Tuple

from ..MODELS.dockerfile_ast import Span
from ..MODELS.parse_errors import (
    InvalidCharacter,
    InvalidEscape,
    MalformedInstruction,
    UnexpectedEndOfInput,
    UnknownArrayElement,
    UnterminatedString,
)
from .scanner import LINE_END, Scanner

QUOTES = "\"'"

SIMPLE_ESCAPES = {
    "b": "\b",
    "t": "\t",
    "n": "\n",
    "f": "\f",
    "r": "\r",
    '"': '"',
    "'": "'",
    "\\": "\\",
}

UNICODE_ESCAPE_WIDTHS = {"u": 4, "U": 8}
_LOW_SURROGATE = re.compile(r"\\u(d[c-f][0-9a-f]{2})", re.IGNORECASE)

# NUL and UNIT SEPARATOR may never appear raw inside a literal
FORBIDDEN_CHARACTERS = "\x00\x1f"


def read_quoted(scanner: Scanner) -> str:
    """
    Reads a single- or double-quoted string at the cursor and returns its
    decoded value.

    Unknown escapes such as ``\\$`` yield the escaped character itself rather
    than failing, as permissive Dockerfile tooling does. An escaped line
    ending is dropped.

    :raises UnterminatedString: if the input or the line ends before the closing quote.
    :raises InvalidEscape: on a malformed ``\\u`` or ``\\U`` escape.
    :raises InvalidCharacter: on a raw NUL or UNIT SEPARATOR.
    """
    quote = scanner.peek()
    if not quote or quote not in QUOTES:
        raise scanner.error(MalformedInstruction, "expected a quoted string",
                            expected="quoted string")
    start = scanner.pos
    scanner.advance()
    text = scanner.text
    chars = []

    while True:
        if scanner.eof():
            raise scanner.error(UnterminatedString, "unterminated string literal",
                                offset=start, expected=quote)
        char = text[scanner.pos]

        if char == quote:
            scanner.advance()
            return "".join(chars)
        if char in FORBIDDEN_CHARACTERS:
            raise scanner.error(InvalidCharacter,
                                f"forbidden character U+{ord(char):04X} in string literal")
        if char == LINE_END:
            raise scanner.error(UnterminatedString, "line ending before closing quote",
                                offset=start, expected=quote)
        if char != "\\":
            chars.append(char)
            scanner.advance()
            continue

        length = scanner.continuation_length()
        if length:
            scanner.advance(length)
            continue

        escape_start = scanner.pos
        scanner.advance()
        if scanner.eof():
            raise scanner.error(UnterminatedString, "unterminated string literal",
                                offset=start, expected=quote)
        escaped = text[scanner.pos]

        if escaped in UNICODE_ESCAPE_WIDTHS:
            width = UNICODE_ESCAPE_WIDTHS[escaped]
            digits = text[scanner.pos + 1:scanner.pos + 1 + width]
            if len(digits) != width or any(d not in string.hexdigits for d in digits):
                raise scanner.error(InvalidEscape, f"\\{escaped} escape requires {width} hex digits",
                                    offset=escape_start)
            code_point = int(digits, 16)
            scanner.advance(1 + width)
            if 0xD800 <= code_point <= 0xDBFF:
                # high surrogate, must be followed by an escaped low surrogate
                low = _LOW_SURROGATE.match(text, scanner.pos)
                if low:
                    code_point = 0x10000 + ((code_point - 0xD800) << 10) + (int(low.group(1), 16) - 0xDC00)
                    scanner.advance(len(low.group(0)))
            if code_point > 0x10FFFF or 0xD800 <= code_point <= 0xDFFF:
                raise scanner.error(InvalidEscape, f"escape \\{escaped}{digits} is not a valid code point",
                                    offset=escape_start)
            chars.append(chr(code_point))
            continue

        if escaped in FORBIDDEN_CHARACTERS:
            raise scanner.error(InvalidCharacter,
                                f"forbidden character U+{ord(escaped):04X} in string literal")
        chars.append(SIMPLE_ESCAPES.get(escaped, escaped))
        scanner.advance()


def read_value(scanner: Scanner, stop: str = "") -> Tuple[str, bool]:
    """
    Reads a quoted literal or an unquoted token.

    :return: The value and whether it was quoted.
    """
    if scanner.peek() and scanner.peek() in QUOTES:
        return read_quoted(scanner), True
    return scanner.read_raw_token(stop), False


def read_string_array(scanner: Scanner, spans: Optional[List[Span]] = None) -> List[str]:
    """
    Reads a bracketed array of quoted strings (the exec form). Whitespace and
    line continuations may appear between tokens, a trailing comma is allowed
    and ``[]`` is an empty array.

    :param spans: If given, receives the source range of each element.
    """
    if scanner.peek() != "[":
        raise scanner.error(MalformedInstruction, "expected '['", expected="[")
    start = scanner.pos
    scanner.advance()
    elements = []

    scanner.skip_ws()
    if scanner.peek() == "]":
        scanner.advance()
        return elements

    while True:
        scanner.skip_ws()
        char = scanner.peek()
        if char and char in QUOTES:
            element_start = scanner.pos
            elements.append(read_quoted(scanner))
            if spans is not None:
                spans.append(Span(start=element_start, end=scanner.pos))
        elif char == "]" and elements:
            scanner.advance()
            return elements
        elif scanner.eof():
            raise scanner.error(UnexpectedEndOfInput, "unterminated array",
                                offset=start, expected="]")
        elif char == LINE_END:
            raise scanner.error(MalformedInstruction, "line ending inside array",
                                expected="quoted string")
        else:
            raise scanner.error(UnknownArrayElement, "array elements must be quoted strings",
                                expected="quoted string")

        scanner.skip_ws()
        char = scanner.peek()
        if char == ",":
            scanner.advance()
        elif char == "]":
            scanner.advance()
            return elements
        elif scanner.eof():
            raise scanner.error(UnexpectedEndOfInput, "unterminated array",
                                offset=start, expected="]")
        else:
            raise scanner.error(MalformedInstruction, "expected ',' or ']' in array",
                                expected="',' or ']'")
