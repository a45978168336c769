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
Cursor over Dockerfile text, shared by every parser.

The scanner only ever moves forward, one bounded loop at a time, so arbitrarily
long continuation chains never grow the call stack.
"""
from typing import Optional, Tuple, Type

from ..MODELS.parse_errors import DockerfileParseError, MalformedInstruction

HSPACE = " \t"
LINE_END = "\n"


def normalize_line_endings(content: str) -> str:
    """Converts CRLF and lone CR line endings to LF."""
    return content.replace("\r\n", "\n").replace("\r", "\n")


class Scanner:
    """
    Position-tracking cursor over a line-ending-normalized Dockerfile.
    """
    def __init__(self, text: str):
        self.text = text
        self.length = len(text)
        self.pos = 0

    def eof(self) -> bool:
        return self.pos >= self.length

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        if index < self.length:
            return self.text[index]
        return ""

    def startswith(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.pos)

    def advance(self, count: int = 1):
        self.pos = min(self.pos + count, self.length)

    def at_line_end(self) -> bool:
        return self.pos >= self.length or self.text[self.pos] == LINE_END

    def location(self, offset: Optional[int] = None) -> Tuple[int, int]:
        """
        Returns the 1-based (line, column) of an offset, the cursor by default.
        """
        if offset is None:
            offset = self.pos
        line = self.text.count(LINE_END, 0, offset) + 1
        column = offset - (self.text.rfind(LINE_END, 0, offset) + 1) + 1
        return line, column

    def error(self, error_class: Type[DockerfileParseError], message: str,
              offset: Optional[int] = None, expected: Optional[str] = None) -> DockerfileParseError:
        """
        Builds an error located at ``offset`` (the cursor by default). The caller raises it.
        """
        if offset is None:
            offset = self.pos
        line, column = self.location(offset)
        return error_class(message, offset=offset, line=line, column=column, expected=expected)

    def skip_hspace(self) -> int:
        start = self.pos
        while self.pos < self.length and self.text[self.pos] in HSPACE:
            self.pos += 1
        return self.pos - start

    def continuation_length(self) -> int:
        """
        Length of the line continuation at the cursor: a backslash, optional
        horizontal whitespace and a line ending (or the end of input).
        Returns 0 if the cursor is not on a continuation.
        """
        if self.pos >= self.length or self.text[self.pos] != "\\":
            return 0
        end = self.pos + 1
        while end < self.length and self.text[end] in HSPACE:
            end += 1
        if end == self.length:
            return end - self.pos
        if self.text[end] == LINE_END:
            return end + 1 - self.pos
        return 0

    def rest_of_line(self) -> str:
        """Text from the cursor up to, not including, the next line ending."""
        end = self.text.find(LINE_END, self.pos)
        if end == -1:
            end = self.length
        return self.text[self.pos:end]

    def read_line(self) -> str:
        """Consumes the rest of the current line and its line ending."""
        line = self.rest_of_line()
        self.advance(len(line) + 1)
        return line

    def trimmed_end(self, start: int, end: Optional[int] = None) -> int:
        """
        Backs ``end`` (the cursor by default) off over trailing whitespace and
        line endings, never past ``start``.
        """
        if end is None:
            end = self.pos
        while end > start and self.text[end - 1] in HSPACE + LINE_END:
            end -= 1
        return end

    def read_while(self, allowed) -> str:
        start = self.pos
        while self.pos < self.length and self.text[self.pos] in allowed:
            self.pos += 1
        return self.text[start:self.pos]

    def skip_ignorable_lines(self):
        """
        Skips the blank and comment lines that may follow a line continuation.
        """
        while self.pos < self.length:
            stripped = self.rest_of_line().lstrip(HSPACE)
            if stripped and not stripped.startswith("#"):
                return
            self.read_line()

    def skip_ws(self) -> bool:
        """
        Skips horizontal whitespace and line continuations, including any blank
        or comment lines following a continuation.

        :return: True if anything was skipped.
        """
        start = self.pos
        while self.pos < self.length:
            if self.text[self.pos] in HSPACE:
                self.pos += 1
                continue
            length = self.continuation_length()
            if not length:
                break
            self.pos += length
            self.skip_ignorable_lines()
        return self.pos > start

    def expect_ws(self, after: str):
        if not self.skip_ws() and not self.at_line_end():
            raise self.error(MalformedInstruction, f"expected whitespace after {after}",
                             expected="whitespace")

    def finish_line(self, what: str):
        """
        Requires that nothing but whitespace remains on the logical line, then
        consumes the line ending.
        """
        self.skip_ws()
        if self.pos >= self.length:
            return
        if self.text[self.pos] != LINE_END:
            raise self.error(MalformedInstruction, f"unexpected content after {what}",
                             expected="end of line")
        self.pos += 1

    def read_raw_token(self, stop: str = "") -> str:
        """
        Reads an unquoted token up to whitespace, a line ending, a continuation
        or one of the ``stop`` characters. A backslash and the character it
        escapes are kept verbatim and never end the token.
        """
        start = self.pos
        while self.pos < self.length:
            char = self.text[self.pos]
            if char in HSPACE or char == LINE_END or char in stop:
                break
            if char == "\\":
                if self.continuation_length():
                    break
                self.advance(2)
                continue
            self.pos += 1
        return self.text[start:self.pos]
