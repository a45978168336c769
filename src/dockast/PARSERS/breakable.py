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
Splicing of "breakable" instruction content.

Content ends at the first line ending that is not escaped by a trailing
backslash. A continuation removes the backslash, any whitespace after it and
the line ending, and inserts nothing: the next physical line keeps its leading
whitespace, except before the first text of the content. Blank lines following a continuation are skipped, and comment
lines are kept as separate segments instead of ending the instruction::

    RUN apt-get update && \\
        # refresh first
        apt-get install -y curl

gives the text ``apt-get update &&     apt-get install -y curl`` with the
comment ``# refresh first`` between the two text segments.
"""
from dataclasses import dataclass, field
from typing import List

from ..MODELS.dockerfile_ast import ShellComment, ShellSegment, ShellText
from .heredoc import BARE_OPENER, EMBEDDED_OPENER, HeredocOpener, read_heredoc_opener
from .scanner import HSPACE, LINE_END, Scanner

IN_CONTENT = "in_content"
AT_CONTINUATION = "at_continuation"
AT_COMMENT_LINE = "at_comment_line"

# Characters after which `<<` starts a new shell word
WORD_BREAKS = " \t\n;&|("


@dataclass
class Splice:
    """
    Result of reading breakable content.

    :param segments: Text and comment segments in source order.
    :param openers: Heredoc openers declared in the content, in order.
    :param terminated: Whether the content ended on a line ending (False at end of input).
    """
    segments: List[ShellSegment] = field(default_factory=list)
    openers: List[HeredocOpener] = field(default_factory=list)
    terminated: bool = False

    @property
    def delimiters(self) -> List[str]:
        return [o.delimiter for o in self.openers]

    @property
    def text(self) -> str:
        return "".join(s.text for s in self.segments if isinstance(s, ShellText))


def _flush(buffer: List[str], segments: List[ShellSegment]):
    if buffer:
        segments.append(ShellText(text="".join(buffer)))
        del buffer[:]


def _strip_trailing_space(segments: List[ShellSegment]):
    if segments and isinstance(segments[-1], ShellText):
        text = segments[-1].text.rstrip(HSPACE)
        if text:
            segments[-1] = ShellText(text=text)
        else:
            segments.pop()


def read_breakable(scanner: Scanner, detect_heredocs: bool = False) -> Splice:
    """
    Reads content from the cursor to the end of the logical line.

    :param scanner: Scanner positioned at the start of the content.
    :param detect_heredocs: Record unquoted ``<<DELIM`` openers; the caller
        reads their bodies once the logical line is over.
    :return: The spliced content.
    """
    splice = Splice()
    segments = splice.segments
    buffer = []
    text = scanner.text
    content_start = scanner.pos
    quote = None
    seen_text = False
    state = IN_CONTENT

    while not scanner.eof():
        if state == IN_CONTENT:
            char = text[scanner.pos]
            if char == LINE_END:
                scanner.advance()
                splice.terminated = True
                break

            if char == "\\":
                length = scanner.continuation_length()
                if length:
                    seen_text = seen_text or bool(buffer)
                    _flush(buffer, segments)
                    scanner.advance(length)
                    state = AT_CONTINUATION
                    continue
                if quote != "'":
                    buffer.append(text[scanner.pos:scanner.pos + 2])
                    scanner.advance(2)
                    continue

            if detect_heredocs:
                if quote:
                    if char == quote:
                        quote = None
                elif char in "\"'":
                    quote = char
                elif char == "<" and (scanner.pos == content_start or text[scanner.pos - 1] in WORD_BREAKS):
                    at_start = not buffer and not seen_text
                    opener = BARE_OPENER if at_start else EMBEDDED_OPENER
                    if opener.match(text, scanner.pos):
                        start = scanner.pos
                        splice.openers.append(read_heredoc_opener(scanner))
                        buffer.append(text[start:scanner.pos])
                        continue

            buffer.append(char)
            scanner.advance()

        elif state == AT_CONTINUATION:
            stripped = scanner.rest_of_line().lstrip(HSPACE)
            if not stripped:
                scanner.read_line()
            elif stripped.startswith("#"):
                state = AT_COMMENT_LINE
            else:
                if not seen_text:
                    # content continued straight after the keyword
                    scanner.skip_hspace()
                state = IN_CONTENT

        else:
            scanner.skip_hspace()
            segments.append(ShellComment(text=scanner.read_line()))
            state = AT_CONTINUATION

    _flush(buffer, segments)
    _strip_trailing_space(segments)
    return splice
