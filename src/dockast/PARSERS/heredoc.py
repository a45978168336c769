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
Here-document openers and bodies.

``<<-DELIM`` declares the delimiter ``DELIM`` with tab stripping, as in the
shell: its terminator line may be indented with tabs. The same rule applies
whether the opener starts the instruction or follows a command.
"""
import re
import string
from typing import List, NamedTuple

from ..MODELS.dockerfile_ast import Heredoc, Span
from ..MODELS.parse_errors import MalformedInstruction, UnterminatedHeredoc
from .scanner import LINE_END, Scanner

DELIMITER_CHARS = frozenset(string.ascii_letters + string.digits + "_-./")

BARE_OPENER = re.compile(r"<<(?!<)-?[ \t]*[A-Za-z0-9_\-./]+")
EMBEDDED_OPENER = re.compile(r"<<(?!<)-?[ \t]*[A-Za-z_][A-Za-z0-9_\-./]*")


class HeredocOpener(NamedTuple):
    delimiter: str
    strip_tabs: bool = False


def read_heredoc_opener(scanner: Scanner) -> HeredocOpener:
    """
    Reads ``<<DELIMITER`` or ``<<-DELIMITER`` at the cursor.
    Whitespace is allowed between ``<<`` and the delimiter.
    """
    if not scanner.startswith("<<"):
        raise scanner.error(MalformedInstruction, "expected '<<'", expected="<<")
    scanner.advance(2)
    strip_tabs = scanner.peek() == "-"
    if strip_tabs:
        scanner.advance()
    scanner.skip_hspace()
    delimiter = scanner.read_while(DELIMITER_CHARS)
    if not delimiter:
        raise scanner.error(MalformedInstruction, "heredoc is missing its delimiter",
                            expected="heredoc delimiter")
    return HeredocOpener(delimiter, strip_tabs)


def read_heredoc_body(scanner: Scanner, delimiter: str, strip_tabs: bool = False) -> str:
    """
    Consumes lines verbatim until one equals ``delimiter`` exactly (after
    leading tabs when ``strip_tabs`` is set). The terminator line is consumed
    but not included in the returned body.

    :raises UnterminatedHeredoc: if the input ends first.
    """
    text = scanner.text
    start = scanner.pos
    while scanner.pos < scanner.length:
        end = text.find(LINE_END, scanner.pos)
        line_end = scanner.length if end == -1 else end
        line = text[scanner.pos:line_end]
        if strip_tabs:
            line = line.lstrip("\t")
        if line == delimiter:
            body = text[start:scanner.pos]
            scanner.pos = line_end
            scanner.advance()
            return body
        if end == -1:
            break
        scanner.pos = end + 1
    raise scanner.error(UnterminatedHeredoc, f"heredoc not terminated by '{delimiter}'",
                        offset=start, expected=delimiter)


def read_heredoc_bodies(scanner: Scanner, openers: List[HeredocOpener]) -> List[Heredoc]:
    """Reads one body per opener, in the order the openers were declared."""
    heredocs = []
    for delimiter, strip_tabs in openers:
        start = scanner.pos
        body = read_heredoc_body(scanner, delimiter, strip_tabs)
        heredocs.append(Heredoc(delimiter=delimiter, body=body, strip_tabs=strip_tabs,
                                span=Span(start=start, end=start + len(body))))
    return heredocs
