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
Per-instruction parsers and the dispatcher that routes a keyword to them.

Every parser is called with the cursor just past the keyword and its
horizontal whitespace, and consumes its instruction through the line ending
(or the last heredoc terminator).
"""
import string
from typing import Callable, Dict, List, Optional, Union

from ..MODELS.dockerfile_ast import (
    Arg,
    Cmd,
    Copy,
    CopyHeredoc,
    CopyStandard,
    Entrypoint,
    Env,
    ExecForm,
    Flag,
    From,
    HeredocForm,
    KeyValue,
    Label,
    Misc,
    QuotedValue,
    RawValue,
    Run,
    ShellForm,
    Span,
    Step,
)
from ..MODELS.parse_errors import MalformedInstruction, UnterminatedHeredoc
from .breakable import read_breakable
from .heredoc import read_heredoc_bodies, read_heredoc_opener
from .literals import QUOTES, read_quoted, read_string_array, read_value
from .scanner import HSPACE, LINE_END, Scanner

LETTERS = frozenset(string.ascii_letters)
IMAGE_CHARS = frozenset(string.ascii_letters + string.digits + "_.:/@${}-")
ALIAS_CHARS = frozenset(string.ascii_letters + string.digits + "_-")
NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_")

# keywords routed to the catch-all that may still declare heredocs
HEREDOC_INSTRUCTIONS = frozenset({"ADD"})

CommandForm = Union[ExecForm, ShellForm, HeredocForm]


def read_flags(scanner: Scanner) -> List[Flag]:
    """
    Reads the ``--name=value`` flags preceding an instruction's arguments,
    plus the whitespace after them.
    """
    flags = []
    while scanner.startswith("--"):
        start = scanner.pos
        scanner.advance(2)
        name = scanner.read_while(LETTERS)
        if not name:
            raise scanner.error(MalformedInstruction, "flag is missing its name",
                                expected="flag name")
        value = None
        if scanner.peek() == "=":
            scanner.advance()
            value, _ = read_value(scanner)
        span = Span(start=start, end=scanner.pos)
        if not scanner.skip_ws() and not scanner.at_line_end():
            raise scanner.error(MalformedInstruction, f"unexpected character in flag --{name}",
                                expected="whitespace")
        flags.append(Flag(name=name, value=value, span=span))
    return flags


def parse_from(scanner: Scanner) -> From:
    scanner.skip_ws()
    flags = read_flags(scanner)
    image = scanner.read_while(IMAGE_CHARS)
    if not image:
        raise scanner.error(MalformedInstruction, "FROM requires an image", expected="image reference")

    alias = None
    if scanner.skip_ws() and not scanner.at_line_end():
        keyword_start = scanner.pos
        keyword = scanner.read_while(LETTERS)
        if keyword.upper() != "AS":
            raise scanner.error(MalformedInstruction, "expected AS after the FROM image",
                                offset=keyword_start, expected="AS")
        scanner.expect_ws("AS")
        alias = scanner.read_while(ALIAS_CHARS)
        if not alias:
            raise scanner.error(MalformedInstruction, "AS requires a stage name", expected="stage name")

    scanner.finish_line("FROM")
    return From(image=image, flags=flags, alias=alias)


def parse_arg(scanner: Scanner) -> Arg:
    scanner.skip_ws()
    name_start = scanner.pos
    name = scanner.read_while(NAME_CHARS)
    if not name or not name[0].isalpha():
        raise scanner.error(MalformedInstruction, "ARG requires a name", offset=name_start,
                            expected="argument name")

    default = None
    if scanner.peek() == "=":
        scanner.advance()
        value, quoted = read_value(scanner)
        default = QuotedValue(value=value) if quoted else RawValue(value=value)

    scanner.finish_line("ARG")
    return Arg(name=name, default=default)


def _read_label_key(scanner: Scanner) -> str:
    if scanner.peek() and scanner.peek() in QUOTES:
        return read_quoted(scanner)
    return scanner.read_raw_token(stop="=")


def _read_env_key(scanner: Scanner) -> str:
    return scanner.read_while(NAME_CHARS)


def _read_pairs(scanner: Scanner, keyword: str, read_key: Callable[[Scanner], str]) -> List[KeyValue]:
    """
    Reads LABEL/ENV arguments. One token of lookahead picks the form: an ``=``
    right after the first key selects ``key=value`` pairs, anything else the
    legacy ``key value`` form whose value runs to the end of the line.

    A legacy value is a single quoted literal only when nothing follows it;
    ``ENV MSG "hello" world`` keeps ``"hello" world`` as written.
    """
    scanner.skip_ws()
    key_start = scanner.pos
    key = read_key(scanner)
    if not key:
        raise scanner.error(MalformedInstruction, f"{keyword} requires at least one key/value pair",
                            offset=key_start, expected="key")

    if scanner.peek() != "=":
        if not scanner.skip_ws() or scanner.at_line_end():
            raise scanner.error(MalformedInstruction, f"{keyword} {key} is missing a value",
                                expected="value")
        value_start = scanner.pos
        value = None
        if scanner.peek() in QUOTES:
            value = read_quoted(scanner)
            value_end = scanner.pos
            scanner.skip_ws()
            if scanner.at_line_end():
                scanner.finish_line(keyword)
            else:
                scanner.pos = value_start
                value = None
        if value is None:
            value = read_breakable(scanner).text.strip(HSPACE)
            value_end = scanner.trimmed_end(value_start)
        return [KeyValue(key=key, value=value, span=Span(start=key_start, end=value_end))]

    pairs = []
    while True:
        scanner.advance()
        value, _ = read_value(scanner)
        pairs.append(KeyValue(key=key, value=value, span=Span(start=key_start, end=scanner.pos)))
        if not scanner.skip_ws() or scanner.at_line_end():
            break
        key_start = scanner.pos
        key = read_key(scanner)
        if not key or scanner.peek() != "=":
            raise scanner.error(MalformedInstruction, f"expected key=value in {keyword}",
                                offset=key_start, expected="key=value")
    scanner.finish_line(keyword)
    return pairs


def parse_label(scanner: Scanner) -> Label:
    return Label(pairs=_read_pairs(scanner, "LABEL", _read_label_key))


def parse_env(scanner: Scanner) -> Env:
    return Env(pairs=_read_pairs(scanner, "ENV", _read_env_key))


def parse_copy(scanner: Scanner) -> Copy:
    scanner.skip_ws()
    flags = read_flags(scanner)

    if scanner.startswith("<<"):
        openers = []
        while scanner.startswith("<<"):
            openers.append(read_heredoc_opener(scanner))
            if not scanner.skip_ws():
                raise scanner.error(MalformedInstruction, "expected whitespace after heredoc delimiter",
                                    expected="whitespace")
        if scanner.at_line_end():
            raise scanner.error(MalformedInstruction, "COPY requires a destination",
                                expected="destination")
        dest_start = scanner.pos
        dest, _ = read_value(scanner)
        dest_span = Span(start=dest_start, end=scanner.pos)
        scanner.skip_hspace()
        if scanner.eof():
            raise scanner.error(UnterminatedHeredoc, "COPY heredoc has no body", expected="line ending")
        if scanner.peek() != LINE_END:
            raise scanner.error(MalformedInstruction, "unexpected content after COPY destination",
                                expected="end of line")
        scanner.advance()
        sources = read_heredoc_bodies(scanner, openers)
        return Copy(flags=flags, form=CopyHeredoc(sources=sources, dest=dest, dest_span=dest_span))

    start = scanner.pos
    spans = []
    if scanner.peek() == "[":
        paths = read_string_array(scanner, spans)
        scanner.finish_line("COPY")
    else:
        paths = []
        while not scanner.at_line_end():
            path_start = scanner.pos
            path, _ = read_value(scanner)
            paths.append(path)
            spans.append(Span(start=path_start, end=scanner.pos))
            if not scanner.skip_ws():
                break
        scanner.finish_line("COPY")

    if len(paths) < 2:
        raise scanner.error(MalformedInstruction, "COPY requires at least one source and a destination",
                            offset=start, expected="source and destination")
    return Copy(flags=flags, form=CopyStandard(sources=paths[:-1], dest=paths[-1],
                                               source_spans=spans[:-1], dest_span=spans[-1]))


def _read_command(scanner: Scanner, keyword: str, allow_heredoc: bool = False) -> CommandForm:
    """
    Reads the exec or shell form shared by RUN, CMD and ENTRYPOINT. A ``[``
    after the whitespace always means the exec form; a malformed array is an
    error, never shell text.
    """
    content_start = scanner.pos
    scanner.skip_ws()
    if scanner.peek() == "[":
        arguments = read_string_array(scanner)
        scanner.finish_line(keyword)
        return ExecForm(arguments=arguments)
    if scanner.at_line_end():
        raise scanner.error(MalformedInstruction, f"{keyword} requires a command", expected="command")

    # shell content keeps the comment lines skip_ws would drop
    scanner.pos = content_start
    scanner.skip_hspace()
    splice = read_breakable(scanner, detect_heredocs=allow_heredoc)
    if not splice.openers:
        if not splice.segments:
            raise scanner.error(MalformedInstruction, f"{keyword} requires a command",
                                offset=content_start, expected="command")
        return ShellForm(segments=splice.segments)

    if not splice.terminated:
        raise scanner.error(UnterminatedHeredoc, f"heredoc '{splice.delimiters[0]}' has no body",
                            expected="line ending")
    heredocs = read_heredoc_bodies(scanner, splice.openers)
    return HeredocForm(command=splice.text, heredocs=heredocs)


def parse_run(scanner: Scanner) -> Run:
    start = scanner.pos
    scanner.skip_ws()
    if scanner.startswith("--"):
        flags = read_flags(scanner)
    else:
        flags = []
        scanner.pos = start
    return Run(flags=flags, form=_read_command(scanner, "RUN", allow_heredoc=True))


def parse_cmd(scanner: Scanner) -> Cmd:
    return Cmd(form=_read_command(scanner, "CMD"))


def parse_entrypoint(scanner: Scanner) -> Entrypoint:
    return Entrypoint(form=_read_command(scanner, "ENTRYPOINT"))


def parse_misc(scanner: Scanner, instruction: str) -> Misc:
    """
    Catch-all for instructions without a dedicated parser. ADD is the only
    one of them that takes heredocs; its bodies (``ADD <<EOF /dest``) are
    kept verbatim after the instruction line. Anything else is plain text.
    """
    splice = read_breakable(scanner, detect_heredocs=instruction in HEREDOC_INSTRUCTIONS)
    raw_arguments = splice.text
    if splice.openers:
        if not splice.terminated:
            raise scanner.error(UnterminatedHeredoc, f"heredoc '{splice.delimiters[0]}' has no body",
                                expected="line ending")
        bodies_start = scanner.pos
        read_heredoc_bodies(scanner, splice.openers)
        raw_arguments += LINE_END + scanner.text[bodies_start:scanner.pos].rstrip(LINE_END)
    return Misc(instruction=instruction, raw_arguments=raw_arguments)


PARSERS: Dict[str, Callable[[Scanner], Step]] = {
    "FROM": parse_from,
    "RUN": parse_run,
    "ARG": parse_arg,
    "LABEL": parse_label,
    "COPY": parse_copy,
    "ENTRYPOINT": parse_entrypoint,
    "CMD": parse_cmd,
    "ENV": parse_env,
}


def parse_instruction(scanner: Scanner) -> Step:
    """
    Reads the keyword at the cursor and hands the rest of the instruction to
    its parser, or to the catch-all for keywords without one.
    """
    keyword = scanner.read_while(LETTERS)
    if not keyword:
        raise scanner.error(MalformedInstruction, "expected an instruction", expected="instruction keyword")
    if not (scanner.at_line_end() or scanner.peek() in HSPACE or scanner.continuation_length()):
        raise scanner.error(MalformedInstruction, f"unexpected character after {keyword}",
                            expected="whitespace")
    scanner.skip_hspace()

    name = keyword.upper()
    parser: Optional[Callable[[Scanner], Step]] = PARSERS.get(name)
    if parser is None:
        return parse_misc(scanner, name)
    return parser(scanner)
