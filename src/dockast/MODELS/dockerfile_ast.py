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
Models for the Dockerfile Abstract Syntax Tree.

Every step is an immutable pydantic model tagged with a ``kind`` literal, so a
parsed document can be dumped with ``model_dump()`` and loaded back without
losing the variant of each step.

Steps, flags, key/value pairs, heredocs and COPY paths carry the source range
they were parsed from. Positions are not part of a node's identity: two nodes
with the same content compare equal wherever they came from.
"""
from typing import Annotated, Iterator, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

POSITION_FIELDS = frozenset({"span", "source_spans", "dest_span"})


def _content(node: "Node") -> tuple:
    return tuple(getattr(node, name) for name in type(node).model_fields if name not in POSITION_FIELDS)


class Node(BaseModel):
    """
    Base class for all AST nodes. Nodes are frozen once constructed.
    """
    model_config = ConfigDict(frozen=True)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return _content(self) == _content(other)

    def __hash__(self):
        return hash((type(self), _content(self)))


class Span(Node):
    """
    Half-open range ``[start, end)`` of character offsets into the
    line-ending-normalized source.
    """
    start: int
    end: int


class Flag(Node):
    """
    A ``--name=value`` option given before an instruction's arguments.
    ``value`` is None for a bare boolean flag such as ``--link``.
    """
    name: str
    value: Optional[str] = None
    span: Optional[Span] = None

    def __str__(self) -> str:
        if self.value is None:
            return f"--{self.name}"
        return f"--{self.name}={self.value}"


class KeyValue(Node):
    """A single key/value pair of a LABEL or ENV instruction."""
    key: str
    value: str
    span: Optional[Span] = None


class QuotedValue(Node):
    kind: Literal["quoted"] = "quoted"
    value: str


class RawValue(Node):
    kind: Literal["raw"] = "raw"
    value: str


ArgDefault = Annotated[Union[QuotedValue, RawValue], Field(discriminator="kind")]


class Heredoc(Node):
    """
    An inline here-document. ``body`` holds every line between the opener and
    the terminator, each with its line ending, and never the terminator itself.

    An opener written ``<<-DELIM`` sets ``strip_tabs``: the terminator line may
    be indented with tabs, and consumers strip leading tabs from the body
    lines, which are kept verbatim here. ``span`` covers the body only.
    """
    delimiter: str
    body: str
    strip_tabs: bool = False
    span: Optional[Span] = None


class ShellText(Node):
    kind: Literal["text"] = "text"
    text: str


class ShellComment(Node):
    """A comment line found inside a continued instruction, ``#`` included."""
    kind: Literal["comment"] = "comment"
    text: str


ShellSegment = Annotated[Union[ShellText, ShellComment], Field(discriminator="kind")]


class ExecForm(Node):
    """Argument vector given as a bracketed array of quoted strings."""
    kind: Literal["exec"] = "exec"
    arguments: List[str]


class ShellForm(Node):
    """
    Free-form command text, spliced across line continuations.

    The segments keep comment lines at the place they were written so the
    instruction can be reconstructed; ``text`` is the command a shell would see.
    """
    kind: Literal["shell"] = "shell"
    segments: List[ShellSegment]

    @property
    def text(self) -> str:
        return "".join(s.text for s in self.segments if isinstance(s, ShellText))

    @property
    def comments(self) -> List[str]:
        return [s.text for s in self.segments if isinstance(s, ShellComment)]

    def __str__(self) -> str:
        return self.text


class HeredocForm(Node):
    """
    A RUN whose script is supplied by one or more here-documents.

    ``command`` is the instruction line as written, redirections included
    (``<<EOF`` for a bare heredoc, ``python3 <<EOF`` otherwise).
    """
    kind: Literal["heredoc"] = "heredoc"
    command: str
    heredocs: List[Heredoc] = Field(min_length=1)

    @property
    def delimiter(self) -> str:
        return self.heredocs[0].delimiter

    @property
    def body(self) -> str:
        return self.heredocs[0].body


class CopyStandard(Node):
    kind: Literal["standard"] = "standard"
    sources: List[str] = Field(min_length=1)
    dest: str
    source_spans: List[Span] = []
    dest_span: Optional[Span] = None


class CopyHeredoc(Node):
    kind: Literal["heredoc"] = "heredoc"
    sources: List[Heredoc] = Field(min_length=1)
    dest: str
    dest_span: Optional[Span] = None


class Comment(Node):
    kind: Literal["comment"] = "comment"
    text: str
    span: Optional[Span] = None


class From(Node):
    kind: Literal["from"] = "from"
    image: str
    flags: List[Flag] = []
    alias: Optional[str] = None
    span: Optional[Span] = None


class Arg(Node):
    kind: Literal["arg"] = "arg"
    name: str
    default: Optional[ArgDefault] = None
    span: Optional[Span] = None


class Label(Node):
    kind: Literal["label"] = "label"
    pairs: List[KeyValue] = Field(min_length=1)
    span: Optional[Span] = None


class Copy(Node):
    kind: Literal["copy"] = "copy"
    flags: List[Flag] = []
    form: Annotated[Union[CopyStandard, CopyHeredoc], Field(discriminator="kind")]
    span: Optional[Span] = None


class Run(Node):
    kind: Literal["run"] = "run"
    flags: List[Flag] = []
    form: Annotated[Union[ExecForm, ShellForm, HeredocForm], Field(discriminator="kind")]
    span: Optional[Span] = None


class Entrypoint(Node):
    kind: Literal["entrypoint"] = "entrypoint"
    form: Annotated[Union[ExecForm, ShellForm], Field(discriminator="kind")]
    span: Optional[Span] = None


class Cmd(Node):
    kind: Literal["cmd"] = "cmd"
    form: Annotated[Union[ExecForm, ShellForm], Field(discriminator="kind")]
    span: Optional[Span] = None


class Env(Node):
    kind: Literal["env"] = "env"
    pairs: List[KeyValue] = Field(min_length=1)
    span: Optional[Span] = None


class Misc(Node):
    """
    Any instruction without a dedicated parser (WORKDIR, EXPOSE, HEALTHCHECK...).
    ``instruction`` is stored upper-cased.
    """
    kind: Literal["misc"] = "misc"
    instruction: str
    raw_arguments: str
    span: Optional[Span] = None


Step = Annotated[
    Union[Comment, From, Arg, Label, Copy, Run, Entrypoint, Cmd, Env, Misc],
    Field(discriminator="kind"),
]


class Document(Node):
    """
    Represents the complete Abstract Syntax Tree of a Dockerfile: its steps in
    source order, comments included.
    """
    steps: Tuple[Step, ...] = ()

    def __iter__(self) -> Iterator[Step]:  # type: ignore[override]
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __getitem__(self, index: int) -> Step:
        return self.steps[index]

    @property
    def instructions(self) -> List[Step]:
        """Steps without the comments."""
        return [s for s in self.steps if not isinstance(s, Comment)]

    @property
    def stages(self) -> List[From]:
        return [s for s in self.steps if isinstance(s, From)]
