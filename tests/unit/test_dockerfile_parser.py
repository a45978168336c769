import textwrap

import pytest
from pydantic import ValidationError

from dockast import DockerfileParseError, parse
from dockast.MODELS.dockerfile_ast import (
    Arg,
    Cmd,
    Comment,
    Document,
    Env,
    ExecForm,
    From,
    KeyValue,
    Label,
    Misc,
    RawValue,
    Run,
    ShellForm,
    ShellText,
    Span,
)
from dockast.MODELS.parse_errors import InputTooLarge, MalformedInstruction, UnterminatedString
from dockast.PARSERS.dockerfile_parser import DockerfileParser


def test_parse_from_string():
    content = """
    FROM python:3.9-slim
    WORKDIR /app
    COPY . .
    RUN pip install -r requirements.txt \\
        && echo "done"
    ENV PORT=8080
    CMD ["python", "app.py"]
    """
    parser = DockerfileParser()
    document = parser.parse_from_string(content)

    assert [s.kind for s in document] == ["from", "misc", "copy", "run", "env", "cmd"]

    # Check CMD parsing (exec form)
    cmd_inst = next(s for s in document if isinstance(s, Cmd))
    assert cmd_inst.form == ExecForm(arguments=["python", "app.py"])

    # Check RUN with line continuation
    run_inst = next(s for s in document if isinstance(s, Run))
    assert run_inst.form.text == 'pip install -r requirements.txt         && echo "done"'


def test_parse_file(tmp_path):
    dockerfile = tmp_path / "Dockerfile"
    dockerfile.write_bytes(b"FROM alpine\r\nRUN echo hi\r\n")
    document = DockerfileParser().parse(str(dockerfile))
    assert list(document) == [From(image="alpine"), Run(form=ShellForm(segments=[ShellText(text="echo hi")]))]


@pytest.mark.parametrize("content", ["", "   \n\t  ", "\n\n\n"])
def test_empty_documents(content):
    assert parse(content) == Document()


def test_comments_are_steps_in_source_order():
    document = parse("# syntax=docker/dockerfile:1\nFROM x\n\n  # second\nARG A=1\n#\n")
    assert list(document) == [
        Comment(text=" syntax=docker/dockerfile:1"),
        From(image="x"),
        Comment(text=" second"),
        Arg(name="A", default=RawValue(value="1")),
        Comment(text=""),
    ]
    assert document.instructions == [From(image="x"), Arg(name="A", default=RawValue(value="1"))]


def test_order_is_stable():
    names = [f"STEP{i}" for i in range(50)]
    document = parse("\n".join(f"ENV {name}={i}" for i, name in enumerate(names)))
    assert [s.pairs[0].key for s in document] == names


def test_continued_shell_line_is_spliced_without_separator():
    assert parse("RUN echo a \\\necho b")[0].form.text == "echo a echo b"
    assert parse("RUN echo a\\\n  echo b")[0].form.text == "echo a  echo b"


def test_crlf_line_endings():
    document = parse("FROM x\r\nRUN a \\\r\n  b\r\nLABEL k=v\r\n")
    assert document[1].form.text == "a   b"
    assert document[2] == Label(pairs=[KeyValue(key="k", value="v")])


def test_byte_order_mark_and_bytes():
    assert parse("\ufeffFROM x".encode("utf-8")) == Document(steps=(From(image="x"),))


def test_stages():
    document = parse("FROM golang AS build\nRUN go build\nFROM scratch\nCOPY --from=build /app /app\n")
    assert [(s.image, s.alias) for s in document.stages] == [("golang", "build"), ("scratch", None)]


def test_misc_keyword_is_upper_cased():
    assert parse("workdir /srv")[0] == Misc(instruction="WORKDIR", raw_arguments="/srv")


@pytest.mark.parametrize("content", [
    "FROM x\nLABEL\nRUN y\n",
    'FROM x\nARG X="abc\n',
    "FROM x\nCOPY src\n",
    "FROM x\nRUN <<EOF\nno terminator\n",
])
def test_parsing_is_atomic(content):
    with pytest.raises(DockerfileParseError):
        parse(content)


def test_error_position():
    with pytest.raises(UnterminatedString) as excinfo:
        parse('FROM x\nARG X="abc')
    error = excinfo.value
    assert (error.line, error.column, error.offset) == (2, 7, 13)
    assert str(error).startswith("line 2, column 7:")


def test_error_expected():
    with pytest.raises(MalformedInstruction) as excinfo:
        parse("FROM alpine\nLABEL")
    assert excinfo.value.line == 2
    assert excinfo.value.expected == "key"
    assert isinstance(excinfo.value, ValueError)


def test_max_size():
    with pytest.raises(InputTooLarge):
        DockerfileParser(max_size=10).parse_from_string("FROM alpine:3.19")
    assert len(DockerfileParser(max_size=16).parse_from_string("FROM alpine:3.19")) == 1


def test_steps_are_immutable():
    step = parse("FROM x")[0]
    with pytest.raises(ValidationError):
        step.image = "y"


def test_document_survives_serialization():
    content = """
    # build stage
    FROM --platform=$BUILDPLATFORM golang:1.22 AS build
    ARG VERSION="1.0"
    LABEL maintainer="team@example.com" version=$VERSION
    ENV CGO_ENABLED=0
    COPY <<EOF /src/main.go
    package main
    EOF
    RUN --mount=type=cache,target=/go \\
        # compile
        go build -o /out/app /src
    RUN <<EOF
    echo done
    EOF
    ENTRYPOINT ["/out/app"]
    CMD --help
    EXPOSE 8080
    """
    document = parse(textwrap.dedent(content))
    assert len(document) == 11
    assert Document.model_validate(document.model_dump()) == document
    assert Document.model_validate_json(document.model_dump_json()) == document
    assert [s.span for s in Document.model_validate(document.model_dump())] == [s.span for s in document]


def test_env_and_label_need_pairs():
    with pytest.raises(MalformedInstruction):
        parse("ENV")
    assert parse("ENV A=1")[0] == Env(pairs=[KeyValue(key="A", value="1")])


def test_source_spans():
    content = (
        "# base\n"
        "FROM --platform=linux/amd64 alpine AS base\n"
        'COPY --chown=app a.txt "b c" /dest/\n'
        "RUN <<EOF\n"
        "echo hi\n"
        "EOF\n"
        "ENV A=1 B=2\n"
        "LABEL note  some text \n"
        'COPY ["x y", "/z"]\n'
    )
    document = parse(content)

    def source(span):
        return content[span.start:span.end]

    assert [source(s.span) for s in document] == [
        "# base",
        "FROM --platform=linux/amd64 alpine AS base",
        'COPY --chown=app a.txt "b c" /dest/',
        "RUN <<EOF\necho hi\nEOF",
        "ENV A=1 B=2",
        "LABEL note  some text",
        'COPY ["x y", "/z"]',
    ]
    assert document[1].flags[0].span == Span(start=12, end=34)

    copy = document[2]
    assert source(copy.flags[0].span) == "--chown=app"
    assert [source(s) for s in copy.form.source_spans] == ["a.txt", '"b c"']
    assert source(copy.form.dest_span) == "/dest/"

    assert source(document[3].form.heredocs[0].span) == "echo hi\n"
    assert [source(p.span) for p in document[4].pairs] == ["A=1", "B=2"]
    assert source(document[5].pairs[0].span) == "note  some text"
    assert [source(s) for s in document[6].form.source_spans] == ['"x y"']
    assert source(document[6].form.dest_span) == '"/z"'


def test_spans_do_not_affect_equality():
    first, second = parse("FROM x")[0], parse("\n\n  FROM x")[0]
    assert first == second
    assert (first.span, second.span) == (Span(start=0, end=6), Span(start=4, end=10))
