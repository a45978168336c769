"""
Parsers for Dockerfiles, extracting instructions and arguments.
"""
import logging
from typing import Optional, Union

from ..MODELS.dockerfile_ast import Comment, Document, Span
from ..MODELS.parse_errors import InputTooLarge
from .instructions import parse_instruction
from .scanner import Scanner, normalize_line_endings

logger = logging.getLogger(__name__)

BYTE_ORDER_MARK = "\ufeff"


class DockerfileParser:
    """
    Parser for Dockerfile instructions.

    Parsing is all-or-nothing: the first syntax error aborts the whole
    document and no partial result is returned.
    """
    def __init__(self, max_size: Optional[int] = None):
        """
        :param max_size: Reject inputs longer than this many characters.
        """
        self.max_size = max_size

    def parse(self, dockerfile_path: str) -> Document:
        """
        Parses a Dockerfile from a file path.

        Args:
            dockerfile_path (str): Path to the Dockerfile.

        Returns:
            Document: The parsed steps.
        """
        with open(dockerfile_path, 'r', encoding='utf-8', newline='') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: Union[str, bytes]) -> Document:
        """
        Parses a Dockerfile from a string content.

        Args:
            content (str | bytes): Content of the Dockerfile; bytes are decoded as UTF-8.

        Returns:
            Document: The parsed steps, in source order, each with the span of
                source text it was read from.

        Raises:
            DockerfileParseError: On the first syntax error.
        """
        if isinstance(content, bytes):
            content = content.decode('utf-8')
        if self.max_size is not None and len(content) > self.max_size:
            raise InputTooLarge(f"input is {len(content)} characters, limit is {self.max_size}")

        text = normalize_line_endings(content)
        if text.startswith(BYTE_ORDER_MARK):
            text = text[1:]
        scanner = Scanner(text)
        steps = []

        while not scanner.eof():
            scanner.skip_hspace()
            if scanner.at_line_end():
                # Blank line
                scanner.advance()
                continue

            start = scanner.pos
            if scanner.peek() == '#':
                step = Comment(text=scanner.read_line()[1:])
            else:
                step = parse_instruction(scanner)
            end = scanner.trimmed_end(start)
            step = step.model_copy(update={"span": Span(start=start, end=end)})
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("line %d: parsed %s step", scanner.location(start)[0], step.kind)
            steps.append(step)

        logger.debug("parsed %d steps", len(steps))
        return Document(steps=tuple(steps))


def parse(content: Union[str, bytes], max_size: Optional[int] = None) -> Document:
    """
    Parses Dockerfile text into a Document.
    """
    return DockerfileParser(max_size=max_size).parse_from_string(content)
