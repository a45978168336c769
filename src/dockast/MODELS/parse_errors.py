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
Errors raised while parsing a Dockerfile.
"""
from typing import Optional


class DockerfileParseError(ValueError):
    """
    Base class for every syntax error. Carries the position of the failure in
    the line-ending-normalized input.

    :param message: Human-readable description of what went wrong.
    :param offset: 0-based character offset.
    :param line: 1-based line number.
    :param column: 1-based column number.
    :param expected: What the parser expected at that position, if known.
    """
    def __init__(self, message: str, offset: int = 0, line: int = 1, column: int = 1,
                 expected: Optional[str] = None):
        self.message = message
        self.offset = offset
        self.line = line
        self.column = column
        self.expected = expected
        super().__init__(f"line {line}, column {column}: {message}")


class UnterminatedString(DockerfileParseError):
    pass


class InvalidEscape(DockerfileParseError):
    pass


class InvalidCharacter(DockerfileParseError):
    """A forbidden control character (NUL, UNIT SEPARATOR) inside a string literal."""


class UnterminatedHeredoc(DockerfileParseError):
    pass


class MalformedInstruction(DockerfileParseError):
    """A required part of an instruction is missing or has the wrong shape."""


class UnknownArrayElement(DockerfileParseError):
    """Something other than a quoted string inside an exec-form array."""


class UnexpectedEndOfInput(DockerfileParseError):
    pass


class InputTooLarge(DockerfileParseError):
    pass
