"""
Unit tests for quoted string and exec-form array literals.
"""
import pytest

from dockast.MODELS.parse_errors import (
    InvalidCharacter,
    InvalidEscape,
    MalformedInstruction,
    UnexpectedEndOfInput,
    UnknownArrayElement,
    UnterminatedString,
)
from dockast.PARSERS.literals import read_quoted, read_string_array, read_value
from dockast.PARSERS.scanner import Scanner


class TestReadQuoted:
    """Tests for single- and double-quoted strings."""

    def test_double_quoted(self):
        scanner = Scanner('"hello world" rest')
        assert read_quoted(scanner) == "hello world"
        assert scanner.rest_of_line() == " rest"

    def test_single_quoted(self):
        assert read_quoted(Scanner("'it works'")) == "it works"

    def test_simple_escapes(self):
        assert read_quoted(Scanner(r'"a\tb\nc\"d\\e\'f\r\b\f"')) == "a\tb\nc\"d\\e'f\r\b\f"

    def test_unicode_escapes(self):
        assert read_quoted(Scanner(r'"\u00e9\U0001F600"')) == "\u00e9\U0001F600"

    def test_surrogate_pair_escape(self):
        assert read_quoted(Scanner(r'"\uD83D\uDE00"')) == "\U0001F600"

    def test_escaped_line_ending_is_dropped(self):
        assert read_quoted(Scanner('"abc\\\ndef"')) == "abcdef"

    def test_unknown_escape_keeps_character(self):
        # Lenient on purpose, like permissive Dockerfile tooling
        assert read_quoted(Scanner(r'"\$HOME \q"')) == "$HOME q"

    def test_unterminated(self):
        with pytest.raises(UnterminatedString):
            read_quoted(Scanner('"abc'))

    def test_line_ending_before_closing_quote(self):
        with pytest.raises(UnterminatedString):
            read_quoted(Scanner('"abc\ndef"'))

    @pytest.mark.parametrize("literal", [r'"\u12"', r'"\uZZZZ"', r'"\U0011000"', r'"\UFFFFFFFF"',
                                         r'"\uD83D"', r'"\uDE00"', r'"\uD83Dx"'])
    def test_invalid_unicode_escape(self, literal):
        with pytest.raises(InvalidEscape):
            read_quoted(Scanner(literal))

    @pytest.mark.parametrize("literal", ['"a\x00b"', '"a\x1fb"', "'\x1f'"])
    def test_forbidden_characters(self, literal):
        with pytest.raises(InvalidCharacter):
            read_quoted(Scanner(literal))

    def test_not_at_quote(self):
        with pytest.raises(MalformedInstruction):
            read_quoted(Scanner("abc"))


class TestReadValue:
    def test_quoted(self):
        assert read_value(Scanner('"a b" c')) == ("a b", True)

    def test_raw_stops_at_whitespace(self):
        assert read_value(Scanner("abc def")) == ("abc", False)

    def test_raw_keeps_escaped_space(self):
        assert read_value(Scanner(r"a\ b c")) == (r"a\ b", False)

    def test_raw_stop_characters(self):
        assert read_value(Scanner("key=value"), stop="=") == ("key", False)


class TestReadStringArray:
    """Tests for the exec form."""

    def test_basic(self):
        assert read_string_array(Scanner('["echo", "hi"]')) == ["echo", "hi"]

    def test_empty(self):
        assert read_string_array(Scanner("[]")) == []
        assert read_string_array(Scanner("[   ]")) == []

    def test_trailing_comma(self):
        assert read_string_array(Scanner('["a", "b",]')) == ["a", "b"]

    def test_continuations_between_tokens(self):
        scanner = Scanner('[ \\\n  "a" ,\\\n   "b" \\\n ]')
        assert read_string_array(scanner) == ["a", "b"]
        assert scanner.eof()

    def test_mixed_quotes_and_escapes(self):
        assert read_string_array(Scanner('["sh", \'-c\', "echo \\"hi\\""]')) == ["sh", "-c", 'echo "hi"']

    @pytest.mark.parametrize("text", ["[a]", '["a", b]', "[,]", "[ -f /etc/passwd ]"])
    def test_bare_elements_rejected(self, text):
        with pytest.raises(UnknownArrayElement):
            read_string_array(Scanner(text))

    def test_missing_separator(self):
        with pytest.raises(MalformedInstruction):
            read_string_array(Scanner('["a" "b"]'))

    def test_unterminated(self):
        with pytest.raises(UnexpectedEndOfInput):
            read_string_array(Scanner('["a"'))
        with pytest.raises(UnexpectedEndOfInput):
            read_string_array(Scanner('["a",'))

    def test_line_ending_inside_array(self):
        with pytest.raises(MalformedInstruction):
            read_string_array(Scanner('["a",\n"b"]'))
