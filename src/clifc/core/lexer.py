"""
Lexer/Tokenizer for the CLIF interface-description language.

Converts raw IDL text into a stream of tokens with source location tracking.
Handles indentation-based blocks (Python-style) with INDENT/DEDENT tokens.
Newlines inside parentheses or angle brackets are joined into one logical line.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import make_syntax_error


class TokenType(Enum):
    """Token types in the IDL."""

    # Literals
    IDENTIFIER = "IDENTIFIER"
    STRING = "STRING"
    NATIVE = "NATIVE"  # `backtick quoted native name or type`
    NUMBER = "NUMBER"

    # Keywords
    FROM = "from"
    IMPORT = "import"
    AS = "as"
    NAMESPACE = "namespace"
    DEF = "def"
    CONST = "const"
    ENUM = "enum"
    CLASS = "class"
    STATICMETHODS = "staticmethods"
    CAPSULE = "capsule"
    USE = "use"
    PASS = "pass"
    RETURN = "return"
    WITH = "with"
    PROPERTY = "property"
    DEFAULT = "default"

    # Operators
    COLON = ":"
    ARROW = "->"
    COMMA = ","
    LPAREN = "("
    RPAREN = ")"
    LANGLE = "<"
    RANGLE = ">"
    EQUALS = "="
    DOT = "."
    AT = "@"
    STAR = "*"
    ELLIPSIS = "..."

    # Special
    NEWLINE = "NEWLINE"
    INDENT = "INDENT"
    DEDENT = "DEDENT"
    EOF = "EOF"


KEYWORDS = {
    "from",
    "import",
    "as",
    "namespace",
    "def",
    "const",
    "enum",
    "class",
    "staticmethods",
    "capsule",
    "use",
    "pass",
    "return",
    "with",
    "property",
    "default",
}

SINGLE_CHAR_TOKENS = {
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "<": TokenType.LANGLE,
    ">": TokenType.RANGLE,
    "=": TokenType.EQUALS,
    "@": TokenType.AT,
    "*": TokenType.STAR,
}


@dataclass
class Token:
    """
    A single token in the IDL.

    Attributes:
        type: Type of token
        value: String value of the token
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """

    type: TokenType
    value: str
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.value!r}, {self.line}:{self.column})"


class Lexer:
    """
    Lexer for the CLIF IDL.

    Converts source text into a stream of tokens with indentation tracking.
    """

    def __init__(self, text: str, file: Path):
        """
        Initialize lexer.

        Args:
            text: Source text to tokenize
            file: Source file path (for error reporting)
        """
        self.text = text
        self.file = file
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []
        self.indent_stack = [0]  # Stack of indentation levels
        self.nesting = 0  # Open ( and < brackets

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def advance(self) -> None:
        """Move to next character, updating line/column."""
        if self.pos < len(self.text):
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def skip_whitespace(self) -> None:
        """Skip whitespace; newlines count as whitespace inside brackets."""
        while self.current_char() in (" ", "\t", "\r") or (
            self.nesting > 0 and self.current_char() == "\n"
        ):
            self.advance()

    def skip_comment(self) -> None:
        """Skip comment (from # to end of line)."""
        if self.current_char() == "#":
            while self.current_char() and self.current_char() != "\n":
                self.advance()

    def read_string(self) -> str:
        """Read a double- or single-quoted string (header paths)."""
        start_line = self.line
        start_col = self.column
        quote = self.current_char()
        self.advance()

        chars = []
        while True:
            current = self.current_char()
            if not current or current == quote or current == "\n":
                break
            if current == "\\":
                self.advance()
                escaped = self.current_char()
                if escaped:
                    chars.append(escaped)
                    self.advance()
            else:
                chars.append(current)
                self.advance()

        if self.current_char() != quote:
            raise make_syntax_error(
                "Unterminated string literal",
                self.file,
                start_line,
                start_col,
            )

        self.advance()
        return "".join(chars)

    def read_native(self) -> str:
        """Read a `backtick quoted` native name or type spelling."""
        start_line = self.line
        start_col = self.column
        self.advance()  # opening backtick

        chars = []
        while self.current_char() not in (None, "`", "\n"):
            chars.append(self.current_char())
            self.advance()

        if self.current_char() != "`":
            raise make_syntax_error(
                "Unterminated `native` name",
                self.file,
                start_line,
                start_col,
            )
        self.advance()

        value = "".join(chars).strip()
        if not value:
            raise make_syntax_error("Empty `native` name", self.file, start_line, start_col)
        return value

    def read_number(self) -> str:
        chars = []
        current = self.current_char()
        while current and current.isdigit():
            chars.append(current)
            self.advance()
            current = self.current_char()
        return "".join(chars)

    def read_identifier(self) -> str:
        """Read an identifier or keyword."""
        chars = []
        current = self.current_char()
        while current and (current.isalnum() or current == "_"):
            chars.append(current)
            self.advance()
            current = self.current_char()
        return "".join(chars)

    def handle_indentation(self, indent_level: int) -> None:
        """Generate INDENT/DEDENT tokens based on indentation level."""
        current_indent = self.indent_stack[-1]

        if indent_level > current_indent:
            self.indent_stack.append(indent_level)
            self.tokens.append(Token(TokenType.INDENT, "", self.line, 1))

        elif indent_level < current_indent:
            while self.indent_stack and self.indent_stack[-1] > indent_level:
                self.indent_stack.pop()
                self.tokens.append(Token(TokenType.DEDENT, "", self.line, 1))

            if self.indent_stack[-1] != indent_level:
                raise make_syntax_error(
                    f"Inconsistent indentation (expected {self.indent_stack[-1]} spaces, "
                    f"got {indent_level})",
                    self.file,
                    self.line,
                    1,
                )

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source text.

        Returns:
            List of tokens including INDENT/DEDENT and EOF

        Raises:
            ClifSyntaxError: If an unexpected character is encountered
        """
        at_line_start = True

        while self.pos < len(self.text):
            if at_line_start and self.nesting == 0:
                indent_level = 0
                while self.current_char() in (" ", "\t"):
                    if self.current_char() == " ":
                        indent_level += 1
                    else:
                        indent_level += 4  # Treat tab as 4 spaces
                    self.advance()

                # Blank lines and comment-only lines carry no indentation
                if self.current_char() in ("\n", "\r", "#"):
                    self.skip_comment()
                    if self.current_char() == "\r":
                        self.advance()
                    if self.current_char() == "\n":
                        self.advance()
                    continue

                if self.current_char() is not None:
                    self.handle_indentation(indent_level)

                at_line_start = False

            self.skip_whitespace()

            ch = self.current_char()
            if ch is None:
                break

            token_line = self.line
            token_col = self.column

            if ch == "#":
                self.skip_comment()
                continue

            elif ch == "\n":
                self.tokens.append(Token(TokenType.NEWLINE, "\\n", token_line, token_col))
                self.advance()
                at_line_start = True

            elif ch in ('"', "'"):
                value = self.read_string()
                self.tokens.append(Token(TokenType.STRING, value, token_line, token_col))

            elif ch == "`":
                value = self.read_native()
                self.tokens.append(Token(TokenType.NATIVE, value, token_line, token_col))

            elif ch.isdigit():
                value = self.read_number()
                self.tokens.append(Token(TokenType.NUMBER, value, token_line, token_col))

            elif ch.isalpha() or ch == "_":
                value = self.read_identifier()
                if value in KEYWORDS:
                    token_type = TokenType(value)
                else:
                    token_type = TokenType.IDENTIFIER
                self.tokens.append(Token(token_type, value, token_line, token_col))

            elif ch == "-":
                if self.peek_char() != ">":
                    raise make_syntax_error(
                        f"Unexpected character: {ch!r}", self.file, token_line, token_col
                    )
                self.advance()
                self.advance()
                self.tokens.append(Token(TokenType.ARROW, "->", token_line, token_col))

            elif ch == ".":
                if self.peek_char() == "." and self.peek_char(2) == ".":
                    self.advance()
                    self.advance()
                    self.advance()
                    self.tokens.append(Token(TokenType.ELLIPSIS, "...", token_line, token_col))
                else:
                    self.advance()
                    self.tokens.append(Token(TokenType.DOT, ".", token_line, token_col))

            elif ch in SINGLE_CHAR_TOKENS:
                token_type = SINGLE_CHAR_TOKENS[ch]
                if ch in ("(", "<"):
                    self.nesting += 1
                elif ch in (")", ">"):
                    self.nesting = max(0, self.nesting - 1)
                self.advance()
                self.tokens.append(Token(token_type, ch, token_line, token_col))

            else:
                raise make_syntax_error(
                    f"Unexpected character: {ch!r}",
                    self.file,
                    token_line,
                    token_col,
                )

        if self.nesting > 0:
            raise make_syntax_error(
                "Unclosed bracket at end of file", self.file, self.line, self.column
            )

        # Terminate a final line that has no trailing newline
        if self.tokens and self.tokens[-1].type not in (TokenType.NEWLINE, TokenType.DEDENT):
            self.tokens.append(Token(TokenType.NEWLINE, "\\n", self.line, self.column))

        while len(self.indent_stack) > 1:
            self.indent_stack.pop()
            self.tokens.append(Token(TokenType.DEDENT, "", self.line, self.column))

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column))

        return self.tokens


def tokenize(text: str, file: Path) -> list[Token]:
    """
    Convenience function to tokenize IDL text.

    Args:
        text: Source text
        file: Source file path

    Returns:
        List of tokens
    """
    lexer = Lexer(text, file)
    return lexer.tokenize()
