"""
Base parser class for the CLIF IDL.

Provides token navigation, the rename construct and other helpers shared by
all parser mixins.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..errors import ClifSyntaxError, make_syntax_error, snippet_for
from ..ir.location import SourceLocation
from ..ir.names import Name
from ..lexer import Token, TokenType

if TYPE_CHECKING:
    from .. import ir


@runtime_checkable
class ParserProtocol(Protocol):
    """
    Interface available to parser mixins.

    Lets type checkers see BaseParser methods from inside a mixin.
    """

    tokens: list[Token]
    file: Path
    pos: int

    def current_token(self) -> Token: ...
    def peek_token(self, offset: int = 1) -> Token: ...
    def advance(self) -> Token: ...
    def expect(self, token_type: TokenType) -> Token: ...
    def expect_identifier_or_keyword(self) -> Token: ...
    def match(self, *token_types: TokenType) -> bool: ...
    def skip_newlines(self) -> None: ...

    # Cross-mixin entry points
    def parse_type(self) -> "ir.TypeRef": ...
    def parse_def(self, decorators: "list[ir.Decorator]") -> "ir.DefDecl": ...
    def parse_member(self, in_class: bool) -> "ir.Member | None": ...


# Keywords that may still be used where a plain identifier is expected
KEYWORD_AS_IDENTIFIER_TYPES = (
    TokenType.PROPERTY,
    TokenType.DEFAULT,
    TokenType.STATICMETHODS,
    TokenType.CAPSULE,
    TokenType.NAMESPACE,
    TokenType.USE,
    TokenType.WITH,
)


class BaseParser:
    """
    Base parser class with token manipulation utilities.

    Recursive descent over the lexer's token stream; every helper raises
    ClifSyntaxError with a source snippet on mismatch.
    """

    def __init__(self, tokens: list[Token], file: Path, text: str = ""):
        """
        Initialize parser.

        Args:
            tokens: List of tokens from lexer
            file: Source file path (for error reporting)
            text: Source text, used for error snippets
        """
        self.tokens = tokens
        self.file = file
        self.text = text
        self.pos = 0

    def current_token(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def peek_token(self, offset: int = 1) -> Token:
        """Peek ahead at token."""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current_token()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def error(self, message: str, token: Token | None = None) -> ClifSyntaxError:
        """Build a syntax error located at ``token`` (default: current token)."""
        token = token or self.current_token()
        snippet = snippet_for(self.text, token.line) if self.text else None
        return make_syntax_error(message, self.file, token.line, token.column, snippet)

    def expect(self, token_type: TokenType) -> Token:
        """
        Expect a specific token type and consume it.

        Raises:
            ClifSyntaxError: If token doesn't match
        """
        token = self.current_token()
        if token.type != token_type:
            raise self.error(f"Expected {token_type.value}, got {_describe(token)}")
        return self.advance()

    def expect_identifier_or_keyword(self) -> Token:
        """Expect an identifier, accepting soft keywords as identifiers."""
        token = self.current_token()
        if token.type == TokenType.IDENTIFIER or token.type in KEYWORD_AS_IDENTIFIER_TYPES:
            return self.advance()
        raise self.error(f"Expected a name, got {_describe(token)}")

    def match(self, *token_types: TokenType) -> bool:
        """Check if current token matches any of the given types."""
        return self.current_token().type in token_types

    def skip_newlines(self) -> None:
        """Skip any NEWLINE tokens."""
        while self.match(TokenType.NEWLINE):
            self.advance()

    def expect_end_of_statement(self) -> None:
        """A simple statement ends at NEWLINE (or at a closing DEDENT/EOF)."""
        if self.match(TokenType.NEWLINE):
            self.advance()
        elif not self.match(TokenType.DEDENT, TokenType.EOF):
            raise self.error(f"Unexpected {_describe(self.current_token())} at end of statement")

    def expect_block_start(self, what: str) -> None:
        """Consume ``: NEWLINE INDENT`` opening an indented block."""
        self.expect(TokenType.COLON)
        if not self.match(TokenType.NEWLINE):
            raise self.error(f"Expected a new line after ':' in {what}")
        self.skip_newlines()
        if not self.match(TokenType.INDENT):
            raise self.error(f"Expected an indented block for {what}")
        self.advance()

    def location(self, token: Token | None = None) -> SourceLocation:
        token = token or self.current_token()
        return SourceLocation(file=str(self.file), line=token.line, column=token.column)

    def parse_dotted_name(self) -> str:
        """Parse dotted name (e.g., clifc.postproc.ValueErrorOnFalse)."""
        parts = [self.expect_identifier_or_keyword().value]

        while self.match(TokenType.DOT):
            self.advance()
            parts.append(self.expect_identifier_or_keyword().value)

        return ".".join(parts)

    def parse_name(self) -> Name:
        """
        Parse a NAME with optional rename.

        Grammar:
            NATIVE (AS IDENTIFIER)?
            IDENTIFIER
        """
        if self.match(TokenType.NATIVE):
            native = self.advance().value
            if self.match(TokenType.AS):
                self.advance()
                alias = self.expect_identifier_or_keyword().value
                return Name(native=native, alias=alias)
            return Name(native=native)

        return Name(native=self.expect_identifier_or_keyword().value)

    def parse_native_reference(self) -> str:
        """A native entity written either `quoted` or as a dotted name."""
        if self.match(TokenType.NATIVE):
            return self.advance().value
        return self.parse_dotted_name().replace(".", "::")


def _describe(token: Token) -> str:
    if token.type in (TokenType.NEWLINE, TokenType.INDENT, TokenType.DEDENT, TokenType.EOF):
        return token.type.value
    return repr(token.value)
