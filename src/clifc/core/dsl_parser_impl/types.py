"""
Type parsing for the CLIF IDL.

Handles scripting type references with optional native qualifiers and
container element types.
"""

from typing import TYPE_CHECKING, Any

from .. import ir
from ..lexer import TokenType


class TypeParserMixin:
    """
    Mixin providing TypeRef parsing.

    Note: This mixin expects to be combined with BaseParser via multiple inheritance.
    """

    if TYPE_CHECKING:
        expect: Any
        advance: Any
        match: Any
        current_token: Any
        location: Any
        error: Any
        parse_dotted_name: Any

    def parse_type(self) -> ir.TypeRef:
        """
        Parse a type reference.

        Grammar:
            (NATIVE AS)? dotted_name (LANGLE type (COMMA type)* RANGLE)?

        Examples:
            int
            p.Widget
            dict<str, list<int>>
            `std::deque` as list<int>
            `std::unique_ptr<Widget>` as Widget
        """
        start = self.current_token()
        native = None

        if self.match(TokenType.NATIVE):
            native = self.advance().value
            if not self.match(TokenType.AS):
                raise self.error(f"Expected 'as' after native type `{native}`")
            self.advance()

        if not self.match(TokenType.IDENTIFIER):
            raise self.error("Expected a type name")
        name = self.parse_dotted_name()

        args: list[ir.TypeRef] = []
        if self.match(TokenType.LANGLE):
            self.advance()
            args.append(self.parse_type())
            while self.match(TokenType.COMMA):
                self.advance()
                args.append(self.parse_type())
            self.expect(TokenType.RANGLE)

        return ir.TypeRef(name=name, native=native, args=args, location=self.location(start))
