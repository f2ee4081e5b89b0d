"""
Enum and constant parser mixin for the CLIF IDL.

IDL Syntax:

    enum `Color` as Color with:
      `kRed` as RED
      `kGreen`

    const `kMaxSize` as MAX_SIZE: int
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import ir
from ..lexer import TokenType


class EnumParserMixin:
    """Parser mixin for enum and const statements."""

    if TYPE_CHECKING:
        expect: Any
        advance: Any
        match: Any
        skip_newlines: Any
        current_token: Any
        expect_block_start: Any
        expect_end_of_statement: Any
        location: Any
        error: Any
        parse_name: Any
        parse_type: Any

    def parse_enum(self) -> ir.EnumDecl:
        """
        Parse an enum statement.

        Grammar:
            ENUM NAME (WITH COLON NEWLINE INDENT (NAME NEWLINE)+ DEDENT)? NEWLINE
        """
        start = self.expect(TokenType.ENUM)
        name = self.parse_name()

        values: list[ir.EnumValueDecl] = []
        if self.match(TokenType.WITH):
            self.advance()
            self.expect_block_start(f"enum {name.exposed}")

            seen: set[str] = set()
            while not self.match(TokenType.DEDENT, TokenType.EOF):
                self.skip_newlines()
                if self.match(TokenType.DEDENT, TokenType.EOF):
                    break
                token = self.current_token()
                value_name = self.parse_name()
                if value_name.exposed in seen:
                    raise self.error(f"Duplicate enum value '{value_name.exposed}'", token)
                seen.add(value_name.exposed)
                values.append(ir.EnumValueDecl(name=value_name, location=self.location(token)))
                self.expect_end_of_statement()

            if self.match(TokenType.DEDENT):
                self.advance()
        else:
            self.expect_end_of_statement()

        return ir.EnumDecl(name=name, values=values, location=self.location(start))

    def parse_const(self) -> ir.ConstDecl:
        """
        Parse a const statement.

        Grammar:
            CONST NAME COLON type NEWLINE
        """
        start = self.expect(TokenType.CONST)
        name = self.parse_name()
        self.expect(TokenType.COLON)
        const_type = self.parse_type()
        self.expect_end_of_statement()
        return ir.ConstDecl(name=name, type=const_type, location=self.location(start))
