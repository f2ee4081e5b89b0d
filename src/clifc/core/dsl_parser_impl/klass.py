"""
Class parser mixin for the CLIF IDL.

Parses class blocks and the statements that may appear inside from-blocks
and class bodies: member variables, staticmethods blocks and capsules.

IDL Syntax:

    class `Widget` as Widget(base.Base):
      def __init__(self, size: int)
      `size_` as size: int
      area: float = property(`GetArea`, `SetArea`)

    class Derived(Widget):
      pass

    staticmethods from `Factory`:
      def Make() -> Widget

    capsule `Handle` as Handle
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import ir
from ..lexer import TokenType


class ClassParserMixin:
    """Parser mixin for class bodies and member statements."""

    if TYPE_CHECKING:
        expect: Any
        advance: Any
        match: Any
        skip_newlines: Any
        current_token: Any
        peek_token: Any
        expect_block_start: Any
        expect_end_of_statement: Any
        location: Any
        error: Any
        parse_name: Any
        parse_type: Any
        parse_dotted_name: Any
        parse_native_reference: Any
        parse_decorators: Any
        parse_def: Any
        parse_enum: Any
        parse_const: Any

    def parse_member(self, in_class: bool) -> ir.Member | None:
        """
        Parse one member statement.

        Returns None for a ``pass`` line, which the caller interprets.
        """
        token = self.current_token()

        if self.match(TokenType.AT, TokenType.DEF):
            decorators = self.parse_decorators()
            return self.parse_def(decorators)
        if self.match(TokenType.CONST):
            return self.parse_const()
        if self.match(TokenType.ENUM):
            return self.parse_enum()
        if self.match(TokenType.CLASS):
            return self.parse_class()
        if self.match(TokenType.STATICMETHODS):
            return self.parse_staticmethods()
        if self.match(TokenType.CAPSULE):
            return self.parse_capsule()
        if self.match(TokenType.PASS):
            self.advance()
            self.expect_end_of_statement()
            return None
        if self.match(TokenType.NAMESPACE):
            raise self.error("Nested namespace statements are not allowed")
        if in_class and self.match(TokenType.NATIVE, TokenType.IDENTIFIER):
            return self.parse_var()

        raise self.error(f"Unexpected {token.value or token.type.value!r} in declaration block")

    def parse_block_members(self, in_class: bool) -> tuple[list[ir.Member], bool]:
        """
        Parse members until the enclosing DEDENT.

        Returns:
            Tuple of (members, saw_pass)
        """
        members: list[ir.Member] = []
        saw_pass = False

        while not self.match(TokenType.DEDENT, TokenType.EOF):
            self.skip_newlines()
            if self.match(TokenType.DEDENT, TokenType.EOF):
                break
            member = self.parse_member(in_class)
            if member is None:
                saw_pass = True
            else:
                members.append(member)

        if self.match(TokenType.DEDENT):
            self.advance()

        return members, saw_pass

    def parse_class(self) -> ir.ClassDecl:
        """
        Parse a class block.

        Grammar:
            CLASS NAME (LPAREN dotted_name RPAREN)? COLON NEWLINE INDENT
              (PASS NEWLINE | member+)
            DEDENT
        """
        start = self.expect(TokenType.CLASS)
        name = self.parse_name()

        base = None
        if self.match(TokenType.LPAREN):
            self.advance()
            base = self.parse_dotted_name()
            if self.match(TokenType.COMMA):
                raise self.error(
                    f"Class '{name.exposed}' may declare at most one base class"
                )
            self.expect(TokenType.RPAREN)

        self.expect_block_start(f"class {name.exposed}")
        members, saw_pass = self.parse_block_members(in_class=True)

        if saw_pass and members:
            raise self.error(f"'pass' must be the only statement in class '{name.exposed}'", start)

        return ir.ClassDecl(
            name=name,
            base=base,
            members=members,
            passthrough=saw_pass,
            location=self.location(start),
        )

    def parse_var(self) -> ir.VarDecl:
        """
        Parse a member variable.

        Grammar:
            NAME COLON type (EQUALS PROPERTY LPAREN NATIVE (COMMA NATIVE)? RPAREN)? NEWLINE
        """
        start = self.current_token()
        name = self.parse_name()
        self.expect(TokenType.COLON)
        var_type = self.parse_type()

        getter = setter = None
        if self.match(TokenType.EQUALS):
            self.advance()
            self.expect(TokenType.PROPERTY)
            self.expect(TokenType.LPAREN)
            getter = self.parse_native_reference()
            if self.match(TokenType.COMMA):
                self.advance()
                setter = self.parse_native_reference()
            self.expect(TokenType.RPAREN)

        self.expect_end_of_statement()
        return ir.VarDecl(
            name=name,
            type=var_type,
            getter=getter,
            setter=setter,
            location=self.location(start),
        )

    def parse_staticmethods(self) -> ir.StaticMethodsBlock:
        """
        Parse a staticmethods block.

        Grammar:
            STATICMETHODS FROM (NATIVE | dotted_name) COLON NEWLINE INDENT def+ DEDENT
        """
        start = self.expect(TokenType.STATICMETHODS)
        self.expect(TokenType.FROM)
        target = self.parse_native_reference()
        self.expect_block_start(f"staticmethods from {target}")

        defs: list[ir.DefDecl] = []
        while not self.match(TokenType.DEDENT, TokenType.EOF):
            self.skip_newlines()
            if self.match(TokenType.DEDENT, TokenType.EOF):
                break
            if not self.match(TokenType.AT, TokenType.DEF):
                raise self.error("Only def statements are allowed in a staticmethods block")
            decorators = self.parse_decorators()
            defs.append(self.parse_def(decorators))

        if self.match(TokenType.DEDENT):
            self.advance()

        return ir.StaticMethodsBlock(target=target, defs=defs, location=self.location(start))

    def parse_capsule(self) -> ir.CapsuleDecl:
        """
        Grammar:
            CAPSULE NAME NEWLINE
        """
        start = self.expect(TokenType.CAPSULE)
        name = self.parse_name()
        self.expect_end_of_statement()
        return ir.CapsuleDecl(name=name, location=self.location(start))
