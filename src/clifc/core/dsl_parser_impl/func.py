"""
Function parser mixin for the CLIF IDL.

Parses decorators, defs, parameter lists, outputs and postprocessor returns.

IDL Syntax:

    @virtual
    def `Native` as exposed(self, b: str = default) -> (ok: bool, v: int): return Check(...)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import ir
from ..lexer import TokenType

DECORATOR_NAMES = {kind.value: kind for kind in ir.DecoratorKind}
MEMBER_DECORATORS = (ir.DecoratorKind.GETTER, ir.DecoratorKind.SETTER)


class FunctionParserMixin:
    """Parser mixin for def statements."""

    if TYPE_CHECKING:
        expect: Any
        advance: Any
        match: Any
        skip_newlines: Any
        current_token: Any
        expect_identifier_or_keyword: Any
        expect_end_of_statement: Any
        location: Any
        error: Any
        parse_name: Any
        parse_type: Any
        parse_dotted_name: Any
        parse_native_reference: Any

    def parse_decorators(self) -> list[ir.Decorator]:
        """
        Parse ``@decorator`` lines preceding a def.

        Grammar:
            (AT IDENTIFIER (LPAREN NAME RPAREN)? NEWLINE)*
        """
        decorators: list[ir.Decorator] = []

        while self.match(TokenType.AT):
            at = self.advance()
            token = self.current_token()
            if token.type == TokenType.IDENTIFIER:
                word = self.advance().value
            else:
                raise self.error("Expected a decorator name after '@'")

            kind = DECORATOR_NAMES.get(word)
            if kind is None:
                raise self.error(f"Unknown decorator '@{word}'", token)
            if any(d.kind == kind for d in decorators):
                raise self.error(f"Duplicate decorator '@{word}'", token)

            member = None
            if self.match(TokenType.LPAREN):
                if kind not in MEMBER_DECORATORS:
                    raise self.error(f"Decorator '@{word}' takes no arguments")
                self.advance()
                member = self.parse_native_reference()
                self.expect(TokenType.RPAREN)
            elif kind in MEMBER_DECORATORS:
                raise self.error(f"Decorator '@{word}' requires a native member name")

            decorators.append(ir.Decorator(kind=kind, member=member, location=self.location(at)))
            self.expect(TokenType.NEWLINE)
            self.skip_newlines()

        if decorators and not self.match(TokenType.DEF):
            raise self.error("Decorators must be followed by a def")
        return decorators

    def parse_def(self, decorators: list[ir.Decorator]) -> ir.DefDecl:
        """
        Parse a def statement.

        Grammar:
            DEF NAME LPAREN params? RPAREN (ARROW outputs)?
                (COLON RETURN dotted_name LPAREN ELLIPSIS RPAREN)? NEWLINE
        """
        start = self.expect(TokenType.DEF)
        name = self.parse_name()

        self.expect(TokenType.LPAREN)
        params = self._parse_params()
        self.expect(TokenType.RPAREN)

        outputs: list[ir.OutputSpec] = []
        if self.match(TokenType.ARROW):
            self.advance()
            outputs = self._parse_outputs()

        postprocessor = None
        if self.match(TokenType.COLON):
            self.advance()
            postprocessor = self._parse_postprocessor()
            if not outputs:
                raise self.error("A postprocessor needs at least one output to rebind")

        self.expect_end_of_statement()

        return ir.DefDecl(
            name=name,
            params=params,
            outputs=outputs,
            postprocessor=postprocessor,
            decorators=decorators,
            location=self.location(start),
        )

    def _parse_params(self) -> list[ir.ParamSpec]:
        params: list[ir.ParamSpec] = []
        if self.match(TokenType.RPAREN):
            return params

        params.append(self._parse_param(position=0))
        while self.match(TokenType.COMMA):
            self.advance()
            if self.match(TokenType.RPAREN):
                break  # trailing comma
            params.append(self._parse_param(position=len(params)))
        return params

    def _parse_param(self, position: int) -> ir.ParamSpec:
        """
        Grammar:
            NAME (COLON type)? (EQUALS DEFAULT)?

        ``self``/``cls`` must be first and untyped; everything else needs a type.
        """
        token = self.current_token()
        name = self.parse_name()

        param_type = None
        if self.match(TokenType.COLON):
            self.advance()
            param_type = self.parse_type()

        default = False
        if self.match(TokenType.EQUALS):
            self.advance()
            self.expect(TokenType.DEFAULT)
            default = True

        if name.native in ir.RECEIVER_NAMES and not name.alias:
            if position != 0:
                raise self.error(f"'{name.native}' must be the first parameter", token)
            if param_type is not None:
                raise self.error(f"'{name.native}' must not have a type", token)
            if default:
                raise self.error(f"'{name.native}' cannot have a default", token)
        elif param_type is None:
            raise self.error(f"Parameter '{name.exposed}' needs a type", token)

        return ir.ParamSpec(
            name=name, type=param_type, default=default, location=self.location(token)
        )

    def _parse_outputs(self) -> list[ir.OutputSpec]:
        """
        Grammar:
            None
            type
            LPAREN (IDENTIFIER COLON type (COMMA IDENTIFIER COLON type)*)? RPAREN
        """
        token = self.current_token()
        if token.type == TokenType.IDENTIFIER and token.value == "None":
            self.advance()
            return []

        if not self.match(TokenType.LPAREN):
            return [ir.OutputSpec(type=self.parse_type(), location=self.location(token))]

        self.advance()
        outputs: list[ir.OutputSpec] = []
        seen: set[str] = set()
        while not self.match(TokenType.RPAREN):
            out_token = self.current_token()
            out_name = self.expect_identifier_or_keyword().value
            if out_name in seen:
                raise self.error(f"Duplicate output name '{out_name}'", out_token)
            seen.add(out_name)
            self.expect(TokenType.COLON)
            out_type = self.parse_type()
            outputs.append(
                ir.OutputSpec(name=out_name, type=out_type, location=self.location(out_token))
            )
            if not self.match(TokenType.COMMA):
                break
            self.advance()
        self.expect(TokenType.RPAREN)
        return outputs

    def _parse_postprocessor(self) -> ir.PostprocessorCall:
        """
        Grammar:
            RETURN dotted_name LPAREN ELLIPSIS RPAREN
        """
        start = self.expect(TokenType.RETURN)
        target = self.parse_dotted_name()
        self.expect(TokenType.LPAREN)
        if not self.match(TokenType.ELLIPSIS):
            raise self.error("Postprocessor arguments must be the verbatim marker '...'")
        self.advance()
        self.expect(TokenType.RPAREN)
        return ir.PostprocessorCall(target=target, verbatim=True, location=self.location(start))
