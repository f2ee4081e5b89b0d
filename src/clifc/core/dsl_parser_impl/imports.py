"""
Import, use and from-block parser mixin for the CLIF IDL.

IDL Syntax:

    from "base/base_clif.h" import *
    from "base/base_clif.h" import * as base
    from "util/status.h" import Status, StatusOr
    from clifc.postproc import ValueErrorOnFalse
    use `absl::Cord` as Cord

    from "widgets/widget.h":
      namespace `widgets`:
        def Make() -> Widget
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import ir
from ..lexer import TokenType


class ImportParserMixin:
    """Parser mixin for top-level statements."""

    if TYPE_CHECKING:
        expect: Any
        advance: Any
        match: Any
        skip_newlines: Any
        current_token: Any
        expect_identifier_or_keyword: Any
        expect_block_start: Any
        expect_end_of_statement: Any
        location: Any
        error: Any
        parse_dotted_name: Any
        parse_member: Any

    def parse_from(self) -> ir.HeaderImport | ir.ScriptingImport | ir.FromBlock:
        """
        Parse any statement starting with ``from``.

        Grammar:
            FROM STRING IMPORT (STAR (AS IDENTIFIER)? | names) NEWLINE
            FROM STRING COLON NEWLINE INDENT block DEDENT
            FROM dotted_name IMPORT (STAR | names) NEWLINE
        """
        start = self.expect(TokenType.FROM)

        if self.match(TokenType.STRING):
            header = self.advance().value
            if self.match(TokenType.COLON):
                return self._parse_from_block(header, start)
            self.expect(TokenType.IMPORT)
            return self._parse_header_import(header, start)

        module = self.parse_dotted_name()
        self.expect(TokenType.IMPORT)
        if self.match(TokenType.STAR):
            self.advance()
            self.expect_end_of_statement()
            return ir.ScriptingImport(
                module=module, whole_module=True, location=self.location(start)
            )

        names = self._parse_name_list()
        self.expect_end_of_statement()
        return ir.ScriptingImport(module=module, names=names, location=self.location(start))

    def parse_import(self) -> ir.ScriptingImport:
        """
        Parse ``import a.b.c``.

        Recorded as a whole-module import so resolution can reject it with a
        proper diagnostic instead of a parse failure.
        """
        start = self.expect(TokenType.IMPORT)
        module = self.parse_dotted_name()
        self.expect_end_of_statement()
        return ir.ScriptingImport(module=module, whole_module=True, location=self.location(start))

    def parse_use(self) -> ir.UseDecl:
        """
        Grammar:
            USE NATIVE AS dotted_name NEWLINE
        """
        start = self.expect(TokenType.USE)
        native = self.expect(TokenType.NATIVE).value
        self.expect(TokenType.AS)
        scripting = self.parse_dotted_name()
        self.expect_end_of_statement()
        return ir.UseDecl(native=native, scripting=scripting, location=self.location(start))

    def _parse_header_import(self, header: str, start: Any) -> ir.HeaderImport:
        if self.match(TokenType.STAR):
            self.advance()
            alias = None
            if self.match(TokenType.AS):
                self.advance()
                alias = self.expect_identifier_or_keyword().value
            self.expect_end_of_statement()
            return ir.HeaderImport(path=header, alias=alias, location=self.location(start))

        names = self._parse_name_list()
        self.expect_end_of_statement()
        return ir.HeaderImport(path=header, names=names, location=self.location(start))

    def _parse_name_list(self) -> list[str]:
        names = [self.expect_identifier_or_keyword().value]
        while self.match(TokenType.COMMA):
            self.advance()
            names.append(self.expect_identifier_or_keyword().value)
        return names

    def _parse_from_block(self, header: str, start: Any) -> ir.FromBlock:
        """
        Parse the body of ``from "header":``.

        The body is either a single ``namespace`` block or a sequence of
        member statements; the namespace form may not be mixed or repeated.
        """
        self.expect_block_start(f'from "{header}"')

        namespace = None
        statements: list[ir.BlockStatement] = []

        while not self.match(TokenType.DEDENT, TokenType.EOF):
            self.skip_newlines()
            if self.match(TokenType.DEDENT, TokenType.EOF):
                break

            if self.match(TokenType.NAMESPACE):
                token = self.current_token()
                if namespace is not None:
                    raise self.error(
                        f'from "{header}" may contain at most one namespace statement', token
                    )
                if statements:
                    raise self.error(
                        "A namespace statement must enclose every statement of its from-block",
                        token,
                    )
                self.advance()
                namespace = self.expect(TokenType.NATIVE).value
                self.expect_block_start(f"namespace {namespace}")
                statements = self._parse_block_statements()
                continue

            if namespace is not None:
                raise self.error(
                    "A namespace statement must enclose every statement of its from-block"
                )
            statements.append(self._parse_block_statement())

        if self.match(TokenType.DEDENT):
            self.advance()

        return ir.FromBlock(
            header=header,
            namespace=namespace,
            statements=statements,
            location=self.location(start),
        )

    def _parse_block_statements(self) -> list[ir.BlockStatement]:
        statements: list[ir.BlockStatement] = []
        while not self.match(TokenType.DEDENT, TokenType.EOF):
            self.skip_newlines()
            if self.match(TokenType.DEDENT, TokenType.EOF):
                break
            statements.append(self._parse_block_statement())
        if self.match(TokenType.DEDENT):
            self.advance()
        return statements

    def _parse_block_statement(self) -> ir.BlockStatement:
        if self.match(TokenType.USE):
            return self.parse_use()
        token = self.current_token()
        member = self.parse_member(in_class=False)
        if member is None:
            raise self.error("'pass' is only allowed as a class body", token)
        return member
