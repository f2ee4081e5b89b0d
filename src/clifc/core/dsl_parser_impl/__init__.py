"""
CLIF IDL Parser Package.

This package provides a modular parser for the CLIF interface description
language. The parser is built using mixins to separate parsing logic by
construct type.

The main exports are:
- Parser: The complete parser class
- parse_idl: Convenience function to parse an IDL file

Usage:
    from clifc.core.dsl_parser_impl import parse_idl

    tree = parse_idl(text, file)
"""

from pathlib import Path

from .. import ir
from ..lexer import TokenType, tokenize
from .base import BaseParser
from .enum import EnumParserMixin
from .func import FunctionParserMixin
from .imports import ImportParserMixin
from .klass import ClassParserMixin
from .types import TypeParserMixin


class Parser(
    BaseParser,
    TypeParserMixin,
    FunctionParserMixin,
    EnumParserMixin,
    ClassParserMixin,
    ImportParserMixin,
):
    """
    Complete CLIF IDL Parser.

    This class composes all parser mixins to provide full IDL parsing capability:

    - TypeParserMixin: Type references and native qualifiers
    - FunctionParserMixin: Decorators, defs, outputs, postprocessors
    - EnumParserMixin: Enums and constants
    - ClassParserMixin: Classes, variables, staticmethods, capsules
    - ImportParserMixin: Imports, use statements and from-blocks
    """

    def parse(self) -> ir.DeclarationTree:
        """
        Parse an entire unit.

        Returns:
            DeclarationTree with top-level statements in source order
        """
        statements: list[ir.TopLevel] = []

        self.skip_newlines()

        while not self.match(TokenType.EOF):
            if self.match(TokenType.FROM):
                statements.append(self.parse_from())
            elif self.match(TokenType.IMPORT):
                statements.append(self.parse_import())
            elif self.match(TokenType.USE):
                statements.append(self.parse_use())
            elif self.match(TokenType.INDENT):
                raise self.error("Unexpected indentation at top level")
            else:
                token = self.current_token()
                raise self.error(
                    f"Expected 'from', 'import' or 'use' at top level, got {token.value!r}"
                )
            self.skip_newlines()

        return ir.DeclarationTree(file=str(self.file), statements=statements)


def parse_idl(text: str, file: Path) -> ir.DeclarationTree:
    """
    Parse complete IDL source.

    Args:
        text: IDL source text
        file: Source file path

    Returns:
        DeclarationTree for the unit

    Raises:
        ClifSyntaxError: On any lexical or grammatical error
    """
    tokens = tokenize(text, file)
    parser = Parser(tokens, file, text)
    return parser.parse()


__all__ = [
    "Parser",
    "parse_idl",
    "BaseParser",
    "TypeParserMixin",
    "FunctionParserMixin",
    "EnumParserMixin",
    "ClassParserMixin",
    "ImportParserMixin",
]
