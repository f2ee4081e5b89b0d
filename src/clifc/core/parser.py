import logging
from pathlib import Path

from . import ir
from .dsl_parser_impl import parse_idl

logger = logging.getLogger(__name__)


def parse_units(files: list[Path]) -> list[ir.DeclarationTree]:
    """
    Parse IDL files into declaration trees.

    Args:
        files: List of .clif file paths to parse

    Returns:
        One DeclarationTree per file, in input order

    Raises:
        ClifSyntaxError: On the first file that fails to parse
    """
    trees: list[ir.DeclarationTree] = []

    for f in files:
        text = f.read_text(encoding="utf-8")
        tree = parse_idl(text, f)
        logger.debug("Parsed %s: %d top-level statements", f, len(tree.statements))
        trees.append(tree)

    return trees
