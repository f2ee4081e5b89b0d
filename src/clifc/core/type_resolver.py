"""
Type correspondence resolution.

Maps each scripting type written in a declaration to exactly one concrete
native type. Resolution order:

1. An explicit native qualifier (`` `std::deque` as list<int> ``) wins.
2. Otherwise the correspondence table entry for the scripting type: the
   built-in default, a type declared in this unit, or a type imported
   from a header.
3. Otherwise a ``use`` override for the scripting type.

A table entry and a differing ``use`` override together are ambiguous, as
are several table entries for one name. The resolver never picks among
candidates.

The built-in portion of the table is immutable and shared. Everything a
unit adds (``use`` overrides, declared types, imports) lives on its own
``ResolverContext``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType

from . import ir
from .environment import ImportEnvironment
from .errors import ErrorKind, error_at
from .symbols import NativeSymbolTable, ScriptingRegistry

logger = logging.getLogger(__name__)


# =============================================================================
# Built-in correspondence table
# =============================================================================


@dataclass(frozen=True)
class ScalarEntry:
    """Default native type plus natives usable only when qualified."""

    default: str
    compatible: frozenset[str] = frozenset()


@dataclass(frozen=True)
class ContainerEntry:
    """
    Container correspondence.

    Attributes:
        default: Template used when no qualifier is given
        compatible: Other templates accepted when qualified explicitly
        arity: Required element type count, None for variadic
    """

    default: str
    compatible: frozenset[str]
    arity: int | None


OBJECT_NATIVE = "PyObject*"

SCALARS = MappingProxyType(
    {
        "int": ScalarEntry(
            "int",
            frozenset({"long", "int64_t", "int32_t", "uint32_t", "uint64_t", "short", "size_t"}),
        ),
        "float": ScalarEntry("double", frozenset({"float"})),
        "bool": ScalarEntry("bool"),
        "str": ScalarEntry(
            "std::string", frozenset({"std::string_view", "absl::string_view", "const char*"})
        ),
        "bytes": ScalarEntry(
            "std::string", frozenset({"std::string_view", "absl::string_view", "const char*"})
        ),
        "object": ScalarEntry(OBJECT_NATIVE),
    }
)

CONTAINERS = MappingProxyType(
    {
        "list": ContainerEntry(
            "std::vector",
            frozenset(
                {
                    "std::array",
                    "std::stack",
                    "std::deque",
                    "std::queue",
                    "std::priority_queue",
                    "std::list",
                }
            ),
            arity=1,
        ),
        "dict": ContainerEntry("std::unordered_map", frozenset({"std::map"}), arity=2),
        "set": ContainerEntry("std::unordered_set", frozenset({"std::set"}), arity=1),
        "tuple": ContainerEntry("std::tuple", frozenset({"std::pair"}), arity=None),
    }
)

TEXT_TYPES = ("str", "bytes")

HASHED_TEMPLATES = frozenset({"std::unordered_map", "std::unordered_set"})
ORDERED_TEMPLATES = frozenset({"std::map", "std::set", "std::priority_queue"})
SIZED_TEMPLATES = frozenset({"std::array"})


# =============================================================================
# Native spelling helpers
# =============================================================================


def normalize_native(spelling: str) -> str:
    """
    Canonical form of a native type spelling for comparison.

    Drops ``const``, references and a leading global ``::``, and removes
    whitespace around template brackets, commas and pointers.
    """
    s = re.sub(r"\bconst\b", " ", spelling)
    s = s.replace("&", " ")
    s = " ".join(s.split())
    s = re.sub(r"\s*([<>,*])\s*", r"\1", s)
    s = re.sub(r"(^|[<,])::", r"\1", s)
    return s.strip()


def template_of(spelling: str) -> str:
    """``std::vector<int>`` -> ``std::vector``."""
    normalized = normalize_native(spelling)
    return normalized.split("<", 1)[0]


def is_raw_pointer(spelling: str) -> bool:
    return normalize_native(spelling).endswith("*")


def is_unique_ptr(spelling: str) -> bool:
    return template_of(spelling) == "std::unique_ptr"


def strip_pointer(spelling: str) -> str | None:
    """Remove one trailing ``*``; None if the spelling is not a pointer."""
    stripped = spelling.strip()
    if not stripped.endswith("*"):
        return None
    return stripped[:-1].strip()


# =============================================================================
# Resolution
# =============================================================================


@dataclass(frozen=True)
class ResolvedType:
    """
    Result of resolving one TypeRef.

    Attributes:
        spelling: Scripting spelling (``list<int>``)
        native: Concrete native type
        wrapped: A wrapped class, enum, capsule or imported type; such types
            may appear behind pointers or smart pointers in native signatures
        explicit: Came from an explicit native qualifier
    """

    spelling: str
    native: str
    wrapped: bool = False
    explicit: bool = False


@dataclass
class ResolverContext:
    """
    Mutable resolution state of one compiled unit.

    A fresh context is created per unit; nothing in it is shared between
    units, so independent units can be compiled concurrently.
    """

    natives: NativeSymbolTable
    scripting: ScriptingRegistry
    environment: ImportEnvironment = field(default_factory=ImportEnvironment)
    use_overrides: dict[str, str] = field(default_factory=dict)
    declared: dict[str, set[str]] = field(default_factory=dict)
    used: set[str] = field(default_factory=set)
    classes: dict[str, ir.ClassPlan] = field(default_factory=dict)
    pending_classes: set[str] = field(default_factory=set)
    enclosing: list[str] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Table mutation
    # ------------------------------------------------------------------

    def declare(self, exposed: str, native: str) -> None:
        """Register a class, enum or capsule declared in this unit."""
        self.declared.setdefault(exposed, set()).add(native)

    def register_use(self, decl: ir.UseDecl) -> None:
        """
        Apply a ``use`` statement.

        Raises:
            AmbiguousTypeError: If the type was already resolved in this
                unit, or a different override is already active
        """
        name = decl.scripting
        if name in self.used:
            raise error_at(
                ErrorKind.AMBIGUOUS_TYPE,
                f"'use' for '{name}' comes after '{name}' was already resolved in this unit",
                decl.location,
            )
        existing = self.use_overrides.get(name)
        if existing is not None and existing != decl.native:
            raise error_at(
                ErrorKind.AMBIGUOUS_TYPE,
                f"'{name}' already uses `{existing}`; cannot also use `{decl.native}`",
                decl.location,
            )
        if name in self.environment.header_types:
            logger.warning("'use' for '%s' shadows an imported type of the same name", name)

        self.use_overrides[name] = decl.native
        logger.debug("use `%s` as %s", decl.native, name)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, ref: ir.TypeRef) -> ResolvedType:
        """
        Resolve a TypeRef to a single native type.

        Raises:
            UnknownTypeError: No candidate, or invalid element types
            AmbiguousTypeError: More than one candidate without a qualifier
        """
        self.used.add(ref.name)

        if ref.name in CONTAINERS:
            return self._resolve_container(ref)
        if ref.args:
            raise _unknown(f"'{ref.name}' does not take element types", ref)

        if ref.native is not None:
            return ResolvedType(
                ref.spelling, ref.native, wrapped=ref.name not in SCALARS, explicit=True
            )

        native = self._pick(ref)
        resolved = ResolvedType(ref.spelling, native, wrapped=ref.name not in SCALARS)
        logger.debug("Resolved %s -> %s", ref.spelling, native)
        return resolved

    def is_wrapped(self, name: str) -> bool:
        return bool(self._declared(name)) or name in self.environment.header_types

    def scoped_names(self, name: str) -> list[str]:
        """Spellings of ``name`` from the innermost class being resolved outwards."""
        return [f"{owner}.{name}" for owner in reversed(self.enclosing)] + [name]

    def compatible_natives(self, ref: ir.TypeRef) -> frozenset[str]:
        """Natives ``ref`` could back onto if it were qualified explicitly."""
        if ref.name in SCALARS:
            return SCALARS[ref.name].compatible
        if ref.name in CONTAINERS:
            entry = CONTAINERS[ref.name]
            return entry.compatible | {entry.default}
        return frozenset()

    def _candidates(self, name: str) -> set[str]:
        candidates: set[str] = set()
        if name in SCALARS:
            candidates.add(SCALARS[name].default)
        candidates |= self._declared(name)
        candidates |= self.environment.header_types.get(name, set())
        return candidates

    def _declared(self, name: str) -> set[str]:
        for scoped in self.scoped_names(name):
            if scoped in self.declared:
                return self.declared[scoped]
        return set()

    def _pick(self, ref: ir.TypeRef) -> str:
        candidates = self._candidates(ref.name)
        override = self.use_overrides.get(ref.name)

        if len(candidates) > 1:
            options = ", ".join(f"`{c}`" for c in sorted(candidates))
            raise _ambiguous(
                f"'{ref.name}' could be any of {options}; use an import alias prefix "
                "or an explicit native qualifier",
                ref,
            )
        if candidates and override is not None and override not in candidates:
            (table_native,) = candidates
            raise _ambiguous(
                f"'{ref.name}' maps to `{table_native}` and a 'use' override selects "
                f"`{override}`; qualify it explicitly",
                ref,
            )
        if candidates:
            return next(iter(candidates))
        if override is not None:
            return override
        raise _unknown(f"Unknown type '{ref.name}'", ref)

    def _resolve_container(self, ref: ir.TypeRef) -> ResolvedType:
        entry = CONTAINERS[ref.name]

        if ref.native is not None and "<" in ref.native:
            # A full native spelling wins; element types are still validated
            elements = [self.resolve(arg) for arg in ref.args]
            if elements:
                self._check_elements(ref, template_of(ref.native), elements)
            return ResolvedType(ref.spelling, ref.native, explicit=True)

        if not ref.args:
            raise _unknown(f"'{ref.name}' needs element types, e.g. {ref.name}<int>", ref)
        if entry.arity is not None and len(ref.args) != entry.arity:
            raise _unknown(
                f"'{ref.name}' takes {entry.arity} element type(s), got {len(ref.args)}", ref
            )

        elements = [self.resolve(arg) for arg in ref.args]

        if ref.native is not None:
            template = normalize_native(ref.native)
            if template not in entry.compatible | {entry.default}:
                raise _unknown(f"`{template}` cannot back '{ref.name}'", ref)
            if template in SIZED_TEMPLATES:
                raise _unknown(
                    f"`{template}` needs its full native spelling, e.g. `{template}<int, 4>`",
                    ref,
                )
        else:
            template = entry.default
            if ref.name == "tuple" and len(elements) == 2:
                template = "std::pair"
            override = self.use_overrides.get(ref.name)
            if override is not None and normalize_native(override) != template:
                raise _ambiguous(
                    f"'{ref.name}' maps to `{template}` and a 'use' override selects "
                    f"`{override}`; qualify it explicitly",
                    ref,
                )

        if template == "std::pair" and len(elements) != 2:
            raise _unknown(f"`std::pair` holds exactly two elements, got {len(elements)}", ref)

        self._check_elements(ref, template, elements)
        native = f"{template}<{', '.join(e.native for e in elements)}>"
        logger.debug("Resolved %s -> %s", ref.spelling, native)
        return ResolvedType(ref.spelling, native, explicit=ref.native is not None)

    def _check_elements(
        self, ref: ir.TypeRef, template: str, elements: list[ResolvedType]
    ) -> None:
        """The chosen template must accept the resolved element types."""
        if not elements:
            return
        key_ref = ref.args[0] if ref.args else None
        key = elements[0]

        if template in HASHED_TEMPLATES:
            if key_ref is not None and key_ref.name in CONTAINERS:
                raise _unknown(f"{key.spelling} is not hashable as a key of `{template}`", ref)
            if normalize_native(key.native) == OBJECT_NATIVE:
                raise _unknown(f"`{OBJECT_NATIVE}` is not hashable as a key of `{template}`", ref)
        if template in ORDERED_TEMPLATES and normalize_native(key.native) == OBJECT_NATIVE:
            raise _unknown(f"`{OBJECT_NATIVE}` has no ordering for `{template}`", ref)


def text_conversion(ref: ir.TypeRef, role: ir.SlotRole) -> ir.TextConversion | None:
    """
    Text handling for a str/bytes slot.

    ``str`` inputs accept encoded bytes or decoded text; ``bytes`` inputs
    accept bytes only. Outputs are exposed exactly as declared.
    """
    if ref.name not in TEXT_TYPES:
        return None
    if role == ir.SlotRole.INPUT:
        accepts = ["bytes", "str"] if ref.name == "str" else ["bytes"]
        return ir.TextConversion(accepts=accepts)
    return ir.TextConversion(exposed_as=ref.name)


def _unknown(message: str, ref: ir.TypeRef):
    return error_at(ErrorKind.UNKNOWN_TYPE, message, ref.location)


def _ambiguous(message: str, ref: ir.TypeRef):
    return error_at(ErrorKind.AMBIGUOUS_TYPE, message, ref.location)
