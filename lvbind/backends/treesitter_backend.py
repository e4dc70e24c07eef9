# pylint: disable=cyclic-import
# Cyclic import is intentional - backends register themselves when loaded
"""tree-sitter based header backend.

This backend parses C headers with tree-sitter (C++ grammar, so that
``extern "C"`` blocks are understood) and recovers function declarations
straight from the source text:

* the tree is walked in document order, descending into conditional
  compilation blocks, linkage specifications and declaration lists,
* every ``declaration`` node is read as a function prototype,
* return type, name and parameters are sliced out of the source by the
  byte ranges of the tree nodes.

Limitations
-----------
* Functions only - no enums, structs or typedefs
* No preprocessing: macros in declarations are taken literally
* ``(void)`` parameter lists are kept as one unnamed ``void`` argument
  unless the backend is created with ``elide_void=True``

Example
-------
::

    from lvbind.backends.treesitter_backend import TreeSitterBackend

    backend = TreeSitterBackend()
    result = backend.parse("int add(int x, int y);", "math.h")
"""

from __future__ import (
    annotations,
)

from collections.abc import (
    Iterable,
)
from pathlib import (
    Path,
)
from typing import (
    Optional,
)

import tree_sitter_cpp
from tree_sitter import (
    Language,
    Node,
    Parser,
)

from lvbind.backends import (
    register_backend,
)
from lvbind.ir import (
    ApiMap,
    FuncArg,
    Function,
    IngestResult,
    SourceLocation,
    UnparseableDeclaration,
    elide_void_marker,
)

# Nodes walked through without producing output
TRANSPARENT_KINDS = frozenset({"preproc_ifdef", "linkage_specification", "declaration_list"})

# Leading children of a declaration that are not part of the return type
_SPECIFIER_KINDS = frozenset(
    {
        "storage_class_specifier",
        "attribute_specifier",
        "attribute_declaration",
        "ms_declspec_modifier",
        "comment",
    }
)

# Declarators adding one level of indirection to a parameter type
_INDIRECTIONS = frozenset(
    {
        "pointer_declarator",
        "abstract_pointer_declarator",
        "array_declarator",
        "abstract_array_declarator",
    }
)

# Declarators stepped through while looking for a parameter name
_WRAPPERS = frozenset(
    {
        "function_declarator",
        "abstract_function_declarator",
        "parenthesized_declarator",
        "abstract_parenthesized_declarator",
        "reference_declarator",
        "init_declarator",
    }
)

_VARIADIC_KINDS = frozenset({"...", "variadic_parameter"})

# Name declarators a function prototype can carry
_NAME_KINDS = frozenset({"identifier", "field_identifier", "qualified_identifier", "operator_name"})


class UnexpectedShape(Exception):
    """A declaration node lacks a child the extractor relies on."""

    def __init__(self, node: Node, reason: str) -> None:
        super().__init__(reason)
        self.node = node
        self.reason = reason


def _normalize(text: str) -> str:
    return " ".join(text.split())


class DeclarationExtractor:
    """Walks one syntax tree and slices function declarations out of it.

    :param source: UTF-8 bytes the tree was parsed from.
    :param filename: Source file name, for locations and diagnostics.
    :param transparent_kinds: Node kinds descended into without output.
    :param elide_void: Drop a lone unnamed ``void`` parameter.

    Note
    ----
    This class is internal to the tree-sitter backend. Use
    :class:`TreeSitterBackend` for the public API.
    """

    def __init__(
        self,
        source: bytes,
        filename: str,
        transparent_kinds: Iterable[str] = TRANSPARENT_KINDS,
        elide_void: bool = False,
    ) -> None:
        self.source = source
        self.filename = filename
        self.transparent_kinds = frozenset(transparent_kinds)
        self.elide_void = elide_void
        self.functions: list[Function] = []
        self.errors: list[UnparseableDeclaration] = []

    def text(self, node: Node) -> str:
        """Copy the source text spanned by ``node``."""
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def span(self, start: int, end: int) -> str:
        return _normalize(self.source[start:end].decode("utf-8", errors="replace"))

    def extract(self, root: Node) -> IngestResult:
        self.walk(root)
        return IngestResult(api_map=ApiMap(functions=list(self.functions)), errors=list(self.errors))

    def walk(self, node: Node) -> None:
        """Visit the named children of ``node`` in document order."""
        for child in node.named_children:
            if child.type in self.transparent_kinds:
                self.walk(child)
            elif child.type == "declaration":
                try:
                    self.functions.append(self.parse_declaration(child))
                except UnexpectedShape as e:
                    self.errors.append(
                        UnparseableDeclaration(
                            file=self.filename,
                            byte_offset=child.start_byte,
                            line=child.start_point[0] + 1,
                            reason=e.reason,
                        )
                    )

    def parse_declaration(self, node: Node) -> Function:
        """Read a ``declaration`` node as a function prototype.

        :raises UnexpectedShape: If the node is not shaped like one.
        """
        outer = node.child_by_field_name("declarator")
        if outer is None:
            raise UnexpectedShape(node, "declaration has no declarator")

        # ``T *f(...)``: the pointers belong to the return type
        declarator = outer
        depth = 0
        while declarator.type == "pointer_declarator":
            inner = declarator.child_by_field_name("declarator")
            if inner is None:
                raise UnexpectedShape(declarator, "pointer declarator has no declarator")
            depth += 1
            declarator = inner

        name_node = declarator.child_by_field_name("declarator")
        if name_node is None:
            raise UnexpectedShape(declarator, "declarator has no name")
        if name_node.type not in _NAME_KINDS:
            raise UnexpectedShape(name_node, f"declarator {self.text(name_node)!r} is not a function name")
        parameters = declarator.child_by_field_name("parameters")
        if parameters is None:
            raise UnexpectedShape(declarator, "declarator has no parameter list")

        # Return type spans from the first type child up to the declarator
        type_start = None
        for child in node.named_children:
            if child.start_byte >= outer.start_byte:
                break
            if child.type not in _SPECIFIER_KINDS:
                type_start = child.start_byte
                break
        if type_start is None:
            raise UnexpectedShape(node, "declaration has no return type")
        return_type = self.span(type_start, outer.start_byte) + "*" * depth

        args = self.parse_parameters(parameters)
        if self.elide_void:
            args = elide_void_marker(args)

        return Function(
            identifier=self.text(name_node),
            return_type=return_type,
            args=args,
            location=SourceLocation(self.filename, node.start_point[0] + 1, node.start_byte),
        )

    def parse_parameters(self, parameters: Node) -> list[FuncArg]:
        """Read a ``parameter_list`` node, skipping the enclosing parentheses."""
        args: list[FuncArg] = []
        for child in parameters.children[1:-1]:
            if child.type in _VARIADIC_KINDS:
                args.append(FuncArg(None, "..."))
            elif child.is_named and child.type != "comment":
                args.append(self.parse_parameter(child))
        return args

    def parse_parameter(self, node: Node) -> FuncArg:
        if node.child_count == 0:
            raise UnexpectedShape(node, f"parameter {self.text(node)!r} has no type")

        declarator = node.child_by_field_name("declarator")
        if declarator is None:
            return FuncArg(None, self.span(node.start_byte, node.end_byte))

        base = self.span(node.start_byte, declarator.start_byte)
        if not base:
            raise UnexpectedShape(node, f"parameter {self.text(node)!r} has no type")

        depth = 0
        current: Optional[Node] = declarator
        while current is not None and (current.type in _INDIRECTIONS or current.type in _WRAPPERS):
            if current.type in _INDIRECTIONS:
                depth += 1
            inner = current.child_by_field_name("declarator")
            if inner is None and current.type not in _INDIRECTIONS:
                inner = next((c for c in current.named_children if c.type != "parameter_list"), None)
            current = inner

        identifier = self.text(current) if current is not None else None
        return FuncArg(identifier, base + "*" * depth)


class TreeSitterBackend:
    """Ingestion backend for C headers, using tree-sitter's C++ grammar.

    :param elide_void: Drop a lone unnamed ``void`` parameter, like the
        schema backend does. Off by default.
    :param transparent_kinds: Node kinds to descend into. Defaults to
        :data:`TRANSPARENT_KINDS`.

    Example
    -------
    ::

        backend = TreeSitterBackend(elide_void=True)
        result = backend.parse_files(["lvgl.h", "lv_obj.h"])
    """

    def __init__(self, elide_void: bool = False, transparent_kinds: Optional[Iterable[str]] = None) -> None:
        self.elide_void = elide_void
        self.transparent_kinds = frozenset(transparent_kinds) if transparent_kinds else TRANSPARENT_KINDS
        self._parser = Parser(Language(tree_sitter_cpp.language()))

    @property
    def name(self) -> str:
        return "tree-sitter"

    @property
    def produces_types(self) -> bool:
        return False

    def parse(self, code: str, filename: str = "<header>") -> IngestResult:
        """Extract the function declarations of one header.

        :param code: Header source text.
        :param filename: Header name for locations and diagnostics.
        :returns: Functions in document order, plus skipped declarations.
        """
        source = code.encode("utf-8")
        tree = self._parser.parse(source)
        extractor = DeclarationExtractor(source, filename, self.transparent_kinds, self.elide_void)
        return extractor.extract(tree.root_node)

    def parse_files(self, paths: Iterable[str]) -> IngestResult:
        """Extract declarations from several headers, concatenated in order.

        The same prototype found in two files yields two entries.

        :raises OSError: If a file cannot be read.
        """
        result = IngestResult()
        for path in paths:
            code = Path(path).read_text(encoding="utf-8")
            result = result.merge(self.parse(code, str(path)))
        return result


register_backend("tree-sitter", TreeSitterBackend)
