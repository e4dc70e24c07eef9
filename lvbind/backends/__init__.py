"""Ingestion backends for lvbind.

This package contains the backends that turn a description of a C
library's API into the lvbind IR (Intermediate Representation).

Available Backends
------------------
schema
    Reads the JSON API map (enums, functions, structures, typedefs, ...).
    Default backend with no dependencies beyond the standard library.

tree-sitter
    Parses C headers with tree-sitter and recovers function declarations
    from the source text. Requires the ``tree-sitter`` and
    ``tree-sitter-cpp`` packages.

Example
-------
::

    from lvbind.backends import get_backend, list_backends

    # Get the default backend
    backend = get_backend()

    # Get a specific backend
    backend = get_backend("tree-sitter")

    # List available backends
    for name in list_backends():
        print(name)
"""

from __future__ import (
    annotations,
)

from typing import (
    Any,
    Optional,
    Union,
)

from lvbind.ir import (
    ParserBackend,
)

# Registry of available backends
# Backends are registered lazily to avoid import errors if dependencies are missing
_BACKEND_REGISTRY: dict[str, type[ParserBackend]] = {}
_DEFAULT_BACKEND: Optional[str] = None
_BACKENDS_LOADED: bool = False
_TREE_SITTER_IMPORT_ERROR: Optional[str] = None

# Header file suffixes routed to the tree-sitter backend in auto mode
HEADER_SUFFIXES = (".h", ".hh", ".hpp", ".hxx", ".c", ".cc", ".cpp")


def register_backend(name: str, backend_class: type[ParserBackend], is_default: bool = False) -> None:
    """Register an ingestion backend.

    Called by backend modules during import to add themselves to the registry.
    The first registered backend becomes the default unless ``is_default`` is
    explicitly set on a later registration.

    :param name: Unique name for the backend (e.g., ``"schema"``).
    :param backend_class: Class implementing the :class:`~lvbind.ir.ParserBackend` protocol.
    :param is_default: If True, this becomes the default backend for :func:`get_backend`.
    """
    global _DEFAULT_BACKEND  # pylint: disable=global-statement
    _BACKEND_REGISTRY[name] = backend_class
    if is_default or _DEFAULT_BACKEND is None:
        _DEFAULT_BACKEND = name


def list_backends() -> list[str]:
    """List names of all registered backends.

    :returns: List of backend names that can be passed to :func:`get_backend`.
    """
    _ensure_backends_loaded()
    return list(_BACKEND_REGISTRY.keys())


def is_backend_available(name: str) -> bool:
    """Check if a backend is available for use.

    :param name: Backend name to check.
    :returns: True if the backend is registered and can be instantiated.
    """
    _ensure_backends_loaded()
    return name in _BACKEND_REGISTRY


def get_backend_info() -> list[dict[str, Union[str, bool]]]:
    """Get information about all known backends.

    :returns: List of dicts with name, available, default, and description.
    """
    _ensure_backends_loaded()

    descriptions = {
        "schema": "JSON API map (enums, functions, structs, typedefs)",
        "tree-sitter": "C headers via tree-sitter (functions only)",
    }

    result: list[dict[str, Union[str, bool]]] = []
    for name in ["schema", "tree-sitter"]:  # Fixed order for display
        result.append(
            {
                "name": name,
                "available": name in _BACKEND_REGISTRY,
                "default": name == _DEFAULT_BACKEND,
                "description": descriptions.get(name, ""),
            }
        )
    return result


def get_backend(name: Optional[str] = None, **options: Any) -> ParserBackend:
    """Get an ingestion backend instance.

    Returns a new instance of the requested backend. If no name is provided,
    returns the default backend (schema).

    :param name: Backend name (``"schema"``, ``"tree-sitter"``), or None for
        the default backend.
    :param options: Keyword arguments passed to the backend constructor
        (e.g. ``elide_void=True`` for tree-sitter).
    :returns: New instance of the requested backend.
    :raises ValueError: If the requested backend is not available.
    """
    _ensure_backends_loaded()

    if name is None:
        if _DEFAULT_BACKEND is None:
            raise ValueError("No backends available")
        name = _DEFAULT_BACKEND

    if name not in _BACKEND_REGISTRY:
        if name == "tree-sitter" and _TREE_SITTER_IMPORT_ERROR:
            raise ValueError(_TREE_SITTER_IMPORT_ERROR)

        available = ", ".join(_BACKEND_REGISTRY.keys()) or "(none)"
        raise ValueError(f"Unknown backend: {name!r}. Available: {available}")

    return _BACKEND_REGISTRY[name](**options)


def get_default_backend() -> str:
    """Get the name of the default backend.

    :returns: Backend name (e.g., "schema").
    :raises ValueError: If no backends are available.
    """
    _ensure_backends_loaded()

    if _DEFAULT_BACKEND is None:
        raise ValueError("No backends available")
    return _DEFAULT_BACKEND


def backend_for_path(path: str) -> str:
    """Pick a backend name from a file name, for ``auto`` mode.

    Header and source files go to tree-sitter; anything else (``.json``
    included) is read as an API map.
    """
    if path.lower().endswith(HEADER_SUFFIXES):
        return "tree-sitter"
    return "schema"


def _ensure_backends_loaded() -> None:
    """Lazily load backend modules to populate the registry."""
    global _BACKENDS_LOADED, _TREE_SITTER_IMPORT_ERROR  # pylint: disable=global-statement

    if _BACKENDS_LOADED:
        return

    _BACKENDS_LOADED = True

    # pylint: disable=import-outside-toplevel
    from lvbind.backends import (  # noqa: F401
        schema_backend,
    )

    # May fail if tree-sitter or its C++ grammar is not installed
    try:
        from lvbind.backends import (  # noqa: F401
            treesitter_backend,
        )
    except ImportError as e:
        _TREE_SITTER_IMPORT_ERROR = (
            f"tree-sitter backend is not available ({e}).\n"
            "Install with: pip install tree-sitter tree-sitter-cpp"
        )
