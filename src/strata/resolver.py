"""Resolve migration handles into runnable migration implementations.

A handle may be a dotted module path, a ``module:attribute`` reference,
a path to a ``.py`` file, or an already-loaded object. Whatever it names
must expose a callable ``upgrade(engine)``.
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.util
import inspect
from pathlib import Path
from typing import Any

from strata.errors import UnresolvableImplementation
from strata.logging import get_logger

log = get_logger("resolver")


def describe_handle(handle: Any) -> str:
    """Render a handle as a string for messages and storage."""
    if isinstance(handle, str):
        return handle
    if inspect.ismodule(handle):
        return handle.__name__
    if inspect.isclass(handle):
        return f"{handle.__module__}:{handle.__qualname__}"
    cls = type(handle)
    return f"{cls.__module__}:{cls.__qualname__}"


def resolve_implementation(handle: Any, package: str | None = None) -> Any:
    """Load the migration implementation a handle points at.

    Args:
        handle: Handle to resolve.
        package: Configured migrations package, reported in errors.

    Returns:
        Object with a callable ``upgrade`` attribute.

    Raises:
        UnresolvableImplementation: If the handle cannot be loaded or does not
            provide ``upgrade``.
    """
    name = describe_handle(handle)

    if isinstance(handle, str):
        target = _load_reference(handle, package)
    else:
        target = handle

    if inspect.isclass(target):
        try:
            target = target()
        except Exception as e:
            raise UnresolvableImplementation(
                name, package, f"cannot instantiate: {e}"
            ) from e

    if not callable(getattr(target, "upgrade", None)):
        raise UnresolvableImplementation(name, package, "no callable upgrade()")

    log.debug("implementation_resolved", handle=name)
    return target


def _load_reference(handle: str, package: str | None) -> Any:
    """Import the module or attribute named by a string handle."""
    if handle.endswith(".py"):
        return _load_file(Path(handle), package)

    module_name, _, attribute = handle.partition(":")
    if not module_name:
        raise UnresolvableImplementation(handle, package, "empty module path")

    try:
        module = importlib.import_module(module_name)
    except Exception as e:
        log.error("migration_module_load_failed", handle=handle, error=str(e))
        raise UnresolvableImplementation(handle, package, str(e)) from e

    if not attribute:
        return module

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise UnresolvableImplementation(
                handle, package, f"{module_name} has no attribute {attribute}"
            ) from e
    return target


def _load_file(path: Path, package: str | None) -> Any:
    """Execute a migration file as an anonymous module."""
    handle = str(path)
    if not path.is_file():
        raise UnresolvableImplementation(handle, package, "file not found")

    # Unique per path so two files with the same stem never collide
    digest = hashlib.sha1(str(path.resolve()).encode()).hexdigest()[:12]
    module_name = f"_strata_migration_{path.stem}_{digest}"

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise UnresolvableImplementation(handle, package, "cannot build import spec")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        log.error("migration_file_load_failed", path=handle, error=str(e))
        raise UnresolvableImplementation(handle, package, str(e)) from e
    return module
