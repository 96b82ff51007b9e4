"""Transport discovery and loading."""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
import pkgutil
from pathlib import Path
from types import ModuleType

from ferry.core.registry import TransportRegistry
from ferry.models.transport import Transport
from ferry.settings import Settings
from ferry.utils import xdg_data_home

log = logging.getLogger(__name__)

_USER_TRANSPORT_DIR = xdg_data_home() / "ferry" / "transports"


def _find_transports_in_module(module: ModuleType) -> list[type[Transport]]:
    """Find all concrete Transport subclasses defined in a module."""
    found: list[type[Transport]] = []
    for _, obj in inspect.getmembers(module, inspect.isclass):
        if issubclass(obj, Transport) and obj is not Transport and not inspect.isabstract(obj):
            found.append(obj)
    return found


def _load_builtin_transports() -> list[type[Transport]]:
    """Load transports from the ferry.transports package."""
    import ferry.transports as transports_pkg

    found: list[type[Transport]] = []
    for _importer, modname, _ispkg in pkgutil.iter_modules(transports_pkg.__path__):
        try:
            module = importlib.import_module(f"ferry.transports.{modname}")
            found.extend(_find_transports_in_module(module))
        except Exception:
            log.exception("Failed to load built-in transport module: %s", modname)
    return found


def _load_transports_from_directory(directory: Path) -> list[type[Transport]]:
    """Load transports from ``*.py`` files in an external directory."""
    if not directory.is_dir():
        return []

    found: list[type[Transport]] = []
    for path in sorted(directory.glob("*.py")):
        if path.name == "__init__.py":
            continue
        try:
            spec = importlib.util.spec_from_file_location(f"ferry_ext_transport_{path.stem}", path)
            if spec is None or spec.loader is None:
                continue
            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
            found.extend(_find_transports_in_module(module))
        except Exception:
            log.exception("Failed to load transport from: %s", path)
    return found


def load_transports(registry: TransportRegistry, settings: Settings | None = None) -> None:
    """Discover and register all transports.

    Searches in order: built-in, user-local, then ``transport_paths`` from
    the settings file.
    """
    classes: list[type[Transport]] = []
    classes.extend(_load_builtin_transports())
    classes.extend(_load_transports_from_directory(_USER_TRANSPORT_DIR))

    if settings is not None:
        extra = settings.get("transport_paths", []) or []
        if isinstance(extra, str):
            extra = [extra]
        for raw in extra:
            classes.extend(_load_transports_from_directory(Path(raw).expanduser()))

    for cls in classes:
        try:
            registry.register(cls())
        except Exception:
            log.exception("Failed to instantiate transport: %s", cls.__name__)

    log.info("Loaded %d transports", len(registry))
