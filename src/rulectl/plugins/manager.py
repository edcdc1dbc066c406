"""PluginManager — finds rulectl plugins and routes hooks to them.

Plugins come from the ``rulectl.plugins`` entry-point group and from
single-file modules in the project's local plugin directory
(``[plugins] local_dir``). They contribute mechanisms and evaluators when a
workspace is built, and receive ``post_resolve`` / ``post_evaluate`` events.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Callable, Collection, Iterator
from pathlib import Path
from types import ModuleType
from typing import Any

import pluggy

from rulectl.plugins.hookspecs import PROJECT_NAME, RulectlHookSpec

ENTRYPOINT_GROUP = "rulectl.plugins"
LOCAL_MODULE_PREFIX = "rulectl_local_plugin_"

logger = logging.getLogger(__name__)


class PluginManager:
    """Thin wrapper over :class:`pluggy.PluginManager` with rulectl's hookspecs."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(RulectlHookSpec)
        self._loaded = False

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then the modules in *local_dir*.

        Returns the names of every registered plugin, built-ins included.
        """
        self._pm.load_setuptools_entrypoints(ENTRYPOINT_GROUP)
        self._normalize_plugin_instances()
        if local_dir is not None:
            self._discover_local(local_dir)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        name = name or type(plugin).__name__
        self._pm.register(plugin, name=name)
        logger.debug("Registered plugin %s", name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def _name_of(self, plugin: object) -> str:
        return self._pm.get_name(plugin) or type(plugin).__name__

    def list_plugin_names(self) -> list[str]:
        return [self._name_of(plugin) for plugin in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Setup-time contributions
    # ------------------------------------------------------------------

    def collect_mechanisms(self, reserved: Collection[str] = ()) -> dict[str, Callable[..., Any]]:
        """Merge the mechanism parsers contributed by every plugin.

        Keys in *reserved* (the built-in ones) and keys already contributed
        by another plugin are skipped with a warning.
        """
        return self._collect("register_mechanisms", "mechanism", reserved)

    def collect_evaluators(self, reserved: Collection[str] = ()) -> dict[str, Callable[..., Any]]:
        """Merge the evaluators contributed by every plugin, like :meth:`collect_mechanisms`."""
        return self._collect("register_evaluators", "evaluator", reserved)

    def _collect(self, hook_name: str, label: str, reserved: Collection[str]) -> dict[str, Callable[..., Any]]:
        collected: dict[str, Callable[..., Any]] = {}
        for plugin in self._pm.get_plugins():
            plugin_name = self._name_of(plugin)
            hook = getattr(plugin, hook_name, None)
            if hook is None:
                continue

            try:
                contributed = hook()
            except Exception:
                logger.warning("Failed to collect %ss from plugin %s", label, plugin_name, exc_info=True)
                continue

            if contributed is None:
                continue
            if not isinstance(contributed, dict):
                logger.warning("Plugin %s returned non-dict %s registrations", plugin_name, label)
                continue

            for key, value in contributed.items():
                if key in reserved or key in collected:
                    logger.warning("Skipping %s %r from plugin %s: already defined", label, key, plugin_name)
                    continue
                if not callable(value):
                    logger.warning("Skipping %s %r from plugin %s: not callable", label, key, plugin_name)
                    continue
                collected[key] = value
        return collected

    # ------------------------------------------------------------------
    # Lifecycle events
    # ------------------------------------------------------------------

    def dispatch(self, hook_name: str, **payload: Any) -> None:
        """Call lifecycle hook *hook_name* on every plugin.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        try:
            getattr(self._pm.hook, hook_name)(**payload)
        except Exception:
            logger.warning("Plugin hook %s failed", hook_name, exc_info=True)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def _discover_local(self, local_dir: Path) -> None:
        """Register the plugin classes of every ``*.py`` file in *local_dir*.

        Files starting with ``_`` are helpers, not plugins. A file that
        fails to import, or a class that fails to instantiate, is skipped
        with a warning.
        """
        if not local_dir.is_dir():
            return
        for path in sorted(local_dir.glob("*.py")):
            if path.name.startswith("_"):
                continue
            module = _import_file(f"{LOCAL_MODULE_PREFIX}{path.stem}", path)
            if module is None:
                continue
            for cls in _plugin_classes(module):
                try:
                    self.register_plugin(cls(), name=module.__name__)
                except Exception:
                    logger.warning("Failed to instantiate plugin class %s from %s", cls.__name__, path, exc_info=True)

    def _normalize_plugin_instances(self) -> None:
        """Swap plugin classes registered by entry points for instances.

        Hook methods of a registered class would be called unbound.
        """
        for plugin in self._pm.get_plugins():
            if not (inspect.isclass(plugin) and self._has_hook_impls(plugin)):
                continue
            name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                self._pm.register(plugin(), name=name)
            except Exception:
                logger.warning("Failed to instantiate entry-point plugin %s", name, exc_info=True)

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Whether any public attribute of *cls* is marked with ``@hookimpl``."""
        marker = f"{PROJECT_NAME}_impl"
        return any(
            getattr(getattr(cls, name, None), marker, None) is not None
            for name in dir(cls)
            if not name.startswith("_")
        )


def _import_file(module_name: str, path: Path) -> ModuleType | None:
    """Import *path* as *module_name*, or log why it could not be."""
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        logger.warning("Could not create module spec for %s", path)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        logger.warning("Failed to load local plugin %s", path, exc_info=True)
        del sys.modules[module_name]
        return None
    return module


def _plugin_classes(module: ModuleType) -> Iterator[type]:
    for _name, cls in inspect.getmembers(module, inspect.isclass):
        if cls.__module__ == module.__name__ and PluginManager._has_hook_impls(cls):
            yield cls
