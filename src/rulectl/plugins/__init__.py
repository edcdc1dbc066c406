"""Extension layer — plugin system via pluggy.

Discovery: entry_points (pip-installed) and ``.rulectl/plugins/*.py``.
INVARIANT: Plugin failures are warnings, never errors.
"""

from rulectl.plugins.hookspecs import hookimpl
from rulectl.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
