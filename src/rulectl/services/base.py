"""BaseService — foundation for all rulectl services.

Every service receives a :class:`Workspace` at construction time. The
workspace provides the resolved rules, the dependency graph, engines, and
the plugin manager, all built lazily.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rulectl.infrastructure.workspace import Workspace

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class RuleService(BaseService):
            def show(self, name: str) -> ServiceResult:
                registry = self._workspace.resolved.registry
                ...
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    def _dispatch_event(self, hook_name: str, payload: dict[str, Any], warnings: list[str]) -> None:
        """Dispatch a lifecycle event to plugins.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        try:
            getattr(self._workspace.plugins.hook, hook_name)(**payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")
