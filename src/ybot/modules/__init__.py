"""Built-in command modules."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from ..logging import get_logger
from ..module import Module, ModuleUnavailable
from .admin import AdminModule
from .demos import DemosModule
from .fun import FunModule
from .hello import HelloModule
from .help import ModulesModule
from .invite import InviteModule

if TYPE_CHECKING:
    from ..config import Settings

logger = get_logger(__name__)

__all__ = [
    "AdminModule",
    "DemosModule",
    "FunModule",
    "HelloModule",
    "InviteModule",
    "ModulesModule",
    "build_modules",
    "default_factories",
    "load_modules",
]

ModuleFactory = Callable[[], Module]


def default_factories(settings: Settings) -> list[ModuleFactory]:
    """Constructors for the built-in modules, in registration order."""
    return [
        HelloModule,
        ModulesModule,
        FunModule,
        lambda: AdminModule(settings.admin_state_path),
        lambda: InviteModule(settings.client_id),
        DemosModule,
    ]


def build_modules(factories: list[ModuleFactory]) -> list[Module]:
    """Construct modules, leaving out those that can't be set up."""
    modules = []
    for factory in factories:
        try:
            module = factory()
        except ModuleUnavailable as exc:
            logger.warning("modules.unavailable", error=str(exc))
            continue
        logger.debug("modules.loaded", module=module.name)
        modules.append(module)
    return modules


def load_modules(settings: Settings) -> list[Module]:
    """The built-in modules that can run with `settings`."""
    return build_modules(default_factories(settings))
