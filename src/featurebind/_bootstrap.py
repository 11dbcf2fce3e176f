from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from importlib.metadata import entry_points
from typing import TYPE_CHECKING

from ._collection import ServiceCollection
from ._installer import FeatureInstaller, ServicesRegistrar


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from types import ModuleType

    from ._provider import ServiceProvider

INSTALLERS_ENTRY_POINT_GROUP = "featurebind.installers"


def initialize(
    prefix: str | None = None,
    configure: Callable[[ServiceCollection], object] | None = None,
    *,
    installers: Iterable[type[FeatureInstaller]] | None = None,
    group: str = INSTALLERS_ENTRY_POINT_GROUP,
) -> ServiceProvider:
    """Run every feature installer and build the provider.

    Args:
        prefix: Only installers whose module name starts with this prefix are
            used. When it names a package, its submodules are imported first so
            the installers they define are found.
        configure: Called with the collection after all installers ran, to add
            extra registrations.
        installers: Explicit installer classes. Skips discovery (and `prefix`)
            entirely.
        group: Entry point group advertising installer classes.

    Returns:
        A provider built from everything the installers registered.

    """
    services = ServiceCollection()
    registrar = ServicesRegistrar(services)

    installer_types = list(installers) if installers is not None else discover_installers(prefix, group=group)

    for installer_type in installer_types:
        logger.debug("Running installer %s.%s", installer_type.__module__, installer_type.__qualname__)
        installer_type().install(registrar)

    if configure is not None:
        configure(services)

    return services.build_provider()


def discover_installers(
    prefix: str | None = None,
    *,
    group: str = INSTALLERS_ENTRY_POINT_GROUP,
) -> list[type[FeatureInstaller]]:
    """Find concrete `FeatureInstaller` subclasses.

    Candidates come from the `group` entry points, then from every loaded
    subclass of `FeatureInstaller`. Modules or entry points that fail to load
    are logged and skipped.
    """
    if prefix:
        _import_package(prefix)

    found: list[type[FeatureInstaller]] = []
    for candidate in [*_load_entry_points(group), *_loaded_subclasses(FeatureInstaller)]:
        if candidate in found or inspect.isabstract(candidate):
            continue
        if prefix and not candidate.__module__.startswith(prefix):
            continue
        logger.debug("Discovered installer %s.%s", candidate.__module__, candidate.__qualname__)
        found.append(candidate)

    return found


def _load_entry_points(group: str) -> list[type[FeatureInstaller]]:
    loaded = []
    for ep in entry_points(group=group):
        try:
            installer_type = ep.load()
        except Exception as e:  # noqa: BLE001
            logger.warning("Failed to load installer from entry point '%s': %s", ep.name, e)
            continue

        if not (inspect.isclass(installer_type) and issubclass(installer_type, FeatureInstaller)):
            logger.warning("Entry point '%s' does not reference a FeatureInstaller subclass", ep.name)
            continue
        loaded.append(installer_type)

    return loaded


def _loaded_subclasses(base: type[FeatureInstaller]) -> Iterator[type[FeatureInstaller]]:
    for sub in base.__subclasses__():
        yield sub
        yield from _loaded_subclasses(sub)


def _import_package(name: str) -> None:
    try:
        package = importlib.import_module(name)
    except ModuleNotFoundError as e:
        if e.name and (name == e.name or name.startswith(f"{e.name}.")):
            # plain name prefix, not a package
            logger.debug("Installer prefix '%s' is not an importable module", name)
        else:
            logger.warning("Skipping installer module '%s': import failed", name, exc_info=True)
        return
    except Exception:  # noqa: BLE001
        logger.warning("Skipping installer module '%s': import failed", name, exc_info=True)
        return

    if hasattr(package, "__path__"):
        _import_submodules(package)


def _import_submodules(package: ModuleType) -> None:
    failed: set[str] = set()

    def log_failure(module_name: str) -> None:
        if module_name not in failed:
            failed.add(module_name)
            logger.warning("Skipping installer module '%s': import failed", module_name, exc_info=True)

    for info in pkgutil.walk_packages(package.__path__, prefix=f"{package.__name__}.", onerror=log_failure):
        try:
            importlib.import_module(info.name)
        except Exception:  # noqa: BLE001
            log_failure(info.name)
