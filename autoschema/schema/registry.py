"""
Model registry.

Every model class registers itself on creation (see ``Model.__init_subclass__``).
The registry answers the questions that would otherwise need a filesystem
scan: which models exist, which concrete subclasses a model has, and which
subclass a stored discriminator tag names.
"""

from __future__ import annotations

import importlib
import logging
import pkgutil
from typing import Callable, Dict, List, Optional, Union

from ..exceptions import UnknownModelError
from .naming import snake_case

logger = logging.getLogger(__name__)


def is_abstract(model: type) -> bool:
    """A model is abstract only when its own class body says so."""
    return bool(model.__dict__.get("__abstract__", False))


def discriminator_for(model: type) -> str:
    """Tag stored in the ``type`` column for rows of ``model``."""
    return model.__dict__.get("__discriminator__") or snake_case(model.__name__)


def _qualified(model: type) -> str:
    return f"{model.__module__}.{model.__qualname__}"


class ModelRegistry:
    """Ordered set of model classes known to the process."""

    def __init__(self) -> None:
        self._models: Dict[str, type] = {}
        self._listeners: List[Callable[[], None]] = []

    def register(self, model: type) -> None:
        """Add (or replace, on redefinition) a model class."""
        self._models[_qualified(model)] = model
        self._changed()

    def unregister(self, model: type) -> None:
        self._models.pop(_qualified(model), None)
        self._changed()

    def on_change(self, callback: Callable[[], None]) -> None:
        """Call ``callback`` whenever the set of models changes."""
        self._listeners.append(callback)

    def _changed(self) -> None:
        for callback in self._listeners:
            callback()

    def models(self) -> List[type]:
        return list(self._models.values())

    def concrete(self) -> List[type]:
        return [model for model in self._models.values() if not is_abstract(model)]

    def namespace(self) -> Dict[str, type]:
        """Simple class name -> model, used to resolve string annotations."""
        return {model.__name__: model for model in self._models.values()}

    def get(self, name: str) -> type:
        """Look a model up by qualified or simple class name."""
        if name in self._models:
            return self._models[name]
        matches = [model for model in self._models.values() if model.__name__ == name]
        if not matches:
            raise UnknownModelError(f"Model '{name}' is not registered")
        return matches[-1]

    def resolve(self, ref: Union[str, type]) -> type:
        if isinstance(ref, type):
            return ref
        return self.get(ref)

    def subclasses_of(self, model: type) -> List[type]:
        """Concrete registered subclasses of ``model``, in registration order."""
        return [
            candidate
            for candidate in self._models.values()
            if candidate is not model
            and issubclass(candidate, model)
            and not is_abstract(candidate)
        ]

    def discriminated(self, model: type, tag: str) -> Optional[type]:
        """The concrete subclass of ``model`` whose discriminator is ``tag``."""
        for candidate in self.subclasses_of(model):
            if discriminator_for(candidate) == tag:
                return candidate
        return None

    def discover(self, package: str) -> List[type]:
        """
        Import every module below ``package`` and return its concrete models.

        Importing is what registers the classes; modules that fail to import
        are logged and skipped so one broken module does not hide the rest.
        """
        root = importlib.import_module(package)
        search_path = getattr(root, "__path__", None)
        if search_path is not None:
            for info in pkgutil.walk_packages(search_path, prefix=f"{package}."):
                try:
                    importlib.import_module(info.name)
                except Exception as e:
                    logger.warning(f"Could not import model module '{info.name}': {e}")

        return [
            model
            for model in self.concrete()
            if model.__module__ == package or model.__module__.startswith(f"{package}.")
        ]


# Global registry instance
registry = ModelRegistry()
