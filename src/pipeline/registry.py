# src/pipeline/registry.py — v1
"""Step registry — dynamic loading of the generation steps.

Loads step classes from STEP_REGISTRY config, instantiates them with the
injected oracle, and returns StepDefinitions in canonical order.
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from specweaver.config.pipeline import STEP_REGISTRY, step_index
from specweaver.pipeline.step import BaseStep, StepDefinition

if TYPE_CHECKING:
    from specweaver.config.settings import Settings
    from specweaver.llm.base_client import BaseOracle

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Raised when step loading or validation fails."""


class StepRegistry:
    """Registry of the pipeline's generation steps.

    Steps are loaded from the STEP_REGISTRY config list. Unlike optional
    plugins, a step that fails to import is a hard error: the pipeline
    order is fixed.
    """

    def __init__(self, oracle: BaseOracle, settings: Settings | None = None) -> None:
        self._oracle = oracle
        self._settings = settings
        self._steps: dict[str, BaseStep] = {}

    @property
    def steps(self) -> dict[str, BaseStep]:
        """Return mapping of step_id -> step instance."""
        return dict(self._steps)

    @property
    def step_ids(self) -> list[str]:
        """Registered step ids in canonical order."""
        return sorted(self._steps, key=step_index)

    def load_all(self, class_paths: list[str] | None = None) -> None:
        """Import and instantiate every step class."""
        for class_path in class_paths or STEP_REGISTRY:
            step = self._instantiate(class_path)
            self.register(step)
            logger.debug("Loaded step: %s (%s)", step.step_id, step.role)
        logger.info("Registry loaded %d steps", len(self._steps))

    def register(self, step: BaseStep) -> None:
        """Manually register a step instance."""
        if step.step_id in self._steps:
            logger.warning("Overwriting existing step: %s", step.step_id)
        self._steps[step.step_id] = step

    def get(self, step_id: str) -> BaseStep | None:
        return self._steps.get(step_id)

    def get_or_raise(self, step_id: str) -> BaseStep:
        step = self._steps.get(step_id)
        if step is None:
            raise RegistryError(f"Step '{step_id}' not found in registry")
        return step

    def validate_dependencies(self) -> list[str]:
        """Check that every declared dependency is registered and runs earlier.

        Returns:
            List of error messages (empty if valid).
        """
        errors: list[str] = []
        for step_id, step in self._steps.items():
            for dep in sorted(step.dependencies):
                if dep not in self._steps:
                    errors.append(
                        f"Step '{step_id}' depends on '{dep}' which is not registered"
                    )
                elif step_index(dep) >= step_index(step_id):
                    errors.append(f"Step '{step_id}' depends on later step '{dep}'")
        return errors

    def definitions(self) -> list[StepDefinition]:
        """StepDefinitions in canonical order."""
        return [self._steps[step_id].definition() for step_id in self.step_ids]

    def _instantiate(self, class_path: str) -> BaseStep:
        cls = _import_step_class(class_path)
        if self._settings is None:
            return cls(self._oracle)
        return cls(
            self._oracle,
            max_tokens=self._settings.llm_max_tokens,
            default_temperature=self._settings.llm_temperature,
        )


def build_default_steps(oracle: BaseOracle, settings: Settings | None = None) -> list[StepDefinition]:
    """Load the fixed seven-step pipeline."""
    registry = StepRegistry(oracle, settings)
    registry.load_all()
    errors = registry.validate_dependencies()
    if errors:
        raise RegistryError("; ".join(errors))
    return registry.definitions()


def _import_step_class(class_path: str) -> type[BaseStep]:
    """Import a step class from a dotted path.

    Args:
        class_path: e.g. 'specweaver.pipeline.steps.architect.ArchitectStep'
    """
    parts = class_path.rsplit(".", 1)
    if len(parts) != 2:
        raise RegistryError(f"Invalid class path: {class_path}")
    module_path, class_name = parts

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise RegistryError(f"Cannot import module {module_path}: {exc}") from exc

    cls = getattr(module, class_name, None)
    if cls is None:
        raise RegistryError(f"Class {class_name} not found in {module_path}")

    if not isinstance(cls, type) or not issubclass(cls, BaseStep):
        raise RegistryError(f"{class_path} is not a BaseStep subclass")

    return cls
