"""
Registry of the built-in filters.

Maps filter names (e.g. "invert", "trolley") to their implementations. The set
of filters is fixed when the registry is built; there is no runtime
registration.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from pixelpipe.core import filters
from pixelpipe.utils.exceptions import ValidationError

FilterFunc = Callable[..., bytes]


class FilterName(str, Enum):
    """Canonical filter names."""

    INVERT = "invert"
    GRAYSCALE = "grayscale"
    TROLLEY = "trolley"
    WASTED = "wasted"
    DEEPFRY = "deepfry"
    STRETCH = "stretch"
    SQUISH = "squish"
    FISHEYE = "fisheye"


@dataclass(frozen=True)
class FilterDefinition:
    """A filter implementation with its parameter defaults."""

    name: str
    func: FilterFunc
    defaults: Mapping[str, float] = field(default_factory=dict)
    uses_assets: bool = False

    def bind(self, params: Mapping[str, Any] | None = None) -> dict[str, float]:
        """
        Merge parameter overrides with the defaults.

        Args:
            params: Overrides keyed by parameter name (optional)

        Returns:
            Complete keyword arguments for func

        Raises:
            ValidationError: If a parameter is unknown, not numeric, or not positive
        """
        bound = dict(self.defaults)
        for key, value in (params or {}).items():
            if key not in self.defaults:
                allowed = ", ".join(self.defaults) or "none"
                raise ValidationError(
                    f"Filter {self.name!r} has no parameter {key!r} (parameters: {allowed})",
                    field=f"{self.name}.{key}",
                )
            if isinstance(value, bool):
                raise ValidationError(
                    f"{self.name}.{key} must be a number, got {value!r}",
                    field=f"{self.name}.{key}",
                )
            try:
                number = float(value)
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    f"{self.name}.{key} must be a number, got {value!r}",
                    field=f"{self.name}.{key}",
                ) from e
            if not number > 0:
                raise ValidationError(
                    f"{self.name}.{key} must be positive, got {value!r}",
                    field=f"{self.name}.{key}",
                )
            bound[key] = number
        return bound


class FilterRegistry:
    """Read-only mapping from filter name to FilterDefinition."""

    def __init__(self, definitions: Iterable[FilterDefinition]) -> None:
        impls: dict[str, FilterDefinition] = {}
        for definition in definitions:
            if definition.name in impls:
                raise ValueError(f"Duplicate filter name: {definition.name!r}")
            impls[definition.name] = definition
        self._impls = MappingProxyType(impls)

    def resolve(self, name: str) -> FilterDefinition | None:
        """Return the definition for name, or None if unknown."""
        return self._impls.get(name)

    def names(self) -> list[str]:
        """Return the registered filter names in registration order."""
        return list(self._impls.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._impls

    def __len__(self) -> int:
        return len(self._impls)


BUILTIN_FILTERS = (
    FilterDefinition(FilterName.INVERT.value, filters.invert),
    FilterDefinition(FilterName.GRAYSCALE.value, filters.grayscale),
    FilterDefinition(
        FilterName.TROLLEY.value, filters.trolley, {"stretch_amount": 2}, uses_assets=True
    ),
    FilterDefinition(FilterName.WASTED.value, filters.wasted, uses_assets=True),
    FilterDefinition(FilterName.DEEPFRY.value, filters.deepfry),
    FilterDefinition(FilterName.STRETCH.value, filters.stretch, {"factor": 3}),
    FilterDefinition(FilterName.SQUISH.value, filters.squish, {"factor": 3}),
    FilterDefinition(FilterName.FISHEYE.value, filters.fisheye, {"radius": 2}),
)

_registry: FilterRegistry | None = None


def get_registry() -> FilterRegistry:
    """Return the global filter registry. Creates it on first call."""
    global _registry
    if _registry is None:
        _registry = FilterRegistry(BUILTIN_FILTERS)
    return _registry
