from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict

from ..core.exceptions import ConfigurationError
from ..core.settings import IdentityMappingConfig
from .strategies.base import MappingStrategy
from .strategies.custom_field_strategy import CustomFieldStrategy
from .strategies.direct_id_strategy import DirectIdStrategy
from .strategies.email_prefix_strategy import EmailPrefixStrategy

StrategyBuilder = Callable[[IdentityMappingConfig], MappingStrategy]


def _default_builders() -> Dict[str, StrategyBuilder]:
    return {
        "email_prefix": lambda cfg: EmailPrefixStrategy(cfg.email_domain),
        "direct_id": lambda cfg: DirectIdStrategy(),
        "custom_field": lambda cfg: CustomFieldStrategy(),
    }


@dataclass
class MappingStrategyFactory:
    """Factory Pattern: build the configured strategy; extra strategies can be registered."""

    builders: Dict[str, StrategyBuilder] = field(default_factory=_default_builders)

    def register(self, name: str, builder: StrategyBuilder) -> None:
        self.builders[name] = builder

    def create(self, config: IdentityMappingConfig, name: str | None = None) -> MappingStrategy:
        key = name or config.strategy.value
        builder = self.builders.get(key)
        if builder is None:
            raise ConfigurationError(f"Invalid mapping strategy configured: {key}")
        return builder(config)
