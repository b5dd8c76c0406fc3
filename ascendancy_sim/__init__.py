"""Ascendancy battle simulator: Monte Carlo odds for space combat."""

from importlib import import_module
from typing import Any

__version__ = "0.1.0"
__all__ = [
    "Advancement",
    "AggregateResult",
    "BattleEngine",
    "BattleResult",
    "CatalogRegistry",
    "CombatantSetup",
    "DieRoller",
    "EffectTag",
    "FleetAllocation",
    "FleetDefinition",
    "SequenceRoller",
    "Side",
    "build_setup",
    "get_registry",
    "resolve_battle",
    "run_simulation",
    "__version__",
]

_EXPORTS = {
    "Advancement": ("game_models", "Advancement"),
    "CombatantSetup": ("game_models", "CombatantSetup"),
    "EffectTag": ("game_models", "EffectTag"),
    "FleetAllocation": ("game_models", "FleetAllocation"),
    "FleetDefinition": ("game_models", "FleetDefinition"),
    "CatalogRegistry": ("catalog", "CatalogRegistry"),
    "build_setup": ("catalog", "build_setup"),
    "get_registry": ("catalog", "get_registry"),
    "DieRoller": ("simulators.dice", "DieRoller"),
    "SequenceRoller": ("simulators.dice", "SequenceRoller"),
    "BattleEngine": ("simulators.combat", "BattleEngine"),
    "BattleResult": ("simulators.combat", "BattleResult"),
    "Side": ("simulators.combat", "Side"),
    "resolve_battle": ("simulators.combat", "resolve_battle"),
    "AggregateResult": ("simulators.aggregate", "AggregateResult"),
    "run_simulation": ("simulators.aggregate", "run_simulation"),
}


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module_name, attr_name = _EXPORTS[name]
        module = import_module(f".{module_name}", __name__)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:
    return sorted(set(list(globals().keys()) + list(__all__)))
