"""Utilities for loading faction advancement and fleet catalogs."""
from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional

from .config import load_document
from .game_models import (
    Advancement,
    CombatantSetup,
    EffectTag,
    FleetAllocation,
    FleetDefinition,
    parse_effects,
)


def _pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def advancement_from_dict(raw: Mapping[str, Any]) -> Advancement:
    return Advancement(
        faction=str(raw.get("faction", "")).lower(),
        name=str(raw["name"]),
        ability=str(raw.get("ability", "")),
        is_starting_advancement=bool(_pick(raw, "isStartingAdvancement", "is_starting_advancement", default=False)),
        effects=parse_effects(raw.get("effects")),
    )


def fleet_from_dict(raw: Mapping[str, Any]) -> FleetDefinition:
    effects = raw.get("effects") or {}
    min_ships = int(_pick(raw, "minShips", "min_ships", default=1))
    max_ships = int(_pick(raw, "maxShips", "max_ships", default=min_ships))
    production = 0
    if isinstance(effects, Mapping):
        production = int(_pick(effects, "productionOnKill", "production_on_kill", default=0))
    return FleetDefinition(
        faction=str(raw.get("faction", "")).lower(),
        id=str(raw["id"]),
        name=str(raw.get("name", raw["id"])),
        min_ships=min_ships,
        max_ships=max(min_ships, max_ships),
        ability=str(raw.get("ability", "")),
        effects=parse_effects(effects),
        production_on_kill=production,
    )


class CatalogRegistry:
    """Loads a catalog file on demand and indexes it by faction."""

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path or os.path.join(os.path.dirname(__file__), "data", "catalog.json")
        self._advancements: Dict[str, Advancement] = {}
        self._fleets: Dict[str, FleetDefinition] = {}
        self._meta: Dict[str, Any] = {}
        self._loaded = False

    @classmethod
    def from_records(
        cls,
        advancements: List[Mapping[str, Any]],
        fleets: List[Mapping[str, Any]],
    ) -> "CatalogRegistry":
        registry = cls()
        registry._ingest({"advancements": advancements, "fleets": fleets})
        registry._loaded = True
        return registry

    def load(self) -> None:
        if self._loaded:
            return
        self._ingest(load_document(self._path))
        self._loaded = True

    def _ingest(self, payload: Mapping[str, Any]) -> None:
        self._meta = dict(payload.get("_meta", {}))
        for block in payload.get("advancements", []) or []:
            adv = advancement_from_dict(block)
            self._advancements[adv.name] = adv
        for block in payload.get("fleets", []) or []:
            fleet = fleet_from_dict(block)
            self._fleets[fleet.id] = fleet

    @property
    def meta(self) -> Dict[str, Any]:
        self.load()
        return self._meta

    def factions(self) -> List[str]:
        self.load()
        names = {a.faction for a in self._advancements.values()}
        names.update(f.faction for f in self._fleets.values())
        return sorted(n for n in names if n)

    def advancements(self, faction: Optional[str] = None) -> List[Advancement]:
        self.load()
        items = list(self._advancements.values())
        if faction is None:
            return items
        faction = faction.lower()
        return [a for a in items if a.faction == faction]

    def starting_advancements(self, faction: str) -> List[Advancement]:
        return [a for a in self.advancements(faction) if a.is_starting_advancement]

    def fleets(self, faction: Optional[str] = None) -> List[FleetDefinition]:
        self.load()
        items = list(self._fleets.values())
        if faction is None:
            return items
        faction = faction.lower()
        return [f for f in items if f.faction == faction]

    def get_advancement(self, name: str) -> Advancement:
        self.load()
        try:
            return self._advancements[name]
        except KeyError as exc:
            available = ", ".join(sorted(self._advancements))
            raise KeyError(f"Unknown advancement '{name}'. Available: {available}") from exc

    def get_fleet(self, fleet_id: str) -> FleetDefinition:
        self.load()
        try:
            return self._fleets[fleet_id]
        except KeyError as exc:
            available = ", ".join(sorted(self._fleets))
            raise KeyError(f"Unknown fleet '{fleet_id}'. Available: {available}") from exc

    def describe(self, faction: Optional[str] = None) -> Dict[str, Any]:
        factions = [faction.lower()] if faction else self.factions()
        out: Dict[str, Any] = {}
        for name in factions:
            out[name] = {
                "advancements": [
                    {
                        "name": a.name,
                        "ability": a.ability,
                        "isStartingAdvancement": a.is_starting_advancement,
                        "effects": sorted(t.value for t in a.effects),
                    }
                    for a in self.advancements(name)
                ],
                "fleets": [
                    {
                        "id": f.id,
                        "name": f.name,
                        "minShips": f.min_ships,
                        "maxShips": f.max_ships,
                        "ability": f.ability,
                        "effects": sorted(t.value for t in f.effects),
                    }
                    for f in self.fleets(name)
                ],
            }
        return out


_registry: Optional[CatalogRegistry] = None


def get_registry(path: Optional[str] = None) -> CatalogRegistry:
    global _registry
    if _registry is None or path is not None:
        _registry = CatalogRegistry(path=path)
    return _registry


# ============================================================================
# Setup building
# ============================================================================


def _as_int(value: Any, field: str, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field} must be a whole number, got {value!r}") from exc


def _clamp(value: Any, low: int, high: int, field: str) -> int:
    return max(low, min(high, _as_int(value, field, default=low)))


def _check_faction(faction: str, owner: str, kind: str, name: str) -> None:
    if faction and owner and owner != faction:
        raise ValueError(f"{kind} '{name}' belongs to {owner}, not {faction}")


def build_setup(
    raw: Mapping[str, Any],
    registry: Optional[CatalogRegistry] = None,
    max_weapons: int = 5,
    max_shields: int = 5,
) -> CombatantSetup:
    """Build a :class:`CombatantSetup` from a request dict.

    Numbers are clamped into legal ranges here so the battle engine never has
    to: weapons/shields to ``0..max``, fleet sizes to the card's bounds,
    stray ships to zero or more.  A faction's starting advancements are always
    included, and naming another faction's advancement or fleet is a
    :class:`ValueError`.  Ascendancy only matters with the Stone of Gol and is
    zeroed otherwise.
    """
    registry = registry or get_registry()
    faction = str(_pick(raw, "faction", default="")).lower()

    advancements: List[Advancement] = []
    seen = set()
    if faction:
        for adv in registry.starting_advancements(faction):
            advancements.append(adv)
            seen.add(adv.name)
    for name in raw.get("advancements", []) or []:
        if name in seen:
            continue
        adv = registry.get_advancement(name)
        _check_faction(faction, adv.faction, "Advancement", name)
        advancements.append(adv)
        seen.add(name)

    fleets: List[FleetAllocation] = []
    for entry in raw.get("fleets", []) or []:
        if isinstance(entry, str):
            fleet_id, count = entry, None
        else:
            fleet_id = str(_pick(entry, "id", "fleet"))
            count = _pick(entry, "ships", "shipCount", "ship_count")
            if count is not None:
                count = _as_int(count, f"{fleet_id} ships")
        fleet = registry.get_fleet(fleet_id)
        _check_faction(faction, fleet.faction, "Fleet", fleet_id)
        fleets.append(FleetAllocation.create(fleet, count))

    setup = CombatantSetup(
        faction=faction,
        weapons=_clamp(raw.get("weapons"), 0, max_weapons, "weapons"),
        shields=_clamp(raw.get("shields"), 0, max_shields, "shields"),
        advancements=advancements,
        fleets=fleets,
        stray_ships=max(0, _as_int(_pick(raw, "strayShips", "stray_ships", "individualShips"), "strayShips")),
        has_starbase=bool(_pick(raw, "starbase", "hasStarbase", "has_starbase", default=False)),
        in_territory=bool(_pick(raw, "territory", "inTerritory", "in_territory", default=False)),
    )
    if EffectTag.STONE_OF_GOL in setup.capabilities():
        setup.ascendancy = max(0, _as_int(raw.get("ascendancy"), "ascendancy"))
    return setup


def validate_sides(attacker: CombatantSetup, defender: CombatantSetup) -> None:
    if attacker.total_ships() <= 0 or defender.total_ships() <= 0:
        raise ValueError("Both players must have at least one ship")


__all__ = [
    "CatalogRegistry",
    "advancement_from_dict",
    "build_setup",
    "fleet_from_dict",
    "get_registry",
    "validate_sides",
]
