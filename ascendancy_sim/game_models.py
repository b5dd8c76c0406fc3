from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional


class EffectTag(str, Enum):
    # advancement effects
    IGNORE_SHIELDS_ON_6 = "ignore_shields_on_6"
    IGNORE_SHIELDS_ON_5_OR_6 = "ignore_shields_on_5_or_6"
    DOUBLES_KILL_ON_MISS = "doubles_kill_on_miss"
    FIRST_STRIKE = "first_strike"
    IGNORE_FIRST_CASUALTY = "ignore_first_casualty"
    REROLL_ONE_MISS = "reroll_one_miss"
    BLOCKS_CLOAKING = "blocks_cloaking"
    STONE_OF_GOL = "stone_of_gol"
    WEAPONIZED_STARBASES = "weaponized_starbases"
    # fleet effects
    REROLL_ONES = "reroll_ones"
    DOUBLE_DICE_IN_TERRITORY = "double_dice_in_territory"
    AUTO_HIT_FIRST_ROUND = "auto_hit_first_round"


# Catalog files use the camelCase keys of the published data sheets.
_EFFECT_ALIASES: Dict[str, EffectTag] = {
    "ignoreShieldsOn6": EffectTag.IGNORE_SHIELDS_ON_6,
    "ignoreShieldsOn5Or6": EffectTag.IGNORE_SHIELDS_ON_5_OR_6,
    "doublesKillOnMiss": EffectTag.DOUBLES_KILL_ON_MISS,
    "firstStrike": EffectTag.FIRST_STRIKE,
    "ignoreFirstCasualty": EffectTag.IGNORE_FIRST_CASUALTY,
    "rerollOneMiss": EffectTag.REROLL_ONE_MISS,
    "blocksCloaking": EffectTag.BLOCKS_CLOAKING,
    "stoneOfGol": EffectTag.STONE_OF_GOL,
    "weaponizedStarbases": EffectTag.WEAPONIZED_STARBASES,
    "rerollOnes": EffectTag.REROLL_ONES,
    "doubleDiceInTerritory": EffectTag.DOUBLE_DICE_IN_TERRITORY,
    "autoHitFirstRound": EffectTag.AUTO_HIT_FIRST_ROUND,
}


def parse_effects(raw: Any) -> FrozenSet[EffectTag]:
    """Turn an effect bundle into a frozenset of :class:`EffectTag`.

    Accepts either a mapping of flag name to truthy value (the catalog
    format, ``{"firstStrike": true}``) or an iterable of tag names. Unknown
    keys and non-boolean payloads such as ``productionOnKill`` are ignored.
    """
    if not raw:
        return frozenset()
    if isinstance(raw, Mapping):
        names = [k for k, v in raw.items() if v is True]
    else:
        names = list(raw)
    tags = set()
    for name in names:
        if isinstance(name, EffectTag):
            tags.add(name)
            continue
        key = str(name)
        if key in _EFFECT_ALIASES:
            tags.add(_EFFECT_ALIASES[key])
            continue
        try:
            tags.add(EffectTag(key))
        except ValueError:
            continue
    return frozenset(tags)


@dataclass(frozen=True)
class Advancement:
    """Catalog entry for a faction advancement."""

    faction: str
    name: str
    ability: str = ""
    is_starting_advancement: bool = False
    effects: FrozenSet[EffectTag] = field(default_factory=frozenset)

    @property
    def is_cloaking(self) -> bool:
        return "cloak" in self.name.lower()

    def has(self, tag: EffectTag) -> bool:
        return tag in self.effects


@dataclass(frozen=True)
class FleetDefinition:
    """Catalog entry for a named fleet card."""

    faction: str
    id: str
    name: str
    min_ships: int
    max_ships: int
    ability: str = ""
    effects: FrozenSet[EffectTag] = field(default_factory=frozenset)
    production_on_kill: int = 0

    def has(self, tag: EffectTag) -> bool:
        return tag in self.effects

    def clamp(self, count: int) -> int:
        return max(self.min_ships, min(self.max_ships, int(count)))


@dataclass
class FleetAllocation:
    definition: FleetDefinition
    ship_count: int
    active: bool = True

    @classmethod
    def create(cls, definition: FleetDefinition, ship_count: Optional[int] = None) -> "FleetAllocation":
        count = definition.min_ships if ship_count is None else definition.clamp(ship_count)
        return cls(definition=definition, ship_count=count)

    @property
    def ships(self) -> int:
        return self.ship_count if self.active else 0

    def copy(self) -> "FleetAllocation":
        return replace(self)


@dataclass
class CombatantSetup:
    """Everything the engine needs to know about one side of a battle."""

    faction: str = ""
    weapons: int = 0
    shields: int = 0
    advancements: List[Advancement] = field(default_factory=list)
    fleets: List[FleetAllocation] = field(default_factory=list)
    stray_ships: int = 0
    has_starbase: bool = False
    in_territory: bool = False
    ascendancy: int = 0

    def capabilities(self) -> FrozenSet[EffectTag]:
        tags: set = set()
        for adv in self.advancements:
            tags.update(adv.effects)
        return frozenset(tags)

    def fleet_ships(self) -> int:
        return sum(f.ships for f in self.fleets)

    def total_ships(self) -> int:
        return self.fleet_ships() + max(0, self.stray_ships)

    def advancement_names(self) -> List[str]:
        return [adv.name for adv in self.advancements]


def total_ships(fleets: Iterable[FleetAllocation], stray_ships: int) -> int:
    return sum(f.ships for f in fleets) + max(0, stray_ships)


__all__ = [
    "Advancement",
    "CombatantSetup",
    "EffectTag",
    "FleetAllocation",
    "FleetDefinition",
    "parse_effects",
    "total_ships",
]
