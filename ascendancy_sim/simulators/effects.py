"""Effect resolution helpers.

Each side's advancements are folded into a capability set once per battle;
the round resolver then asks these functions about thresholds, bypasses and
rerolls instead of re-scanning advancement records for every die.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet

from ..game_models import CombatantSetup, EffectTag, FleetDefinition

MAX_FACE = 6
BASE_TO_HIT = 5


def hit_threshold(weapons: int, opponent_shields: int) -> int:
    """Minimum natural face needed to score a hit.

    Unlike Eclipse cannons this is not clamped to 6: a threshold above six
    means only a shields-bypass effect can land a hit.
    """
    return max(1, BASE_TO_HIT - weapons) + opponent_shields


def has_shield_bypass(capabilities: FrozenSet[EffectTag]) -> bool:
    return (
        EffectTag.IGNORE_SHIELDS_ON_6 in capabilities
        or EffectTag.IGNORE_SHIELDS_ON_5_OR_6 in capabilities
    )


def can_hit(threshold: int, capabilities: FrozenSet[EffectTag]) -> bool:
    return threshold <= MAX_FACE or has_shield_bypass(capabilities)


def is_hit(face: int, threshold: int, capabilities: FrozenSet[EffectTag]) -> bool:
    if face >= threshold:
        return True
    if face == 6 and EffectTag.IGNORE_SHIELDS_ON_6 in capabilities:
        return True
    if face >= 5 and EffectTag.IGNORE_SHIELDS_ON_5_OR_6 in capabilities:
        return True
    return False


def first_strike_active(attacker: CombatantSetup, defender_capabilities: FrozenSet[EffectTag]) -> bool:
    """Whether the attacking side opens with a one-sided exchange.

    A cloaking-type first-strike advancement is cancelled by an opponent that
    blocks cloaking; any other first-strike source still applies.
    """
    blocks = EffectTag.BLOCKS_CLOAKING in defender_capabilities
    for adv in attacker.advancements:
        if not adv.has(EffectTag.FIRST_STRIKE):
            continue
        if blocks and adv.is_cloaking:
            continue
        return True
    return False


def dice_per_ship(fleet: FleetDefinition, in_territory: bool) -> int:
    if in_territory and fleet.has(EffectTag.DOUBLE_DICE_IN_TERRITORY):
        return 2
    return 1


def starbase_dice(has_starbase: bool, capabilities: FrozenSet[EffectTag]) -> int:
    if not has_starbase:
        return 0
    if EffectTag.WEAPONIZED_STARBASES in capabilities:
        return 3
    return 1


@dataclass(frozen=True)
class EffectProfile:
    """Per-side view of every effect the round resolver consults."""

    capabilities: FrozenSet[EffectTag]
    threshold: int
    in_territory: bool = False
    ascendancy: int = 0

    @classmethod
    def for_side(cls, setup: CombatantSetup, opponent: CombatantSetup) -> "EffectProfile":
        return cls(
            capabilities=setup.capabilities(),
            threshold=hit_threshold(setup.weapons, opponent.shields),
            in_territory=bool(setup.in_territory),
            ascendancy=int(setup.ascendancy or 0),
        )

    @property
    def can_hit(self) -> bool:
        return can_hit(self.threshold, self.capabilities)

    def is_hit(self, face: int) -> bool:
        return is_hit(face, self.threshold, self.capabilities)

    @property
    def stone_of_gol(self) -> bool:
        return EffectTag.STONE_OF_GOL in self.capabilities

    @property
    def doubles_kill_on_miss(self) -> bool:
        return EffectTag.DOUBLES_KILL_ON_MISS in self.capabilities

    @property
    def reroll_one_miss(self) -> bool:
        return EffectTag.REROLL_ONE_MISS in self.capabilities

    @property
    def ignore_first_casualty(self) -> bool:
        return EffectTag.IGNORE_FIRST_CASUALTY in self.capabilities

    def stone_of_gol_triggers(self, face: int) -> bool:
        return self.stone_of_gol and face >= self.ascendancy


__all__ = [
    "BASE_TO_HIT",
    "EffectProfile",
    "can_hit",
    "dice_per_ship",
    "first_strike_active",
    "has_shield_bypass",
    "hit_threshold",
    "is_hit",
    "starbase_dice",
]
