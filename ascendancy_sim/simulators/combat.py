"""Space battle resolution for Star Trek: Ascendancy.

This module resolves one battle between two fleets: an optional first-strike
exchange for the attacker, then simultaneous rounds until one side runs out
of ships.  The driver is :class:`BattleEngine`; :func:`resolve_battle` is the
convenience wrapper used by the Monte Carlo aggregator.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from ..game_models import CombatantSetup, EffectTag, FleetAllocation, total_ships
from .dice import DieRoller
from .effects import EffectProfile, dice_per_ship, first_strike_active, starbase_dice

logger = logging.getLogger(__name__)

# =============================
# Basic data structures
# =============================


class Side(str, Enum):
    ATTACKER = "attacker"
    DEFENDER = "defender"


class BattleOutcome(str, Enum):
    IN_PROGRESS = "in_progress"
    ATTACKER_WON = "attacker_won"
    DEFENDER_WON = "defender_won"


class BattlePhase(str, Enum):
    FIRST_STRIKE_EXCHANGE = "first_strike_exchange"
    SIMULTANEOUS = "simultaneous"


@dataclass
class BattleState:
    """Mutable holdings of one side for the duration of a single battle."""

    side: Side
    profile: EffectProfile
    fleets: List[FleetAllocation]
    stray_ships: int
    has_starbase: bool
    initial_ships: int
    volleys_fired: int = 0

    @classmethod
    def from_setup(cls, side: Side, setup: CombatantSetup, opponent: CombatantSetup) -> "BattleState":
        fleets = [f.copy() for f in setup.fleets]
        strays = max(0, int(setup.stray_ships))
        return cls(
            side=side,
            profile=EffectProfile.for_side(setup, opponent),
            fleets=fleets,
            stray_ships=strays,
            has_starbase=bool(setup.has_starbase),
            initial_ships=total_ships(fleets, strays),
        )

    def total_ships(self) -> int:
        return total_ships(self.fleets, self.stray_ships)

    def alive(self) -> bool:
        return self.total_ships() > 0

    @property
    def losses(self) -> int:
        return max(0, self.initial_ships - self.total_ships())

    def copy(self) -> "BattleState":
        return replace(self, fleets=[f.copy() for f in self.fleets])


@dataclass
class Die:
    face: int
    hit: bool
    source: str


@dataclass
class RollPool:
    """Every die one side rolled in a volley, plus hits granted without dice."""

    dice: List[Die] = field(default_factory=list)
    auto_hits: int = 0
    bonus_hits: int = 0

    def misses(self) -> List[Die]:
        return [d for d in self.dice if not d.hit]

    @property
    def hits(self) -> int:
        return self.auto_hits + self.bonus_hits + sum(1 for d in self.dice if d.hit)

    def faces(self) -> List[int]:
        return [d.face for d in self.dice]


@dataclass
class BattleResult:
    winner: Side
    outcome: BattleOutcome
    attacker_losses: int
    defender_losses: int
    attacker_remaining: int
    defender_remaining: int
    rounds: int = 0
    trace: Optional[Dict[str, List[Dict[str, Any]]]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "winner": self.winner.value,
            "attackerLosses": self.attacker_losses,
            "defenderLosses": self.defender_losses,
        }


# =============================
# Round resolution
# =============================


def _roll_ship_die(roller: DieRoller, profile: EffectProfile, reroll_ones: bool) -> Die:
    face = roller.roll()
    if reroll_ones and face == 1:
        face = roller.roll()
    hit = profile.is_hit(face)
    if not hit and profile.in_territory:
        face = roller.roll()
        hit = profile.is_hit(face)
    return Die(face=face, hit=hit, source="")


def roll_pool(state: BattleState, roller: DieRoller, first_volley: bool) -> RollPool:
    """Roll one volley for ``state`` and run the post-roll effect sweeps.

    Order: base dice (reroll-ones and territory rerolls inline), Stone of
    Gol, doubles-kill-on-miss, reroll-one-miss.  Each stage sees the pool as
    the previous one left it.
    """
    profile = state.profile
    pool = RollPool()
    if not profile.can_hit:
        return pool

    for alloc in state.fleets:
        if not alloc.active or alloc.ship_count <= 0:
            continue
        fleet = alloc.definition
        if first_volley and fleet.has(EffectTag.AUTO_HIT_FIRST_ROUND):
            pool.auto_hits += alloc.ship_count
            continue
        reroll_ones = fleet.has(EffectTag.REROLL_ONES)
        for _ in range(alloc.ship_count * dice_per_ship(fleet, profile.in_territory)):
            die = _roll_ship_die(roller, profile, reroll_ones)
            die.source = fleet.id
            pool.dice.append(die)

    for _ in range(state.stray_ships):
        die = _roll_ship_die(roller, profile, reroll_ones=False)
        die.source = "stray"
        pool.dice.append(die)

    for _ in range(starbase_dice(state.has_starbase, profile.capabilities)):
        face = roller.roll()
        pool.dice.append(Die(face=face, hit=profile.is_hit(face), source="starbase"))

    _apply_stone_of_gol(pool, profile, roller)
    _apply_doubles_kill(pool, profile)
    _apply_reroll_one_miss(pool, profile, roller)
    return pool


def _apply_stone_of_gol(pool: RollPool, profile: EffectProfile, roller: DieRoller) -> None:
    if not profile.stone_of_gol:
        return
    for die in pool.dice:
        if die.hit or not profile.stone_of_gol_triggers(die.face):
            continue
        die.face = roller.roll()
        die.hit = profile.is_hit(die.face)


def _apply_doubles_kill(pool: RollPool, profile: EffectProfile) -> None:
    if not profile.doubles_kill_on_miss:
        return
    counts = Counter(d.face for d in pool.misses())
    pool.bonus_hits += sum(1 for n in counts.values() if n >= 2)


def _apply_reroll_one_miss(pool: RollPool, profile: EffectProfile, roller: DieRoller) -> None:
    if not profile.reroll_one_miss:
        return
    misses = pool.misses()
    if not misses:
        return
    die = misses[0]
    die.face = roller.roll()
    die.hit = profile.is_hit(die.face)


def roll_hits(state: BattleState, roller: DieRoller, first_volley: bool = False) -> int:
    return roll_pool(state, roller, first_volley).hits


# =============================
# Hit allocation
# =============================


def allocate_hits(state: BattleState, hits: int) -> int:
    """Apply ``hits`` to ``state``; returns the number of ships destroyed.

    Fleets soak hits first, in their listed order.  A fleet that drops below
    its minimum size breaks up and its survivors join the stray ships.
    Whatever is left lands on strays; hits beyond the last ship are lost.
    """
    remaining = max(0, int(hits))
    before = state.total_ships()
    ignore_first = state.profile.ignore_first_casualty
    for alloc in state.fleets:
        if remaining <= 0:
            break
        if not alloc.active:
            continue
        absorbed = min(remaining, alloc.ship_count)
        lost = absorbed
        if ignore_first and lost > 0:
            lost -= 1
        alloc.ship_count = max(0, alloc.ship_count - lost)
        remaining -= absorbed
        if alloc.ship_count < alloc.definition.min_ships:
            state.stray_ships += alloc.ship_count
            alloc.ship_count = 0
            alloc.active = False
    if remaining > 0:
        state.stray_ships = max(0, state.stray_ships - remaining)
    return before - state.total_ships()


def max_hits(state: BattleState) -> int:
    """Most hits ``state`` can score in any single volley.

    Auto-hit fleets score at most one hit per ship, doubles-kill pairs at most
    one hit per two missed dice, so the die count bounds both.
    """
    if not state.profile.can_hit:
        return 0
    dice = state.stray_ships + starbase_dice(state.has_starbase, state.profile.capabilities)
    for alloc in state.fleets:
        if alloc.active and alloc.ship_count > 0:
            dice += alloc.ship_count * dice_per_ship(alloc.definition, state.profile.in_territory)
    return dice


def can_lose_ships(state: BattleState, hits: int) -> bool:
    # allocation is monotone in hits: if the ceiling costs nothing, nothing does
    return allocate_hits(state.copy(), hits) > 0


# =============================
# Core battle driver
# =============================


class BattleEngine:
    def __init__(
        self,
        attacker: CombatantSetup,
        defender: CombatantSetup,
        roller: Optional[DieRoller] = None,
        round_cap: Optional[int] = None,
        debug: bool = False,
        seed: Optional[int] = None,
    ):
        self.roller = roller if roller is not None else DieRoller(seed)
        self.round_cap = round_cap
        self.attacker = BattleState.from_setup(Side.ATTACKER, attacker, defender)
        self.defender = BattleState.from_setup(Side.DEFENDER, defender, attacker)
        self.first_strike = first_strike_active(attacker, self.defender.profile.capabilities)
        self.phase = (
            BattlePhase.FIRST_STRIKE_EXCHANGE if self.first_strike else BattlePhase.SIMULTANEOUS
        )
        self.outcome = BattleOutcome.IN_PROGRESS
        self.rounds_completed = 0
        self.trace: Optional[Dict[str, List[Dict[str, Any]]]] = {"rounds": []} if debug else None

    # ----- Public API -----

    def resolve(self) -> BattleResult:
        while self.outcome is BattleOutcome.IN_PROGRESS:
            self.step()
        return self.result()

    def step(self) -> BattleOutcome:
        """Advance the battle by one phase and return the new outcome."""
        if self.outcome is not BattleOutcome.IN_PROGRESS:
            return self.outcome
        if not (self.attacker.profile.can_hit or self.defender.profile.can_hit):
            # Nobody can ever score: the defender holds by default.
            self.outcome = BattleOutcome.DEFENDER_WON
            return self.outcome
        if self._deadlocked():
            logger.debug(
                "battle deadlocked after %d rounds: neither side can lose a ship",
                self.rounds_completed,
            )
            self.outcome = BattleOutcome.DEFENDER_WON
            return self.outcome
        if self.attacker.alive() and self.defender.alive():
            if self.phase is BattlePhase.FIRST_STRIKE_EXCHANGE:
                self._first_strike_exchange()
                self.phase = BattlePhase.SIMULTANEOUS
            else:
                self._simultaneous_round()
            self.rounds_completed += 1
        self.outcome = self._check_terminal()
        return self.outcome

    def result(self) -> BattleResult:
        winner = Side.ATTACKER if self.outcome is BattleOutcome.ATTACKER_WON else Side.DEFENDER
        return BattleResult(
            winner=winner,
            outcome=self.outcome,
            attacker_losses=self.attacker.losses,
            defender_losses=self.defender.losses,
            attacker_remaining=self.attacker.total_ships(),
            defender_remaining=self.defender.total_ships(),
            rounds=self.rounds_completed,
            trace=self.trace,
        )

    # ----- Phases -----

    def _volley(self, state: BattleState) -> RollPool:
        pool = roll_pool(state, self.roller, first_volley=state.volleys_fired == 0)
        if state.profile.can_hit:
            state.volleys_fired += 1
        return pool

    def _first_strike_exchange(self) -> None:
        att_pool = self._volley(self.attacker)
        def_lost = allocate_hits(self.defender, att_pool.hits)
        self._record(att_pool, None, 0, def_lost)

    def _simultaneous_round(self) -> None:
        att_pool = self._volley(self.attacker)
        def_pool = self._volley(self.defender)
        def_lost = allocate_hits(self.defender, att_pool.hits)
        att_lost = allocate_hits(self.attacker, def_pool.hits)
        self._record(att_pool, def_pool, att_lost, def_lost)

    def _record(
        self,
        att_pool: RollPool,
        def_pool: Optional[RollPool],
        att_lost: int,
        def_lost: int,
    ) -> None:
        if self.trace is None:
            return
        self.trace["rounds"].append(
            {
                "round": self.rounds_completed + 1,
                "phase": self.phase.value,
                "attacker_faces": att_pool.faces(),
                "defender_faces": def_pool.faces() if def_pool is not None else [],
                "attacker_hits": att_pool.hits,
                "defender_hits": def_pool.hits if def_pool is not None else 0,
                "attacker_losses": att_lost,
                "defender_losses": def_lost,
                "attacker_remaining": self.attacker.total_ships(),
                "defender_remaining": self.defender.total_ships(),
            }
        )

    # ----- Utility -----

    def _deadlocked(self) -> bool:
        """True when no volley from either side can ever destroy a ship.

        A round with no losses leaves both states unchanged, so once this
        holds it holds for every later round.
        """
        if not (self.attacker.alive() and self.defender.alive()):
            return False
        return not (
            can_lose_ships(self.defender, max_hits(self.attacker))
            or can_lose_ships(self.attacker, max_hits(self.defender))
        )

    def _check_terminal(self) -> BattleOutcome:
        attacker_remaining = self.attacker.total_ships()
        defender_remaining = self.defender.total_ships()
        if attacker_remaining > 0 and defender_remaining > 0:
            if self.round_cap is not None and self.rounds_completed >= self.round_cap:
                logger.warning(
                    "battle stopped at round cap %d with %d attacker / %d defender ships left",
                    self.round_cap,
                    attacker_remaining,
                    defender_remaining,
                )
                return BattleOutcome.DEFENDER_WON
            return BattleOutcome.IN_PROGRESS
        if attacker_remaining > 0:
            return BattleOutcome.ATTACKER_WON
        return BattleOutcome.DEFENDER_WON


def resolve_battle(
    attacker: CombatantSetup,
    defender: CombatantSetup,
    roller: Optional[DieRoller] = None,
    seed: Optional[int] = None,
    round_cap: Optional[int] = None,
    debug: bool = False,
) -> BattleResult:
    engine = BattleEngine(
        attacker,
        defender,
        roller=roller,
        round_cap=round_cap,
        debug=debug,
        seed=seed,
    )
    return engine.resolve()


__all__ = [
    "BattleEngine",
    "BattleOutcome",
    "BattlePhase",
    "BattleResult",
    "BattleState",
    "Die",
    "RollPool",
    "Side",
    "allocate_hits",
    "can_lose_ships",
    "max_hits",
    "resolve_battle",
    "roll_hits",
    "roll_pool",
]
