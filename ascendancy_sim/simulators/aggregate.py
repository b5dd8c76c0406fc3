"""Monte Carlo wrapper around :mod:`ascendancy_sim.simulators.combat`."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import concurrent.futures
import logging

from ..game_models import CombatantSetup
from .combat import BattleEngine, Side
from .dice import DieRoller, spawn_seeds

logger = logging.getLogger(__name__)

DEFAULT_BATTLES = 1000


@dataclass
class CasualtyStats:
    """Losses for one side, counted only over the battles it won."""

    initial_ships: int = 0
    wins: int = 0
    total_losses: int = 0

    @property
    def average_losses(self) -> float:
        if self.wins <= 0:
            return 0.0
        return self.total_losses / self.wins

    @property
    def average_remaining(self) -> float:
        if self.wins <= 0:
            return 0.0
        return self.initial_ships - self.average_losses

    @property
    def loss_percentage(self) -> float:
        if self.wins <= 0 or self.initial_ships <= 0:
            return 0.0
        return self.average_losses / self.initial_ships * 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalLosses": self.total_losses,
            "averageLosses": self.average_losses,
            "averageRemaining": self.average_remaining,
            "lossPercentage": self.loss_percentage,
        }


@dataclass
class AggregateResult:
    attacker_wins: int = 0
    defender_wins: int = 0
    total_battles: int = 0
    attacker_casualties: CasualtyStats = field(default_factory=CasualtyStats)
    defender_casualties: CasualtyStats = field(default_factory=CasualtyStats)

    @property
    def attacker_win_rate(self) -> float:
        return self.attacker_wins / self.total_battles if self.total_battles else 0.0

    @property
    def defender_win_rate(self) -> float:
        return self.defender_wins / self.total_battles if self.total_battles else 0.0

    def merge(self, other: "AggregateResult") -> None:
        self.attacker_wins += other.attacker_wins
        self.defender_wins += other.defender_wins
        self.total_battles += other.total_battles
        self.attacker_casualties.wins += other.attacker_casualties.wins
        self.attacker_casualties.total_losses += other.attacker_casualties.total_losses
        self.defender_casualties.wins += other.defender_casualties.wins
        self.defender_casualties.total_losses += other.defender_casualties.total_losses

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attackerWins": self.attacker_wins,
            "defenderWins": self.defender_wins,
            "totalBattles": self.total_battles,
            "attackerCasualties": self.attacker_casualties.to_dict(),
            "defenderCasualties": self.defender_casualties.to_dict(),
        }


def _empty_result(attacker: CombatantSetup, defender: CombatantSetup) -> AggregateResult:
    return AggregateResult(
        attacker_casualties=CasualtyStats(initial_ships=attacker.total_ships()),
        defender_casualties=CasualtyStats(initial_ships=defender.total_ships()),
    )


def _simulate_chunk(
    attacker: CombatantSetup,
    defender: CombatantSetup,
    n_battles: int,
    roller: DieRoller,
    round_cap: Optional[int],
) -> AggregateResult:
    out = _empty_result(attacker, defender)
    for _ in range(n_battles):
        outcome = BattleEngine(attacker, defender, roller=roller, round_cap=round_cap).resolve()
        out.total_battles += 1
        if outcome.winner is Side.ATTACKER:
            out.attacker_wins += 1
            out.attacker_casualties.wins += 1
            out.attacker_casualties.total_losses += outcome.attacker_losses
        else:
            out.defender_wins += 1
            out.defender_casualties.wins += 1
            out.defender_casualties.total_losses += outcome.defender_losses
    return out


def _seeded_chunk(
    attacker: CombatantSetup,
    defender: CombatantSetup,
    n_battles: int,
    seed: int,
    round_cap: Optional[int],
) -> AggregateResult:
    return _simulate_chunk(attacker, defender, n_battles, DieRoller(seed), round_cap)


def _chunks(total: int, workers: int) -> List[int]:
    base, extra = divmod(total, workers)
    sizes = [base + (1 if i < extra else 0) for i in range(workers)]
    return [s for s in sizes if s > 0]


def run_simulation(
    attacker: CombatantSetup,
    defender: CombatantSetup,
    n_battles: int = DEFAULT_BATTLES,
    seed: Optional[int] = None,
    roller: Optional[DieRoller] = None,
    round_cap: Optional[int] = None,
    workers: int = 1,
) -> AggregateResult:
    """Fight ``n_battles`` independent battles and collect win/loss statistics.

    Every battle starts from the same setups; the engine copies the fleet
    holdings so nothing leaks from one battle to the next.  With
    ``workers > 1`` the batch is split across processes, each drawing from its
    own seeded stream.
    """
    n_battles = max(0, int(n_battles))
    logger.info(
        "simulating %d battles (%d vs %d ships, workers=%d)",
        n_battles,
        attacker.total_ships(),
        defender.total_ships(),
        workers,
    )
    if roller is not None or workers <= 1 or n_battles < 2:
        result = _simulate_chunk(
            attacker,
            defender,
            n_battles,
            roller if roller is not None else DieRoller(seed),
            round_cap,
        )
    else:
        result = _run_parallel(attacker, defender, n_battles, seed, round_cap, workers)
    logger.info(
        "attacker won %d/%d (%.1f%%)",
        result.attacker_wins,
        result.total_battles,
        result.attacker_win_rate * 100.0,
    )
    return result


def _run_parallel(
    attacker: CombatantSetup,
    defender: CombatantSetup,
    n_battles: int,
    seed: Optional[int],
    round_cap: Optional[int],
    workers: int,
) -> AggregateResult:
    sizes = _chunks(n_battles, workers)
    seeds = spawn_seeds(seed, len(sizes))
    result = _empty_result(attacker, defender)
    futures: Dict[concurrent.futures.Future, Tuple[int, int]] = {}
    with concurrent.futures.ProcessPoolExecutor(max_workers=workers) as executor:
        for index, (size, chunk_seed) in enumerate(zip(sizes, seeds)):
            future = executor.submit(_seeded_chunk, attacker, defender, size, chunk_seed, round_cap)
            futures[future] = (index, size)
        for future in concurrent.futures.as_completed(futures):
            index, size = futures[future]
            result.merge(future.result())
            logger.debug("merged chunk %d (%d battles)", index, size)
    return result


__all__ = [
    "AggregateResult",
    "CasualtyStats",
    "DEFAULT_BATTLES",
    "run_simulation",
]
