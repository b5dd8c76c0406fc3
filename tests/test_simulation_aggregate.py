from ascendancy_sim.game_models import (
    Advancement,
    CombatantSetup,
    EffectTag,
    FleetAllocation,
    FleetDefinition,
)
from ascendancy_sim.simulators.aggregate import (
    AggregateResult,
    CasualtyStats,
    DEFAULT_BATTLES,
    run_simulation,
)
from ascendancy_sim.simulators.dice import SequenceRoller


def test_strong_weapons_dominate():
    attacker = CombatantSetup(weapons=3, shields=0, stray_ships=10)
    defender = CombatantSetup(weapons=0, shields=0, stray_ships=10)
    result = run_simulation(attacker, defender, seed=2024)
    assert result.total_battles == DEFAULT_BATTLES == 1000
    assert result.attacker_wins + result.defender_wins == 1000
    assert result.attacker_win_rate > 0.9
    cas = result.attacker_casualties
    assert cas.wins == result.attacker_wins
    assert 0 <= cas.average_losses < 10
    assert abs(cas.average_remaining + cas.average_losses - 10) < 1e-9


def test_impenetrable_shields_default_to_defender():
    attacker = CombatantSetup(weapons=0, shields=5, stray_ships=3)
    defender = CombatantSetup(weapons=0, shields=5, stray_ships=3)
    result = run_simulation(attacker, defender, seed=1)
    assert result.defender_wins == 1000
    assert result.attacker_wins == 0
    assert result.defender_casualties.total_losses == 0
    assert result.defender_casualties.average_losses == 0.0
    assert result.defender_casualties.average_remaining == 3.0


def test_side_that_never_wins_reports_zeros():
    result = run_simulation(
        CombatantSetup(weapons=0, shields=5, stray_ships=3),
        CombatantSetup(weapons=0, shields=5, stray_ships=3),
        n_battles=1000,
        seed=5,
    )
    cas = result.attacker_casualties
    assert cas.average_losses == 0.0
    assert cas.average_remaining == 0.0
    assert cas.loss_percentage == 0.0
    assert result.to_dict()["attackerCasualties"] == {
        "totalLosses": 0,
        "averageLosses": 0.0,
        "averageRemaining": 0.0,
        "lossPercentage": 0.0,
    }


def test_casualty_math():
    stats = CasualtyStats(initial_ships=10, wins=4, total_losses=8)
    assert stats.average_losses == 2.0
    assert stats.average_remaining == 8.0
    assert stats.loss_percentage == 20.0


def test_wire_shape():
    result = run_simulation(
        CombatantSetup(weapons=2, stray_ships=3),
        CombatantSetup(weapons=2, stray_ships=3),
        n_battles=25,
        seed=9,
    )
    payload = result.to_dict()
    assert set(payload) == {
        "attackerWins",
        "defenderWins",
        "totalBattles",
        "attackerCasualties",
        "defenderCasualties",
    }
    assert payload["totalBattles"] == 25
    assert set(payload["defenderCasualties"]) == {
        "totalLosses",
        "averageLosses",
        "averageRemaining",
        "lossPercentage",
    }


def test_seeded_batches_repeat():
    attacker = CombatantSetup(weapons=1, stray_ships=5)
    defender = CombatantSetup(weapons=1, stray_ships=5, has_starbase=True)
    a = run_simulation(attacker, defender, n_battles=200, seed=77)
    b = run_simulation(attacker, defender, n_battles=200, seed=77)
    assert a.to_dict() == b.to_dict()


def test_explicit_roller_drives_every_battle():
    attacker = CombatantSetup(weapons=5, stray_ships=1)
    defender = CombatantSetup(weapons=5, stray_ships=1)
    # each battle is one simultaneous round of two dice
    result = run_simulation(attacker, defender, n_battles=3, roller=SequenceRoller([1] * 6))
    assert result.defender_wins == 3
    assert result.defender_casualties.total_losses == 3
    assert result.defender_casualties.average_losses == 1.0
    assert result.defender_casualties.loss_percentage == 100.0


def test_parallel_workers_merge_counts():
    attacker = CombatantSetup(weapons=3, stray_ships=4)
    defender = CombatantSetup(weapons=1, stray_ships=4)
    result = run_simulation(attacker, defender, n_battles=41, seed=3, workers=2)
    assert result.total_battles == 41
    assert result.attacker_wins + result.defender_wins == 41
    assert result.attacker_casualties.wins == result.attacker_wins
    assert result.attacker_casualties.initial_ships == 4


def test_merge_adds_counts():
    left = AggregateResult(
        attacker_wins=2, defender_wins=1, total_battles=3,
        attacker_casualties=CasualtyStats(initial_ships=5, wins=2, total_losses=3),
        defender_casualties=CasualtyStats(initial_ships=4, wins=1, total_losses=1),
    )
    right = AggregateResult(
        attacker_wins=1, defender_wins=1, total_battles=2,
        attacker_casualties=CasualtyStats(initial_ships=5, wins=1, total_losses=1),
        defender_casualties=CasualtyStats(initial_ships=4, wins=1, total_losses=2),
    )
    left.merge(right)
    assert (left.attacker_wins, left.defender_wins, left.total_battles) == (3, 2, 5)
    assert left.attacker_casualties.total_losses == 4
    assert left.defender_casualties.average_losses == 1.5


def test_zero_battles():
    result = run_simulation(CombatantSetup(stray_ships=1), CombatantSetup(stray_ships=1), n_battles=0)
    assert result.total_battles == 0
    assert result.attacker_win_rate == 0.0


def test_armored_fleet_batch_finishes_without_round_cap():
    guard = FleetDefinition(faction="test", id="guard", name="Guard", min_ships=1, max_ships=4)
    defender = CombatantSetup(
        weapons=0,
        fleets=[FleetAllocation.create(guard, 2)],
        advancements=[
            Advancement(faction="test", name="Ablative Armor", effects=frozenset({EffectTag.IGNORE_FIRST_CASUALTY}))
        ],
    )
    attacker = CombatantSetup(weapons=5, shields=5, stray_ships=1)
    result = run_simulation(attacker, defender, n_battles=50, seed=1)
    assert result.defender_wins == 50
    assert result.defender_casualties.total_losses == 0
