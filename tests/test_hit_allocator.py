from ascendancy_sim.game_models import (
    Advancement,
    CombatantSetup,
    EffectTag,
    FleetAllocation,
    FleetDefinition,
)
from ascendancy_sim.simulators.combat import BattleState, Side, allocate_hits


def make_fleet(count: int, min_ships: int, fleet_id: str = "fleet") -> FleetAllocation:
    definition = FleetDefinition(
        faction="test", id=fleet_id, name=fleet_id, min_ships=min_ships, max_ships=8
    )
    return FleetAllocation(definition=definition, ship_count=count)


def make_state(fleets, stray_ships: int = 0, ignore_first: bool = False) -> BattleState:
    advancements = []
    if ignore_first:
        advancements.append(
            Advancement(
                faction="test",
                name="Ablative Armor",
                effects=frozenset({EffectTag.IGNORE_FIRST_CASUALTY}),
            )
        )
    setup = CombatantSetup(fleets=fleets, stray_ships=stray_ships, advancements=advancements)
    return BattleState.from_setup(Side.DEFENDER, setup, CombatantSetup())


def test_fleet_below_minimum_dissolves_into_strays():
    state = make_state([make_fleet(4, min_ships=3)])
    destroyed = allocate_hits(state, 2)
    fleet = state.fleets[0]
    assert destroyed == 2
    assert not fleet.active
    assert fleet.ship_count == 0
    assert state.stray_ships == 2
    assert state.total_ships() == 2


def test_fleet_at_minimum_stays_active():
    state = make_state([make_fleet(5, min_ships=3)])
    allocate_hits(state, 2)
    assert state.fleets[0].active
    assert state.fleets[0].ship_count == 3
    assert state.stray_ships == 0


def test_fleets_absorb_in_order_then_strays():
    state = make_state([make_fleet(2, 1, "a"), make_fleet(3, 1, "b")], stray_ships=4)
    destroyed = allocate_hits(state, 7)
    assert destroyed == 7
    assert [f.ship_count for f in state.fleets] == [0, 0]
    assert state.stray_ships == 2


def test_excess_hits_are_discarded():
    state = make_state([make_fleet(2, 1)], stray_ships=1)
    destroyed = allocate_hits(state, 10)
    assert destroyed == 3
    assert state.total_ships() == 0
    assert state.stray_ships == 0


def test_no_hits_is_a_no_op():
    state = make_state([make_fleet(3, 2)], stray_ships=2)
    assert allocate_hits(state, 0) == 0
    assert allocate_hits(state, -3) == 0
    assert state.total_ships() == 5


def test_ignore_first_casualty_per_fleet():
    state = make_state([make_fleet(3, 1, "a"), make_fleet(3, 1, "b")], ignore_first=True)
    destroyed = allocate_hits(state, 4)
    # a absorbs 3 and loses 2, b absorbs the last hit and loses nothing
    assert destroyed == 2
    assert [f.ship_count for f in state.fleets] == [1, 3]


def test_ignore_first_casualty_does_not_cover_strays():
    state = make_state([make_fleet(2, 1)], stray_ships=3, ignore_first=True)
    destroyed = allocate_hits(state, 4)
    assert state.fleets[0].ship_count == 1
    assert state.stray_ships == 1
    assert destroyed == 3


def test_dissolved_fleet_is_skipped_afterwards():
    state = make_state([make_fleet(3, 3, "a"), make_fleet(4, 2, "b")])
    allocate_hits(state, 1)
    assert not state.fleets[0].active
    assert state.stray_ships == 2
    allocate_hits(state, 2)
    assert state.fleets[0].ship_count == 0
    assert state.fleets[1].ship_count == 2
    assert state.stray_ships == 2


def test_losses_track_initial_ships():
    state = make_state([make_fleet(4, 2)], stray_ships=3)
    allocate_hits(state, 5)
    assert state.initial_ships == 7
    assert state.losses + state.total_ships() == state.initial_ships
