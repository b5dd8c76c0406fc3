"""API routes for the battle simulator."""

import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ascendancy_sim.catalog import build_setup, get_registry, validate_sides
from ascendancy_sim.config import load_settings
from ascendancy_sim.simulators.aggregate import run_simulation
from ascendancy_sim.simulators.combat import resolve_battle

logger = logging.getLogger(__name__)

router = APIRouter()

# Request/Response models
class SimulateRequest(BaseModel):
    attacker: Dict[str, Any]
    defender: Dict[str, Any]
    battles: Optional[int] = None
    seed: Optional[int] = None

class BattleRequest(BaseModel):
    attacker: Dict[str, Any]
    defender: Dict[str, Any]
    seed: Optional[int] = None
    trace: bool = False


def _build_sides(attacker: Dict[str, Any], defender: Dict[str, Any], max_weapons: int, max_shields: int):
    registry = get_registry()
    try:
        att = build_setup(attacker, registry, max_weapons, max_shields)
        dfd = build_setup(defender, registry, max_weapons, max_shields)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]) if e.args else str(e))
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        validate_sides(att, dfd)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return att, dfd

# ============================================================================
# Reference Data
# ============================================================================

@router.get("/catalog")
async def list_catalog() -> Dict[str, Any]:
    """List every faction with its advancements and fleets."""
    return get_registry().describe()

@router.get("/catalog/{faction}")
async def faction_catalog(faction: str) -> Dict[str, Any]:
    """Advancements and fleets available to one faction."""
    registry = get_registry()
    if faction.lower() not in registry.factions():
        raise HTTPException(status_code=404, detail=f"Faction '{faction}' not found")
    return registry.describe(faction)

# ============================================================================
# Simulation
# ============================================================================

@router.post("/simulate")
async def simulate(request: SimulateRequest) -> Dict[str, Any]:
    """Run a Monte Carlo batch and return win rates and casualties."""
    settings = load_settings(overrides={"battles": request.battles, "seed": request.seed})
    attacker, defender = _build_sides(
        request.attacker, request.defender, settings.max_weapons, settings.max_shields
    )
    logger.info("[API] simulating %d battles", settings.battles)
    result = run_simulation(
        attacker,
        defender,
        n_battles=settings.battles,
        seed=settings.seed,
        round_cap=settings.round_cap,
        workers=settings.workers,
    )
    payload = result.to_dict()
    payload["attackerWinRate"] = result.attacker_win_rate
    payload["defenderWinRate"] = result.defender_win_rate
    return payload

@router.post("/battle")
async def battle(request: BattleRequest) -> Dict[str, Any]:
    """Resolve one battle."""
    settings = load_settings(overrides={"seed": request.seed})
    attacker, defender = _build_sides(
        request.attacker, request.defender, settings.max_weapons, settings.max_shields
    )
    outcome = resolve_battle(
        attacker,
        defender,
        seed=settings.seed,
        round_cap=settings.round_cap,
        debug=request.trace,
    )
    payload = outcome.to_dict()
    if outcome.trace is not None:
        payload["rounds"] = outcome.trace["rounds"]
    return payload
