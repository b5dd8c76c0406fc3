from __future__ import annotations
import argparse, json, logging, sys, time
from typing import Any, Dict, List

from .catalog import build_setup, get_registry, validate_sides
from .config import ENV_PREFIX, load_document, load_settings
from .simulators.aggregate import AggregateResult, run_simulation
from .simulators.combat import resolve_battle

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="python -m ascendancy_sim.cli",
        description="Star Trek: Ascendancy space battle simulator"
    )
    p.add_argument("--log-level", type=str, default="WARNING", help="Python logging level")
    p.add_argument("--catalog", type=str, default=None, help="Catalog file (JSON/YAML); defaults to the bundled one")
    sub = p.add_subparsers(dest="cmd")

    # simulate
    sm = sub.add_parser("simulate", help="Run a batch of battles and report win rates")
    sm.add_argument("--scenario", type=str, required=True, help="Scenario file with attacker/defender blocks")
    sm.add_argument("--battles", type=int, default=None)
    sm.add_argument("--seed", type=int, default=None)
    sm.add_argument("--workers", type=int, default=None)
    sm.add_argument("--round-cap", dest="round_cap", type=int, default=None)
    sm.add_argument("--config", type=str, action="append", default=[], help="YAML/JSON config files (merged)")
    sm.add_argument("--env-prefix", type=str, default=ENV_PREFIX, help="Env prefix for overrides")
    sm.add_argument("--out", type=str, default=None, help="Save result JSON")
    sm.add_argument("--print-md", action="store_true", help="Print Markdown summary to stdout")

    # battle
    bt = sub.add_parser("battle", help="Resolve a single battle and print its trace")
    bt.add_argument("--scenario", type=str, required=True)
    bt.add_argument("--seed", type=int, default=None)

    # catalog
    ct = sub.add_parser("catalog", help="List factions, advancements and fleets")
    ct.add_argument("--faction", type=str, default=None)

    args = p.parse_args(argv)
    if getattr(args, "cmd", None) is None:
        p.print_help()
        sys.exit(2)
    return args


def _load_sides(args: argparse.Namespace, max_weapons: int = 5, max_shields: int = 5):
    scenario = load_document(args.scenario)
    registry = get_registry(args.catalog)
    attacker = build_setup(scenario.get("attacker", {}), registry, max_weapons, max_shields)
    defender = build_setup(scenario.get("defender", {}), registry, max_weapons, max_shields)
    validate_sides(attacker, defender)
    return attacker, defender


def to_markdown(result: AggregateResult) -> str:
    lines: List[str] = [
        "# Battle simulation",
        "",
        f"Based on {result.total_battles} simulated battles.",
        "",
        "| Side | Wins | Win % | Avg losses | Avg remaining | Loss % |",
        "|---|---|---|---|---|---|",
    ]
    rows = (
        ("Attacker", result.attacker_wins, result.attacker_win_rate, result.attacker_casualties),
        ("Defender", result.defender_wins, result.defender_win_rate, result.defender_casualties),
    )
    for label, wins, rate, cas in rows:
        lines.append(
            f"| {label} | {wins} | {rate * 100:.1f} | {cas.average_losses:.2f} "
            f"| {cas.average_remaining:.2f} | {cas.loss_percentage:.1f} |"
        )
    return "\n".join(lines)


def _simulate(args: argparse.Namespace) -> Dict[str, Any]:
    settings = load_settings(
        args.config,
        prefix=args.env_prefix,
        overrides={
            "battles": args.battles,
            "seed": args.seed,
            "workers": args.workers,
            "round_cap": args.round_cap,
        },
    )
    attacker, defender = _load_sides(args, settings.max_weapons, settings.max_shields)
    t0 = time.perf_counter()
    result = run_simulation(
        attacker,
        defender,
        n_battles=settings.battles,
        seed=settings.seed,
        round_cap=settings.round_cap,
        workers=settings.workers,
    )
    elapsed = max(1e-9, time.perf_counter() - t0)
    logger.info("%d battles in %.2fs (%.0f/s)", result.total_battles, elapsed, result.total_battles / elapsed)
    return {"result": result}


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))
    try:
        if args.cmd == "simulate":
            result: AggregateResult = _simulate(args)["result"]
            payload = result.to_dict()
            if args.out:
                with open(args.out, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
            if args.print_md:
                print(to_markdown(result))
            else:
                print(json.dumps(payload, indent=2))
            return 0

        if args.cmd == "battle":
            settings = load_settings()
            attacker, defender = _load_sides(args, settings.max_weapons, settings.max_shields)
            outcome = resolve_battle(
                attacker, defender, seed=args.seed, round_cap=settings.round_cap, debug=True
            )
            print(json.dumps({**outcome.to_dict(), "rounds": outcome.trace["rounds"]}, indent=2))
            return 0

        if args.cmd == "catalog":
            print(json.dumps(get_registry(args.catalog).describe(args.faction), indent=2))
            return 0
    except (KeyError, TypeError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
