from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional
import os, json

import yaml

ENV_PREFIX = "ASCENDANCY_SIM__"

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(a)
    for k, v in (b or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out

def load_document(path: str) -> Dict[str, Any]:
    """Read a YAML or JSON mapping; ``.json`` files skip the YAML parser."""
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    if path.endswith(".json"):
        d = json.loads(text)
    else:
        # YAML is a superset of JSON, so this covers both
        d = yaml.safe_load(text)
    if d is None:
        return {}
    if not isinstance(d, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(d).__name__}")
    return d

def load_configs(paths: Iterable[str] | None) -> Dict[str, Any]:
    cfg: Dict[str, Any] = {}
    for p in (paths or []):
        cfg = _deep_merge(cfg, load_document(p))
    return cfg

def env_overrides(prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    # Nested via double underscores: ASCENDANCY_SIM__SIMULATION__BATTLES=5000
    out: Dict[str, Any] = {}
    for k, v in os.environ.items():
        if not k.startswith(prefix):
            continue
        parts = k[len(prefix):].split("__")
        cur = out
        for i, part in enumerate(parts):
            key = part.lower()
            if i == len(parts) - 1:
                cur[key] = _coerce(v)
            else:
                cur = cur.setdefault(key, {})
    return out

def _coerce(s: str) -> Any:
    t = s.strip().lower()
    if t in ("true", "false"):
        return t == "true"
    if t in ("none", "null"):
        return None
    try:
        if "." in t:
            return float(t)
        return int(t)
    except ValueError:
        return s

def apply_cli_overrides(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    return _deep_merge(base, {k: v for k, v in (overrides or {}).items() if v is not None})


@dataclass
class SimulationSettings:
    battles: int = 1000
    seed: Optional[int] = None
    workers: int = 1
    round_cap: Optional[int] = 500
    max_weapons: int = 5
    max_shields: int = 5

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "SimulationSettings":
        block = dict((cfg or {}).get("simulation", {}) or {})
        defaults = cls()
        seed = block.get("seed", defaults.seed)
        round_cap = block.get("round_cap", defaults.round_cap)
        return cls(
            battles=max(1, int(block.get("battles", defaults.battles))),
            seed=None if seed is None else int(seed),
            workers=max(1, int(block.get("workers", defaults.workers))),
            round_cap=None if round_cap in (None, 0) else int(round_cap),
            max_weapons=int(block.get("max_weapons", defaults.max_weapons)),
            max_shields=int(block.get("max_shields", defaults.max_shields)),
        )


def load_settings(
    paths: Iterable[str] | None = None,
    prefix: str = ENV_PREFIX,
    overrides: Optional[Dict[str, Any]] = None,
) -> SimulationSettings:
    cfg = load_configs(paths)
    cfg = _deep_merge(cfg, env_overrides(prefix))
    cfg = _deep_merge(cfg, {"simulation": apply_cli_overrides({}, overrides or {})})
    return SimulationSettings.from_config(cfg)

__all__ = [
    "ENV_PREFIX",
    "SimulationSettings",
    "apply_cli_overrides",
    "env_overrides",
    "load_configs",
    "load_document",
    "load_settings",
    "_deep_merge",
]
