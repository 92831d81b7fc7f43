"""
proxyvm.config — runtime configuration for the proxy runtime model.

Knobs:
  • Layout strictness (whether storage-gap mismatches are errors or warnings)
  • Size of the slot region reachable by sequential field allocation
  • Nested call depth limit
  • Logging level / format

Environment variables (all optional):
  PROXYVM_STRICT_LAYOUT             -> 0/1/true/false (default: 1)
  PROXYVM_SEQUENTIAL_REGION_BITS    -> int in [8, 200] (default: 64)
  PROXYVM_MAX_CALL_DEPTH            -> int in [1, 1024] (default: 64)
  PROXYVM_LOG_LEVEL                 -> DEBUG/INFO/WARNING/ERROR (default: INFO)
  PROXYVM_LOG_JSON                  -> 0/1 (default: 0)

Programmatic usage:
    from proxyvm.config import get_config
    cfg = get_config()
    if cfg.strict_layout:
        ...

Out-of-range integers are clamped; unparsable values fall back to the default.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Dict, Mapping, Optional, Union

# ----------------------------- helpers -------------------------------------


_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _bool_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    return default


def _int_env(value: Optional[str], default: int, *, min_v: int, max_v: int) -> int:
    if value is None:
        return default
    try:
        v = int(value.strip(), 0)
    except ValueError:
        return default
    return max(min_v, min(max_v, v))


def _level_env(value: Optional[str], default: str) -> str:
    if value is None:
        return default
    v = value.strip().upper()
    return v if v in _LOG_LEVELS else default


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class ProxyConfig:
    strict_layout: bool = True
    sequential_region_bits: int = 64
    max_call_depth: int = 64
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def sequential_region_limit(self) -> int:
        """First slot number sequential allocation is assumed never to reach."""
        return 1 << self.sequential_region_bits

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


# ------------------------------ loader --------------------------------------


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int, bool]]] = None,
) -> ProxyConfig:
    """
    Build a ProxyConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field values that win over the environment; keys are the
          ProxyConfig field names.
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    cfg = ProxyConfig(
        strict_layout=_bool_env(env.get("PROXYVM_STRICT_LAYOUT"), True),
        sequential_region_bits=_int_env(
            env.get("PROXYVM_SEQUENTIAL_REGION_BITS"), 64, min_v=8, max_v=200
        ),
        max_call_depth=_int_env(env.get("PROXYVM_MAX_CALL_DEPTH"), 64, min_v=1, max_v=1024),
        log_level=_level_env(env.get("PROXYVM_LOG_LEVEL"), "INFO"),
        log_json=_bool_env(env.get("PROXYVM_LOG_JSON"), False),
    )
    if overrides:
        unknown = set(overrides) - set(cfg.to_dict())
        if unknown:
            raise ValueError(f"unknown config override(s): {sorted(unknown)}")
        merged = cfg.to_dict()
        merged.update(overrides)
        cfg = ProxyConfig(**merged)  # type: ignore[arg-type]
    return cfg


@lru_cache(maxsize=1)
def get_config() -> ProxyConfig:
    """Cached global config."""
    return load_config()


def summary(cfg: Optional[ProxyConfig] = None) -> str:
    cfg = cfg or get_config()
    return (
        "proxyvm{"
        f"strict_layout={int(cfg.strict_layout)}, "
        f"seq_region=2^{cfg.sequential_region_bits}, "
        f"max_depth={cfg.max_call_depth}, "
        f"log={cfg.log_level}{'/json' if cfg.log_json else ''}"
        "}"
    )


__all__ = ["ProxyConfig", "load_config", "get_config", "summary"]
