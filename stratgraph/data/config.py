"""Configuration loading utilities.

This module loads YAML configuration files and strategy documents, and
defines the engine settings shared by the allocator and backtest runner.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..strategy.model import Strategy


@dataclass
class EngineConfig:
    """Engine settings.

    Parameters
    ----------
    max_workers : int | None, default None
        Thread pool size for per-asset evaluation. None lets the executor
        choose; 1 evaluates assets sequentially.
    periods_per_year : int, default 252
        Periods per year for annualized metrics.
    strict_components : bool, default True
        Reject strategies with calculations not connected to the score.
    """

    max_workers: int | None = None
    periods_per_year: int = 252
    strict_components: bool = True

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "EngineConfig":
        """
        Build from the ``engine`` section of a configuration mapping.

        Examples
        --------
        >>> EngineConfig.from_dict({"engine": {"max_workers": 4}}).max_workers
        4
        """
        section = get_nested(config, "engine", default={}) or {}
        return cls(
            max_workers=section.get("max_workers"),
            periods_per_year=int(section.get("periods_per_year", 252)),
            strict_components=bool(section.get("strict_components", True)),
        )


def load_config(path: str | Path) -> dict[str, Any]:
    """
    Load a YAML configuration file.

    Parameters
    ----------
    path : str | Path
        Path to the YAML configuration file.

    Returns
    -------
    dict[str, Any]
        Configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    yaml.YAMLError
        If the YAML is malformed.

    Examples
    --------
    >>> cfg = load_config("conf/engine.yaml")
    >>> cfg["engine"]["max_workers"]
    4
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        config = yaml.safe_load(f)

    return config if config is not None else {}


def load_strategy(path: str | Path) -> Strategy:
    """
    Load a strategy document from YAML.

    Parameters
    ----------
    path : str | Path
        Path to a document with ``name``, ``score.calc`` and ``calcs``.

    Returns
    -------
    Strategy
        Parsed, not yet validated, strategy. Pass it to ``build_graph``.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    InvalidStrategyError
        If required keys are missing.
    """
    return Strategy.from_dict(load_config(path))


def get_nested(config: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """
    Get a nested value from a configuration dictionary.

    Parameters
    ----------
    config : dict[str, Any]
        Configuration dictionary.
    *keys : str
        Sequence of keys to traverse.
    default : Any, optional
        Default value if key path doesn't exist.

    Returns
    -------
    Any
        The value at the nested key path, or default.

    Examples
    --------
    >>> cfg = {"engine": {"max_workers": 4}}
    >>> get_nested(cfg, "engine", "max_workers")
    4
    >>> get_nested(cfg, "engine", "missing", default=1)
    1
    """
    result = config
    for key in keys:
        if isinstance(result, dict) and key in result:
            result = result[key]
        else:
            return default
    return result
