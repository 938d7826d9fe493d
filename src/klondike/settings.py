# settings.py - scoring rules, optionally overridden from a settings file
import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringRules:
    starting_score: int = 1000
    draw_undo_cost: int = 50
    recycle_bonus: int = -250
    recycle_undo_cost: int = 50
    reveal_bonus: int = 100
    reveal_undo_cost: int = 250


DEFAULT_RULES = ScoringRules()


def _settings_dir() -> str:
    # Prefer %APPDATA% on Windows, else ~/.klondike_transactions
    base = os.environ.get("APPDATA")
    if base:
        return os.path.join(base, "KlondikeTransactions")
    return os.path.join(os.path.expanduser("~"), ".klondike_transactions")


def settings_path() -> str:
    override = os.environ.get("KLONDIKE_SETTINGS")
    if override:
        return override
    return os.path.join(_settings_dir(), "settings.json")


def _coerce(data: dict, base: ScoringRules) -> ScoringRules:
    values = {}
    for f in fields(ScoringRules):
        if f.name not in data:
            continue
        try:
            values[f.name] = int(data[f.name])
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid value for %s: %r", f.name, data[f.name])
    return replace(base, **values)


def load_settings(path: Optional[str] = None) -> ScoringRules:
    path = path or settings_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return DEFAULT_RULES
    except (OSError, ValueError) as exc:
        logger.warning("Could not read settings from %s: %s", path, exc)
        return DEFAULT_RULES
    if not isinstance(data, dict):
        logger.warning("Settings file %s does not hold an object", path)
        return DEFAULT_RULES
    return _coerce(data, DEFAULT_RULES)


def save_settings(new_values: dict, path: Optional[str] = None) -> ScoringRules:
    # Merge and write to disk
    path = path or settings_path()
    rules = _coerce(new_values, load_settings(path))
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(rules), f, indent=2)
    except OSError as exc:
        logger.warning("Could not write settings to %s: %s", path, exc)
    return rules
