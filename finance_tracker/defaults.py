"""Loader for the packaged defaults file (allocation rules, bucket categories)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from . import config


def load_defaults(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the defaults file.

    Args:
        path: Optional override; defaults to ``config.DEFAULTS_PATH``.

    Returns:
        Dictionary with ``allocation``, ``categories`` and ``tracking`` blocks

    Raises:
        FileNotFoundError: If the defaults file doesn't exist
        json.JSONDecodeError: If the defaults file is invalid JSON

    Example:
        >>> load_defaults()['allocation']['fixedCosts']
        {'type': 'percentage', 'value': 50}
    """
    target = Path(path or config.DEFAULTS_PATH)
    if not target.exists():
        raise FileNotFoundError(f"Defaults file not found: {target}")

    with target.open('r', encoding='utf-8') as f:
        return json.load(f)


def get_default_value(*keys: str, default: Any = None) -> Any:
    """Get a nested defaults value by key path.

    Example:
        >>> get_default_value('tracking', 'excess_bucket')
        'savings'
    """
    try:
        value: Any = load_defaults()
        for key in keys:
            value = value[key]
        return value
    except (KeyError, FileNotFoundError):
        return default
