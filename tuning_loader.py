#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
tuning_loader.py
Lightweight loader for analysis tuning parameters.

CSV format (no header required):
    key,value
    MIN_CLIMB_RATE,2.0
    THERMAL_RADIUS_M,200
    UTC_OFFSET_H = 3
Blank lines and lines starting with '#' are ignored.

A path ending in .json is read as one JSON object instead.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TUNING_PATH = "config/tuning_params.csv"


def _coerce(val: Any) -> Any:
    if not isinstance(val, str):
        return val
    s = val.strip()
    if s.lower() in ("true", "false"):
        return s.lower() == "true"
    try:
        if "." in s or "e" in s.lower():
            return float(s)
        return int(s)
    except ValueError:
        return s


def _read_key_values(text: str) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        # allow key,value or key = value
        if "," in line:
            key, val = line.split(",", 1)
        elif "=" in line:
            key, val = line.split("=", 1)
        else:
            logger.debug("tuning: skipping malformed line %r", line)
            continue
        key = key.strip()
        if key:
            params[key] = _coerce(val)
    return params


def load_tuning(path: str | Path = DEFAULT_TUNING_PATH) -> Dict[str, Any]:
    """Tuning values from `path`; {} if the file does not exist or is unreadable JSON."""
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8", errors="ignore")
    if p.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("tuning: %s is not valid JSON (%s), ignoring", p, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("tuning: %s does not hold an object, ignoring", p)
            return {}
        return {str(k): _coerce(v) for k, v in data.items()}
    return _read_key_values(text)


def apply_overrides(target: Dict[str, Any], params: Dict[str, Any],
                    allowed: Optional[set[str]] = None) -> Dict[str, Any]:
    """Copy params into target (in place), keeping only `allowed` keys if given."""
    for k, v in params.items():
        if allowed is not None and k not in allowed:
            logger.debug("tuning: ignoring unknown key %s", k)
            continue
        target[k] = v
    return target
