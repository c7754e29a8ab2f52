"""
Orden y visibilidad de las tarjetas de actividad.
Settings.activity_settings guarda un JSON {"global": {...}, "<caretakerId>": {...}}.
"""
from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITIES: List[str] = [
    "sleep", "feed", "diaper", "note", "bath", "pump", "measurement", "milestone", "medicine",
]

GLOBAL_KEY = "global"


def default_settings() -> Dict[str, List[str]]:
    return {"order": list(DEFAULT_ACTIVITIES), "visible": list(DEFAULT_ACTIVITIES)}


def parse_all(raw: Optional[str]) -> Optional[Dict[str, dict]]:
    """JSON guardado -> dict; None si está vacío o no se puede parsear."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Unparsable activity settings, using defaults")
        return None
    return data if isinstance(data, dict) else None


def with_missing_defaults(entry: dict) -> Tuple[Dict[str, List[str]], bool]:
    """
    Añade al final las actividades nuevas que falten en el orden
    (visibles por defecto). Devuelve (entrada, cambió).
    """
    order = list(entry.get("order") or [])
    visible = list(entry.get("visible") or [])
    missing = [a for a in DEFAULT_ACTIVITIES if a not in order]
    if not missing:
        return {"order": order, "visible": visible}, False
    order.extend(missing)
    visible.extend(a for a in missing if a not in visible)
    return {"order": order, "visible": visible}, True


def resolve(all_settings: Optional[Dict[str, dict]], caretaker_id: Optional[str]) -> Tuple[Dict[str, List[str]], Optional[str]]:
    """
    Entrada aplicable: la del cuidador, si no la global, si no la de fábrica.
    Devuelve (entrada, clave a persistir si se completaron actividades).
    """
    if not all_settings:
        return default_settings(), None
    key = caretaker_id if caretaker_id and caretaker_id in all_settings else GLOBAL_KEY
    if key not in all_settings or not isinstance(all_settings[key], dict):
        return default_settings(), None
    entry, changed = with_missing_defaults(all_settings[key])
    return entry, key if changed else None


def store(raw: Optional[str], key: str, entry: Dict[str, List[str]]) -> str:
    """Escribe la entrada bajo su clave. Gana la última escritura."""
    all_settings = parse_all(raw) or {}
    all_settings[key] = {"order": entry["order"], "visible": entry["visible"]}
    return json.dumps(all_settings)
