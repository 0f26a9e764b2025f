"""Exportación JSON de resultados.

Por qué JSON:
- Interoperabilidad con otras herramientas y pipelines.
- Permite persistir resultados sin depender del render de la terminal.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel


def dumps_stable(payload: Any) -> str:
    """JSON UTF-8 con formato estable (claves ordenadas, indentado)."""

    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    elif isinstance(payload, list):
        payload = [p.model_dump(mode="json") if isinstance(p, BaseModel) else p for p in payload]
    return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)


def export_json(*, payload: Any, output_path: Path) -> Path:
    """Exporta un modelo (o lista de modelos) a JSON UTF-8."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(dumps_stable(payload) + "\n", encoding="utf-8")
    return output_path
