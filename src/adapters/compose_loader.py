"""Carga del manifiesto de despliegue (YAML).

Soporta el formato compose (`services:` + `volumes:`) que usa el proyecto.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from core.domain.compose import ComposeManifest
from core.errors import ManifestError


def load_manifest(path: Path) -> ComposeManifest:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"cannot read manifest {path}: {exc.strerror or exc}") from exc
    return parse_manifest(raw, source=str(path))


def parse_manifest(text: str, *, source: str = "<string>") -> ComposeManifest:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestError(f"{source}: invalid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise ManifestError(f"{source}: top level must be a mapping")

    try:
        return ComposeManifest.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        raise ManifestError(f"{source}: {where}: {first.get('msg')}") from exc
