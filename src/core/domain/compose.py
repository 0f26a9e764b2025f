"""Modelo del manifiesto de despliegue (compose).

Por qué en el dominio:
- El manifiesto es el contrato de infraestructura del proyecto: qué imagen,
  qué puerto publicado, qué volumen y qué health check.
- La CLI lo usa para derivar la DSN por defecto y el timeout de readiness.

Solo cubre el subconjunto de la especificación compose que usa el proyecto.
"""

from __future__ import annotations

import re
import shlex
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, Field, field_validator

from core.errors import ManifestError

DATABASE_SERVICE = "postgres"

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(us|ms|s|m|h)")
_DURATION_UNITS = {"us": 1e-6, "ms": 1e-3, "s": 1.0, "m": 60.0, "h": 3600.0}
_HEALTHCHECK_KINDS = ("CMD", "CMD-SHELL", "NONE")


def parse_duration(value: str) -> float:
    """Convierte una duración compose (`5s`, `1m30s`, `250ms`) a segundos."""

    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    total = 0.0
    pos = 0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


class PortMapping(BaseModel):
    host_port: int | None = None
    container_port: int
    host_ip: str | None = None
    protocol: str = "tcp"

    @classmethod
    def parse(cls, spec: str | int) -> "PortMapping":
        """`"25432:5432"`, `"127.0.0.1:25432:5432/tcp"` o `"5432"`."""

        text = str(spec).strip()
        protocol = "tcp"
        if "/" in text:
            text, protocol = text.rsplit("/", 1)

        parts = text.split(":")
        if len(parts) > 3 or not all(parts[-2:]):
            raise ValueError(f"invalid port mapping: {spec!r}")

        container = int(parts[-1])
        host = int(parts[-2]) if len(parts) >= 2 else None
        host_ip = parts[0] if len(parts) == 3 else None
        return cls(host_port=host, container_port=container, host_ip=host_ip, protocol=protocol)


class VolumeMount(BaseModel):
    source: str | None = None
    target: str
    read_only: bool = False

    @property
    def is_named(self) -> bool:
        """Volumen con nombre (vs bind mount de una ruta del host)."""

        return bool(self.source) and not self.source.startswith(("/", ".", "~"))

    @classmethod
    def parse(cls, spec: str) -> "VolumeMount":
        """`"postgres_data:/var/lib/postgresql/data[:ro]"` o `"/container/path"`."""

        parts = spec.strip().split(":")
        if len(parts) == 1:
            return cls(target=parts[0])
        if len(parts) == 2:
            return cls(source=parts[0], target=parts[1])
        if len(parts) == 3:
            return cls(source=parts[0], target=parts[1], read_only=parts[2] == "ro")
        raise ValueError(f"invalid volume mount: {spec!r}")


class HealthCheck(BaseModel):
    test: list[str] = Field(..., min_length=1)
    interval: str = "30s"
    timeout: str = "30s"
    retries: int | None = Field(default=None, ge=0)

    @field_validator("test", mode="before")
    @classmethod
    def _normalize_test(cls, value: Any) -> Any:
        # Forma string == CMD-SHELL.
        if isinstance(value, str):
            return ["CMD-SHELL", value]
        return value

    @field_validator("interval", "timeout")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @property
    def interval_seconds(self) -> float:
        return parse_duration(self.interval)

    @property
    def timeout_seconds(self) -> float:
        return parse_duration(self.timeout)

    @property
    def kind(self) -> str:
        return self.test[0]


class ServiceDescriptor(BaseModel):
    """Un servicio del manifiesto (imagen, comando, entorno, volúmenes, puertos, probe)."""

    image: str = Field(..., min_length=1)
    command: list[str] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)
    volumes: list[VolumeMount] = Field(default_factory=list)
    ports: list[PortMapping] = Field(default_factory=list)
    healthcheck: HealthCheck | None = None

    @field_validator("command", mode="before")
    @classmethod
    def _normalize_command(cls, value: Any) -> Any:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, list):
            env: dict[str, str] = {}
            for item in value:
                key, _, val = str(item).partition("=")
                env[key] = val
            return env
        if isinstance(value, dict):
            return {str(k): "" if v is None else str(v) for k, v in value.items()}
        return value

    @field_validator("volumes", mode="before")
    @classmethod
    def _normalize_volumes(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [VolumeMount.parse(v) if isinstance(v, str) else v for v in value]

    @field_validator("ports", mode="before")
    @classmethod
    def _normalize_ports(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [PortMapping.parse(v) if isinstance(v, (str, int)) else v for v in value]

    def published_port(self, container_port: int) -> int | None:
        """Puerto del host que publica `container_port` (si existe)."""

        for mapping in self.ports:
            if mapping.container_port == container_port and mapping.host_port is not None:
                return mapping.host_port
        return None


class ComposeManifest(BaseModel):
    services: dict[str, ServiceDescriptor] = Field(..., min_length=1)
    volumes: dict[str, dict[str, Any] | None] = Field(default_factory=dict)

    @field_validator("volumes", mode="before")
    @classmethod
    def _normalize_volumes(cls, value: Any) -> Any:
        return {} if value is None else value

    def database_service(self) -> ServiceDescriptor:
        service = self.services.get(DATABASE_SERVICE)
        if service is None:
            raise ManifestError(f"manifest declares no '{DATABASE_SERVICE}' service")
        return service


def validate_manifest(manifest: ComposeManifest) -> list[str]:
    """Chequeos de consistencia que el schema por sí solo no cubre.

    Devuelve la lista de problemas; vacía si el manifiesto es válido.
    """

    problems: list[str] = []
    for name, service in manifest.services.items():
        for mount in service.volumes:
            if mount.is_named and mount.source not in manifest.volumes:
                problems.append(f"{name}: volume '{mount.source}' is not declared in top-level volumes")

        for mapping in service.ports:
            for port in (mapping.host_port, mapping.container_port):
                if port is not None and not 1 <= port <= 65535:
                    problems.append(f"{name}: port {port} out of range")

        check = service.healthcheck
        if check is not None:
            if check.kind not in _HEALTHCHECK_KINDS:
                problems.append(f"{name}: healthcheck test must start with one of {', '.join(_HEALTHCHECK_KINDS)}")
            if check.timeout_seconds > check.interval_seconds:
                problems.append(f"{name}: healthcheck timeout ({check.timeout}) exceeds interval ({check.interval})")
    return problems


def database_url_from_manifest(manifest: ComposeManifest, *, host: str = "localhost") -> str:
    """DSN para el servicio de base de datos tal como lo publica el manifiesto."""
    service = manifest.database_service()
    port = service.published_port(5432)
    if port is None:
        raise ManifestError(f"'{DATABASE_SERVICE}' does not publish port 5432")

    user = service.environment.get("POSTGRES_USER", "postgres")
    password = service.environment.get("POSTGRES_PASSWORD", "")
    database = service.environment.get("POSTGRES_DB", user)
    auth = quote(user, safe="")
    if password:
        auth += ":" + quote(password, safe="")
    return f"postgresql://{auth}@{host}:{port}/{database}"
