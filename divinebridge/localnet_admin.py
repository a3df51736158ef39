"""Local-network admin service that maps handle names to DIDs and writes a DNS zone."""

from __future__ import annotations

import argparse
import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

logger = logging.getLogger(__name__)

DEFAULT_BIND_ADDR = "0.0.0.0:3000"


class ApiError(Exception):
    """An error reported to the client as ``{"error": message}`` with an HTTP status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    @classmethod
    def bad_request(cls, message: str) -> ApiError:
        return cls(400, message)

    @classmethod
    def not_found(cls, message: str) -> ApiError:
        return cls(404, message)

    @classmethod
    def internal(cls, message: str) -> ApiError:
        return cls(500, message)


@dataclass(frozen=True)
class AppConfig:
    """Where the service keeps its records and zone file, and what the zone serves."""

    data_path: Path
    zone_path: Path
    domain: str
    wildcard_ip: str

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        env = os.environ if environ is None else environ
        data_dir = Path(env.get("LOCALNET_ADMIN_DATA_DIR", "/data"))
        zone_dir = Path(env.get("LOCALNET_ADMIN_ZONE_DIR", "/zones"))
        domain = env.get("LOCALNET_ADMIN_DOMAIN", "divine.test")
        wildcard_ip = env.get("LOCALNET_ADMIN_WILDCARD_IP", "100.64.0.10")
        return cls(
            data_path=data_dir / "handles.json",
            zone_path=zone_dir / f"db.{domain}",
            domain=domain,
            wildcard_ip=wildcard_ip,
        )


@dataclass(frozen=True)
class HandleRecord:
    """A handle name, its full handle under the domain, and the DID it resolves to."""

    name: str
    handle: str
    did: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "handle": self.handle, "did": self.did}

    @classmethod
    def _from_dict(cls, data: Any) -> HandleRecord:
        if not isinstance(data, dict):
            raise ValueError("handle record must be an object")
        fields = {}
        for key in ("name", "handle", "did"):
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"handle record field {key!r} must be a string")
            fields[key] = value
        return cls(**fields)


def _write_string_atomic(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(contents, encoding="utf-8")
    os.replace(tmp, path)


class HandleStore:
    """Handle records kept in a JSON file, mirrored into a DNS zone file on each change."""

    def __init__(self, config: AppConfig, records: dict[str, HandleRecord]) -> None:
        self.config = config
        self._records = dict(records)
        self._lock = threading.Lock()

    @classmethod
    def load(cls, config: AppConfig) -> HandleStore:
        """Read existing records (if any) and write both files back out."""
        records: dict[str, HandleRecord] = {}
        if config.data_path.exists():
            raw = config.data_path.read_text(encoding="utf-8")
            try:
                data = json.loads(raw)
                if not isinstance(data, dict):
                    raise ValueError("handle store must be an object")
                records = {
                    str(name): HandleRecord._from_dict(value) for name, value in data.items()
                }
            except ValueError as exc:
                raise ValueError(f"failed to parse handle store JSON: {exc}") from exc
        store = cls(config, records)
        store._persist()
        return store

    def get(self, name: str) -> HandleRecord | None:
        with self._lock:
            return self._records.get(name)

    def upsert(self, name: str, did: str) -> HandleRecord:
        record = HandleRecord(name=name, handle=f"{name}.{self.config.domain}", did=did)
        with self._lock:
            self._records[name] = record
            self._persist()
        return record

    def render_zone(self) -> str:
        domain = self.config.domain
        ip = self.config.wildcard_ip
        lines = [
            f"$ORIGIN {domain}.",
            "$TTL 60",
            f"@ IN SOA ns1.{domain}. admin.{domain}. 1 60 60 60 60",
            f"@ IN NS ns1.{domain}",
            f"ns1 IN A {ip}",
            f"* IN A {ip}",
        ]
        for _, record in sorted(self._records.items()):
            lines.append(f"{record.name} IN A {ip}")
            lines.append(f'_atproto.{record.name} IN TXT "did={record.did}"')
        return "\n".join(lines) + "\n"

    def _persist(self) -> None:
        payload = {name: record.to_dict() for name, record in sorted(self._records.items())}
        _write_string_atomic(self.config.data_path, json.dumps(payload, indent=2))
        _write_string_atomic(self.config.zone_path, self.render_zone())


def validate_name(name: str) -> None:
    """Raise ApiError (400) unless ``name`` is a non-empty DNS label of a-z, 0-9 and '-'."""
    if not name:
        raise ApiError.bad_request("handle name must not be empty")
    if name.startswith("-") or name.endswith("-"):
        raise ApiError.bad_request("handle name must not start or end with a hyphen")
    if not all(ch.isascii() and (ch.islower() or ch.isdigit() or ch == "-") for ch in name):
        raise ApiError.bad_request(
            "handle name must contain only lowercase letters, digits, or hyphens"
        )


def validate_did(did: str) -> None:
    """Raise ApiError (400) unless ``did`` starts with ``did:``."""
    if not did.startswith("did:"):
        raise ApiError.bad_request("did must start with did:")


def _is_json_content_type(value: str) -> bool:
    mime = value.split(";", 1)[0].strip().lower()
    return mime == "application/json" or (mime.startswith("application/") and mime.endswith("+json"))


def create_app(config: AppConfig) -> Starlette:
    """Load the handle store for ``config`` and build the admin application."""
    store = HandleStore.load(config)

    async def health(request: Request) -> Response:
        return JSONResponse({"status": "ok"})

    async def create_handle(request: Request) -> Response:
        if not _is_json_content_type(request.headers.get("content-type", "")):
            return PlainTextResponse(
                "Expected request with `Content-Type: application/json`", status_code=415
            )
        try:
            payload = json.loads(await request.body())
        except ValueError as exc:
            return PlainTextResponse(f"Failed to parse the request body as JSON: {exc}", 400)
        if not isinstance(payload, dict):
            return PlainTextResponse("request body must be a JSON object", status_code=422)
        name, did = payload.get("name"), payload.get("did")
        for key, value in (("name", name), ("did", did)):
            if not isinstance(value, str):
                return PlainTextResponse(
                    f"Failed to deserialize the JSON body: missing or invalid field `{key}`",
                    status_code=422,
                )
        validate_name(name)
        validate_did(did)
        try:
            record = store.upsert(name, did)
        except OSError as exc:
            logger.error("failed to persist handle record: %s", exc)
            raise ApiError.internal("failed to persist handle record") from exc
        return JSONResponse(record.to_dict(), status_code=201)

    async def get_handle(request: Request) -> Response:
        name = request.path_params["name"]
        validate_name(name)
        record = store.get(name)
        if record is None:
            raise ApiError.not_found(f"handle {name} not found")
        return JSONResponse(record.to_dict())

    async def handle_api_error(request: Request, exc: Exception) -> Response:
        assert isinstance(exc, ApiError)
        return JSONResponse({"error": exc.message}, status_code=exc.status)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/api/handles", create_handle, methods=["POST"]),
        Route("/api/handles/{name}", get_handle, methods=["GET"]),
    ]
    return Starlette(routes=routes, exception_handlers={ApiError: handle_api_error})


def _split_bind_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"invalid socket address: {addr}")
    port_number = int(port)
    if port_number > 65535:
        raise ValueError(f"invalid socket address: {addr}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port_number


def main(argv: list[str] | None = None) -> int:
    """Serve the admin application on LOCALNET_ADMIN_BIND_ADDR."""
    import uvicorn

    argparse.ArgumentParser(description="Local-network handle admin service").parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    app = create_app(AppConfig.from_env())
    host, port = _split_bind_addr(os.environ.get("LOCALNET_ADMIN_BIND_ADDR", DEFAULT_BIND_ADDR))
    uvicorn.run(app, host=host, port=port)
    return 0