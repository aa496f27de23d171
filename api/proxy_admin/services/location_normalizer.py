"""Normalisation of the embedded location / stream-port documents stored on hosts.

Locations and stream ports live in JSON columns and were written by several
generations of the admin UI, so older rows can miss keys that newer code
expects. Everything downstream (compiler, action layer) consumes the records
produced here instead of the raw documents.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable


DEFAULT_BALANCE_METHOD = "round_robin"
DEFAULT_STREAM_PROTOCOL = "tcp"
DEFAULT_UPSTREAM_WEIGHT = 1

# Storage key -> value used when the key is absent or null.
LOCATION_DEFAULTS: dict[str, object] = {
    "upstreams": [],
    "balanceMethod": DEFAULT_BALANCE_METHOD,
    "staticDir": "",
    "cacheExpires": "",
    "forwardScheme": "https",
    "forwardDomain": "",
    "forwardPath": "/",
    "preservePath": True,
    "statusCode": 301,
    "headers": {},
    "accessListId": None,
}


def _get(raw: Mapping[str, Any], key: str, default: Any = None) -> Any:
    value = raw.get(key)
    if value is None:
        return default
    return value


def _as_mapping(raw: Any) -> Mapping[str, Any]:
    if isinstance(raw, Mapping):
        return raw
    return {}


@dataclass(frozen=True, slots=True)
class Upstream:
    server: Any
    port: Any
    weight: Any = DEFAULT_UPSTREAM_WEIGHT

    def as_dict(self) -> dict[str, object]:
        return {"server": self.server, "port": self.port, "weight": self.weight}


@dataclass(frozen=True, slots=True)
class Location:
    """Fully-populated location record.

    Plain ``Location`` instances are only produced for rows whose ``type`` is
    not one of the known variants; the raw type is kept as-is.
    """

    path: Any
    match_type: Any
    type: Any
    upstreams: list[Upstream] = field(default_factory=list)
    balance_method: str = DEFAULT_BALANCE_METHOD
    static_dir: str = ""
    cache_expires: str = ""
    forward_scheme: str = "https"
    forward_domain: str = ""
    forward_path: str = "/"
    preserve_path: bool = True
    status_code: int = 301
    headers: dict[str, str] = field(default_factory=dict)
    access_list_id: int | None = None

    required_fields: ClassVar[tuple[str, ...]] = ()

    def missing_required_fields(self) -> list[str]:
        missing: list[str] = []
        for name in self.required_fields:
            value = getattr(self, name)
            if isinstance(value, str):
                value = value.strip()
            if not value:
                missing.append(name)
        return missing


@dataclass(frozen=True, slots=True)
class ProxyLocation(Location):
    required_fields: ClassVar[tuple[str, ...]] = ("upstreams",)


@dataclass(frozen=True, slots=True)
class StaticLocation(Location):
    required_fields: ClassVar[tuple[str, ...]] = ("static_dir",)


@dataclass(frozen=True, slots=True)
class RedirectLocation(Location):
    required_fields: ClassVar[tuple[str, ...]] = ("forward_domain",)


LOCATION_VARIANTS: dict[str, type[Location]] = {
    "proxy": ProxyLocation,
    "static": StaticLocation,
    "redirect": RedirectLocation,
}


@dataclass(frozen=True, slots=True)
class StreamPort:
    port: Any
    protocol: str = DEFAULT_STREAM_PROTOCOL
    upstreams: list[Upstream] = field(default_factory=list)
    balance_method: str = DEFAULT_BALANCE_METHOD


def normalize_upstreams(raw_upstreams: Iterable[Any] | None) -> list[Upstream]:
    upstreams: list[Upstream] = []
    for item in raw_upstreams or []:
        raw = _as_mapping(item)
        upstreams.append(
            Upstream(
                server=raw.get("server"),
                port=raw.get("port"),
                weight=_get(raw, "weight", DEFAULT_UPSTREAM_WEIGHT),
            )
        )
    return upstreams


def normalize_location(raw_location: Any) -> Location:
    raw = _as_mapping(raw_location)
    location_type = raw.get("type")
    variant = LOCATION_VARIANTS.get(location_type, Location) if isinstance(location_type, str) else Location

    return variant(
        path=raw.get("path"),
        match_type=raw.get("matchType"),
        type=location_type,
        upstreams=normalize_upstreams(raw.get("upstreams")),
        balance_method=_get(raw, "balanceMethod", LOCATION_DEFAULTS["balanceMethod"]),
        static_dir=_get(raw, "staticDir", LOCATION_DEFAULTS["staticDir"]),
        cache_expires=_get(raw, "cacheExpires", LOCATION_DEFAULTS["cacheExpires"]),
        forward_scheme=_get(raw, "forwardScheme", LOCATION_DEFAULTS["forwardScheme"]),
        forward_domain=_get(raw, "forwardDomain", LOCATION_DEFAULTS["forwardDomain"]),
        forward_path=_get(raw, "forwardPath", LOCATION_DEFAULTS["forwardPath"]),
        preserve_path=_get(raw, "preservePath", LOCATION_DEFAULTS["preservePath"]),
        status_code=_get(raw, "statusCode", LOCATION_DEFAULTS["statusCode"]),
        headers=dict(_as_mapping(raw.get("headers"))),
        access_list_id=raw.get("accessListId"),
    )


def normalize_locations(raw_locations: Iterable[Any] | None) -> list[Location]:
    return [normalize_location(item) for item in raw_locations or []]


def normalize_stream_port(raw_stream_port: Any) -> StreamPort:
    raw = _as_mapping(raw_stream_port)
    return StreamPort(
        port=raw.get("port"),
        protocol=_get(raw, "protocol", DEFAULT_STREAM_PROTOCOL),
        upstreams=normalize_upstreams(raw.get("upstreams")),
        balance_method=_get(raw, "balanceMethod", DEFAULT_BALANCE_METHOD),
    )


def normalize_stream_ports(raw_stream_ports: Iterable[Any] | None) -> list[StreamPort]:
    return [normalize_stream_port(item) for item in raw_stream_ports or []]
