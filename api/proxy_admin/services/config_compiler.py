from __future__ import annotations

from typing import Any, Iterable, Mapping

import yaml

from proxy_admin.services.location_normalizer import (
    Location,
    StreamPort,
    normalize_locations,
    normalize_stream_ports,
)


LISTEN_PORTS = {"http": 80, "https": 443, "admin": 81}
ADMIN_UPSTREAM = "127.0.0.1:3001"
DEFAULT_PAGE_PATH = "/data/default-page/index.html"
ERROR_PAGES_DIR = "/data/error-pages"
LOGS_DIR = "/data/logs"
SSL_DIR = "/etc/letsencrypt"


def _compile_location(location: Location) -> dict[str, object]:
    return {
        "path": location.path,
        "matchType": location.match_type,
        "type": location.type,
        "upstreams": [upstream.as_dict() for upstream in location.upstreams],
        "balanceMethod": location.balance_method,
        "staticDir": location.static_dir,
        "cacheExpires": location.cache_expires,
        "forwardScheme": location.forward_scheme,
        "forwardDomain": location.forward_domain,
        "forwardPath": location.forward_path,
        "preservePath": location.preserve_path,
        "statusCode": location.status_code,
        "headers": dict(location.headers),
        "access_list_id": location.access_list_id,
    }


def _compile_stream_port(stream_port: StreamPort) -> dict[str, object]:
    return {
        "port": stream_port.port,
        "protocol": stream_port.protocol,
        "upstreams": [upstream.as_dict() for upstream in stream_port.upstreams],
        "balance_method": stream_port.balance_method,
    }


def compile_host(host) -> dict[str, object]:
    """Map one host row to its host document.

    Strings are copied as stored; domains, paths, URLs and the advanced
    override text are never escaped or checked here.
    """
    return {
        "id": host.id,
        "domains": list(getattr(host, "domains", None) or []),
        "group_id": getattr(host, "group_id", None),
        "ssl": {
            "type": getattr(host, "ssl_type", None),
            "force_https": getattr(host, "ssl_force_https", None),
            "cert_path": getattr(host, "ssl_cert_path", None),
            "key_path": getattr(host, "ssl_key_path", None),
        },
        "hsts": getattr(host, "hsts", None),
        "http2": getattr(host, "http2", None),
        "locations": [
            _compile_location(location)
            for location in normalize_locations(getattr(host, "locations", None))
        ],
        "stream_ports": [
            _compile_stream_port(stream_port)
            for stream_port in normalize_stream_ports(getattr(host, "stream_ports", None))
        ],
        "advanced_yaml": getattr(host, "advanced_yaml", None),
        "enabled": getattr(host, "enabled", None),
    }


def compile_access_lists(access_lists: Iterable[Any]) -> list[dict[str, object]]:
    compiled: list[dict[str, object]] = []
    for access_list in access_lists:
        compiled.append(
            {
                "id": access_list.id,
                "name": access_list.name,
                "satisfy": access_list.satisfy,
                "clients": [
                    {"address": client.address, "directive": client.directive}
                    for client in getattr(access_list, "clients", None) or []
                ],
                # Passwords are emitted exactly as stored.
                "auth": [
                    {"username": entry.username, "password": entry.password}
                    for entry in getattr(access_list, "auth", None) or []
                ],
            }
        )
    return compiled


def compile_global(settings_map: Mapping[str, Any]) -> dict[str, object]:
    return {
        "listen": dict(LISTEN_PORTS),
        "admin_upstream": ADMIN_UPSTREAM,
        "default_page": DEFAULT_PAGE_PATH,
        "error_pages_dir": ERROR_PAGES_DIR,
        "logs_dir": LOGS_DIR,
        "ssl_dir": SSL_DIR,
        "global_webhook_url": settings_map.get("global_webhook_url") or "",
    }


class _DocumentDumper(yaml.SafeDumper):
    # Anchors/aliases would make the output depend on object identity.
    def ignore_aliases(self, data):
        return True


def render_document(document: object) -> str:
    return yaml.dump(
        document,
        Dumper=_DocumentDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )
