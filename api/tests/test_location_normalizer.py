import pytest

from proxy_admin.services.location_normalizer import (
    LOCATION_DEFAULTS,
    Location,
    ProxyLocation,
    RedirectLocation,
    StaticLocation,
    Upstream,
    normalize_location,
    normalize_locations,
    normalize_stream_port,
    normalize_stream_ports,
)


# Storage key -> normalized attribute name
_ATTRIBUTES = {
    "upstreams": "upstreams",
    "balanceMethod": "balance_method",
    "staticDir": "static_dir",
    "cacheExpires": "cache_expires",
    "forwardScheme": "forward_scheme",
    "forwardDomain": "forward_domain",
    "forwardPath": "forward_path",
    "preservePath": "preserve_path",
    "statusCode": "status_code",
    "headers": "headers",
    "accessListId": "access_list_id",
}


def test_bare_location_gets_every_default():
    location = normalize_location({"path": "/", "matchType": "prefix", "type": "proxy"})

    assert location.upstreams == []
    assert location.balance_method == "round_robin"
    assert location.static_dir == ""
    assert location.cache_expires == ""
    assert location.forward_scheme == "https"
    assert location.forward_domain == ""
    assert location.forward_path == "/"
    assert location.preserve_path is True
    assert location.status_code == 301
    assert location.headers == {}
    assert location.access_list_id is None


@pytest.mark.parametrize("present_key", sorted(_ATTRIBUTES))
def test_defaults_do_not_depend_on_which_other_fields_exist(present_key):
    values = {
        "upstreams": [{"server": "10.0.0.9", "port": 81, "weight": 3}],
        "balanceMethod": "least_conn",
        "staticDir": "/srv/www",
        "cacheExpires": "7d",
        "forwardScheme": "http",
        "forwardDomain": "elsewhere.example",
        "forwardPath": "/landing",
        "preservePath": False,
        "statusCode": 302,
        "headers": {"X-Frame-Options": "DENY"},
        "accessListId": 4,
    }
    raw = {"path": "/x", "matchType": "exact", "type": "static", present_key: values[present_key]}

    location = normalize_location(raw)

    for key, attribute in _ATTRIBUTES.items():
        if key == present_key:
            continue
        assert getattr(location, attribute) == LOCATION_DEFAULTS[key], key


def test_null_values_are_treated_as_missing():
    location = normalize_location(
        {
            "path": "/",
            "type": "redirect",
            "forwardPath": None,
            "preservePath": None,
            "statusCode": None,
            "headers": None,
        }
    )

    assert location.forward_path == "/"
    assert location.preserve_path is True
    assert location.status_code == 301
    assert location.headers == {}


def test_falsy_stored_values_are_kept():
    location = normalize_location({"type": "redirect", "preservePath": False, "forwardPath": ""})

    assert location.preserve_path is False
    assert location.forward_path == ""


@pytest.mark.parametrize(
    "location_type,variant",
    [("proxy", ProxyLocation), ("static", StaticLocation), ("redirect", RedirectLocation)],
)
def test_type_selects_variant(location_type, variant):
    assert type(normalize_location({"type": location_type})) is variant


@pytest.mark.parametrize("raw", [{"type": "websocket"}, {}, {"type": None}, None, "garbage"])
def test_unknown_or_missing_type_still_normalizes(raw):
    location = normalize_location(raw)

    assert type(location) is Location
    assert location.balance_method == "round_robin"


def test_upstreams_keep_order_and_duplicates():
    raw_upstreams = [
        {"server": "10.0.0.1", "port": 8080, "weight": 1},
        {"server": "10.0.0.1", "port": 8080, "weight": 1},
        {"server": "10.0.0.2", "port": 8080},
    ]

    location = normalize_location({"type": "proxy", "upstreams": raw_upstreams})

    assert location.upstreams == [
        Upstream("10.0.0.1", 8080, 1),
        Upstream("10.0.0.1", 8080, 1),
        Upstream("10.0.0.2", 8080, 1),
    ]


def test_missing_location_list_is_empty():
    assert normalize_locations(None) == []
    assert normalize_stream_ports(None) == []


def test_stream_port_defaults():
    stream_port = normalize_stream_port({"port": 5432})

    assert stream_port.port == 5432
    assert stream_port.protocol == "tcp"
    assert stream_port.upstreams == []
    assert stream_port.balance_method == "round_robin"


@pytest.mark.parametrize(
    "raw,missing",
    [
        ({"type": "proxy"}, ["upstreams"]),
        ({"type": "proxy", "upstreams": [{"server": "a", "port": 1}]}, []),
        ({"type": "static", "staticDir": "   "}, ["static_dir"]),
        ({"type": "static", "staticDir": "/var/www"}, []),
        ({"type": "redirect"}, ["forward_domain"]),
        ({"type": "redirect", "forwardDomain": "new.example.com"}, []),
    ],
)
def test_variant_required_fields(raw, missing):
    assert normalize_location(raw).missing_required_fields() == missing
