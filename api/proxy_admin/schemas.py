# api/proxy_admin/schemas.py

from __future__ import annotations
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from typing import Optional, List, Dict, Literal
from datetime import datetime
import re

from proxy_admin.services.location_normalizer import normalize_location

SSL_TYPES = {"none", "letsencrypt", "custom"}
REDIRECT_STATUS_CODES = {301, 302}
WEBHOOK_URL_RE = re.compile(r"^https?://.+")
SETTING_KEYS = (
    "global_webhook_url",
    "watchdog_interval_ms",
    "audit_retention_days",
    "health_retention_days",
)

# --- User Schemas ---
class UserInDB(BaseModel):
    id: int
    username: str
    role: str = "viewer"
    model_config = ConfigDict(from_attributes=True)

# --- Embedded routing records ---
class UpstreamIn(BaseModel):
    server: str
    port: int
    weight: int = 1

    @field_validator("server")
    def validate_server(cls, v):
        if not v or v.isspace():
            raise ValueError("All upstreams must have a server address")
        return v.strip()

    @field_validator("port")
    def validate_port(cls, v):
        if v < 1 or v > 65535:
            raise ValueError("Upstream port must be between 1 and 65535")
        return v

    @field_validator("weight")
    def validate_weight(cls, v):
        if v < 1:
            raise ValueError("Upstream weight must be at least 1")
        return v


class LocationIn(BaseModel):
    """Location as submitted by the UI; stored with camelCase keys."""
    model_config = ConfigDict(populate_by_name=True)

    path: str = "/"
    match_type: Literal["prefix", "exact", "regex"] = Field("prefix", alias="matchType")
    type: Literal["proxy", "static", "redirect"]
    upstreams: List[UpstreamIn] = Field(default_factory=list)
    balance_method: str = Field("round_robin", alias="balanceMethod")
    static_dir: str = Field("", alias="staticDir")
    cache_expires: str = Field("", alias="cacheExpires")
    forward_scheme: str = Field("https", alias="forwardScheme")
    forward_domain: str = Field("", alias="forwardDomain")
    forward_path: str = Field("/", alias="forwardPath")
    preserve_path: bool = Field(True, alias="preservePath")
    status_code: int = Field(301, alias="statusCode")
    headers: Dict[str, str] = Field(default_factory=dict)
    access_list_id: Optional[int] = Field(None, alias="accessListId")

    @field_validator("status_code")
    def validate_status_code(cls, v):
        if v not in REDIRECT_STATUS_CODES:
            raise ValueError("statusCode must be 301 or 302")
        return v

    @model_validator(mode="after")
    def validate_variant_fields(self):
        missing = normalize_location(self.to_storage()).missing_required_fields()
        if "upstreams" in missing:
            raise ValueError(f'Location "{self.path}": at least one upstream is required for proxy type')
        if "static_dir" in missing:
            raise ValueError(f'Location "{self.path}": static directory path is required')
        if "forward_domain" in missing:
            raise ValueError(f'Location "{self.path}": forward domain is required')
        return self

    def to_storage(self) -> dict[str, object]:
        data = self.model_dump(by_alias=True)
        data["upstreams"] = [upstream.model_dump() for upstream in self.upstreams]
        return data


class StreamPortIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    port: int
    protocol: Literal["tcp", "udp"] = "tcp"
    upstreams: List[UpstreamIn]
    balance_method: str = Field("round_robin", alias="balanceMethod")

    @field_validator("port")
    def validate_port(cls, v):
        if v < 1 or v > 65535:
            raise ValueError("Stream port must be between 1 and 65535")
        return v

    @model_validator(mode="after")
    def validate_upstreams(self):
        if not self.upstreams:
            raise ValueError(f"Stream port {self.port}: at least one upstream is required")
        return self

    def to_storage(self) -> dict[str, object]:
        data = self.model_dump(by_alias=True)
        data["upstreams"] = [upstream.model_dump() for upstream in self.upstreams]
        return data


# --- Host Schemas ---
class HostBase(BaseModel):
    domains: List[str] = Field(default_factory=list)
    group_id: Optional[int] = None
    enabled: bool = True
    ssl_type: str = "none"
    ssl_force_https: bool = False
    ssl_cert_path: Optional[str] = None
    ssl_key_path: Optional[str] = None
    hsts: bool = True
    http2: bool = True
    locations: List[LocationIn] = Field(default_factory=list)
    stream_ports: List[StreamPortIn] = Field(default_factory=list)
    webhook_url: Optional[str] = None
    advanced_yaml: Optional[str] = None

    @field_validator("domains")
    def validate_domains(cls, v):
        # Domains are stored as given; blank entries are dropped only.
        return [domain for domain in v if domain and not domain.isspace()]

    @field_validator("ssl_type")
    def validate_ssl_type(cls, v):
        normalized = v.strip().lower()
        if normalized not in SSL_TYPES:
            raise ValueError("ssl_type must be one of none/letsencrypt/custom")
        return normalized

    @field_validator("ssl_cert_path", "ssl_key_path", "webhook_url", "advanced_yaml")
    def empty_to_none(cls, v):
        if v is None or not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_host(self):
        if not self.locations and not self.stream_ports:
            raise ValueError("At least one location or stream port is required")
        if self.locations and not self.domains:
            raise ValueError("At least one domain is required when locations are configured")
        if self.ssl_type == "custom" and (not self.ssl_cert_path or not self.ssl_key_path):
            raise ValueError("Custom SSL requires both certificate and key paths")
        return self

    def to_model_fields(self) -> dict[str, object]:
        data = self.model_dump(exclude={"locations", "stream_ports"})
        data["locations"] = [location.to_storage() for location in self.locations]
        data["stream_ports"] = [stream_port.to_storage() for stream_port in self.stream_ports]
        return data

class HostCreate(HostBase):
    pass

class Host(BaseModel):
    id: int
    domains: List[str]
    group_id: Optional[int] = None
    enabled: bool
    ssl_type: str
    ssl_force_https: bool
    ssl_cert_path: Optional[str] = None
    ssl_key_path: Optional[str] = None
    hsts: bool
    http2: bool
    locations: Optional[list] = None
    stream_ports: Optional[list] = None
    webhook_url: Optional[str] = None
    advanced_yaml: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class RedirectionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    domains: List[str]
    forward_scheme: str = Field("https", alias="forwardScheme")
    forward_domain: str = Field(..., alias="forwardDomain")
    forward_path: str = Field("/", alias="forwardPath")
    preserve_path: bool = Field(True, alias="preservePath")
    status_code: int = Field(301, alias="statusCode")
    group_id: Optional[int] = None
    ssl_type: Literal["none", "letsencrypt"] = "none"
    enabled: bool = True

    @field_validator("status_code")
    def validate_status_code(cls, v):
        if v not in REDIRECT_STATUS_CODES:
            raise ValueError("statusCode must be 301 or 302")
        return v

    @model_validator(mode="after")
    def validate_redirection(self):
        if not [domain for domain in self.domains if domain.strip()] or not self.forward_domain.strip():
            raise ValueError("Domains and forward domain are required")
        return self

    def to_host(self) -> HostCreate:
        location = LocationIn(
            path="/",
            matchType="prefix",
            type="redirect",
            forwardScheme=self.forward_scheme,
            forwardDomain=self.forward_domain,
            forwardPath=self.forward_path or "/",
            preservePath=self.preserve_path,
            statusCode=self.status_code,
        )
        return HostCreate(
            domains=self.domains,
            group_id=self.group_id,
            ssl_type=self.ssl_type,
            enabled=self.enabled,
            locations=[location],
        )


class StreamCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    incoming_port: int = Field(..., alias="incomingPort")
    protocol: Literal["tcp", "udp"] = "tcp"
    upstreams: List[UpstreamIn]
    balance_method: str = Field("round_robin", alias="balanceMethod")
    group_id: Optional[int] = None
    webhook_url: Optional[str] = None
    enabled: bool = True

    @field_validator("incoming_port")
    def validate_incoming_port(cls, v):
        if v < 1 or v > 65535:
            raise ValueError("Incoming port must be between 1 and 65535")
        return v

    @model_validator(mode="after")
    def validate_upstreams(self):
        if not self.upstreams:
            raise ValueError(f"Stream port {self.incoming_port}: at least one upstream is required")
        return self

    def to_host(self) -> HostCreate:
        stream_port = StreamPortIn(
            port=self.incoming_port,
            protocol=self.protocol,
            upstreams=self.upstreams,
            balanceMethod=self.balance_method,
        )
        return HostCreate(
            domains=[],
            group_id=self.group_id,
            webhook_url=self.webhook_url,
            enabled=self.enabled,
            stream_ports=[stream_port],
        )


# --- Group Schemas ---
class HostGroupBase(BaseModel):
    name: str
    description: Optional[str] = None
    webhook_url: Optional[str] = None

    @field_validator("name")
    def validate_name(cls, v):
        if not v or v.isspace():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("webhook_url")
    def validate_webhook_url(cls, v):
        if v is None or not v.strip():
            return None
        if not WEBHOOK_URL_RE.match(v):
            raise ValueError("Webhook URL must be a valid HTTP/HTTPS URL")
        return v

class HostGroupCreate(HostGroupBase):
    pass

class HostGroup(HostGroupBase):
    id: int
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# --- Access List Schemas ---
class AccessListClientIn(BaseModel):
    address: str
    directive: Literal["allow", "deny"] = "allow"

class AccessListAuthIn(BaseModel):
    username: str
    password: str

class AccessListBase(BaseModel):
    name: str
    satisfy: Literal["any", "all"] = "any"
    clients: List[AccessListClientIn] = Field(default_factory=list)
    auth: List[AccessListAuthIn] = Field(default_factory=list)

    @field_validator("name")
    def validate_name(cls, v):
        if not v or v.isspace():
            raise ValueError("Name is required")
        if len(v) > 100:
            raise ValueError("Name must be 100 characters or less")
        return v

    @field_validator("clients")
    def drop_blank_clients(cls, v):
        return [
            AccessListClientIn(address=client.address.strip(), directive=client.directive)
            for client in v
            if client.address.strip()
        ]

    @field_validator("auth")
    def drop_blank_auth(cls, v):
        return [
            AccessListAuthIn(username=entry.username.strip(), password=entry.password.strip())
            for entry in v
            if entry.username.strip() and entry.password.strip()
        ]

class AccessListCreate(AccessListBase):
    pass

class AccessListClientOut(AccessListClientIn):
    id: int
    model_config = ConfigDict(from_attributes=True)

class AccessListAuthOut(BaseModel):
    id: int
    username: str
    model_config = ConfigDict(from_attributes=True)

class AccessList(BaseModel):
    id: int
    name: str
    satisfy: str
    clients: List[AccessListClientOut] = Field(default_factory=list)
    auth: List[AccessListAuthOut] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# --- Settings Schemas ---
class SettingsUpdate(BaseModel):
    global_webhook_url: str = ""
    watchdog_interval_ms: str = ""
    audit_retention_days: str = ""
    health_retention_days: str = ""

    @field_validator("*", mode="before")
    def coerce_to_string(cls, v):
        if v is None:
            return ""
        return str(v)
