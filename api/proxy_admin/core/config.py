# api/proxy_admin/core/config.py

from __future__ import annotations

import logging
import sys
import warnings
from pathlib import PurePosixPath
from typing import List
from urllib.parse import urlparse

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Values shipped in example env files; never acceptable in production.
_DEFAULT_JWT_SECRETS = frozenset({
    "",
    "secret",
    "change-me",
    "jwt-secret",
    "proxy-admin-jwt-secret",
})
_DEFAULT_DB_PASSWORDS = frozenset({"", "proxy", "postgres", "password", "changeme"})
_LOCAL_ORIGIN_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0"})

MIN_JWT_SECRET_LENGTH = 16
MIN_DB_PASSWORD_LENGTH = 8


class Settings(BaseSettings):
    PROJECT_NAME: str = "Proxy Admin API"
    PROJECT_VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    DATABASE_URL: str
    JWT_SECRET: str
    ALGORITHM: str = "HS256"
    CORS_ORIGINS: List[AnyHttpUrl]
    port: int = 3001

    # development | production
    APP_ENV: str = "development"

    # Directory the proxy reads its generated YAML documents from.
    CONFIGS_DIR: str = "/data/configs"
    RESYNC_ON_STARTUP: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.strip().lower() == "production"

    def database_password(self) -> str:
        try:
            return urlparse(self.DATABASE_URL.replace("+asyncpg", "")).password or ""
        except ValueError:
            return ""

    def _security_findings(self) -> list[str]:
        findings: list[str] = []

        secret = self.JWT_SECRET.strip()
        if secret.lower() in _DEFAULT_JWT_SECRETS or len(secret) < MIN_JWT_SECRET_LENGTH:
            findings.append("JWT_SECRET is a default or shorter than 16 characters (try: openssl rand -hex 32).")

        password = self.database_password()
        if password.lower() in _DEFAULT_DB_PASSWORDS or len(password) < MIN_DB_PASSWORD_LENGTH:
            findings.append("POSTGRES_PASSWORD in DATABASE_URL is a default or shorter than 8 characters.")

        if not PurePosixPath(self.CONFIGS_DIR).is_absolute():
            findings.append(f"CONFIGS_DIR must be an absolute path, got {self.CONFIGS_DIR!r}.")

        if self.is_production:
            if not self.CORS_ORIGINS:
                findings.append("CORS_ORIGINS is empty.")
            elif all(
                any(host in str(origin).lower() for host in _LOCAL_ORIGIN_HOSTS)
                for origin in self.CORS_ORIGINS
            ):
                findings.append("CORS_ORIGINS only lists local origins; add the admin UI's real origin.")

        return findings

    def validate_security(self) -> None:
        """
        Check secrets and paths at startup.

        Development: every finding is logged and raised as a warning.
        Production: any finding blocks startup with SystemExit.
        """
        findings = self._security_findings()
        if not findings:
            return

        if not self.is_production:
            for finding in findings:
                logger.warning("[SECURITY] %s", finding)
                warnings.warn(f"[SECURITY] {finding}", stacklevel=2)
            return

        for finding in findings:
            logger.error("[SECURITY-FATAL] %s", finding)
        print("\n".join(f"FATAL: {finding}" for finding in findings), file=sys.stderr)
        raise SystemExit(
            f"Startup blocked: {len(findings)} security finding(s) in production mode. "
            "Fix them or set APP_ENV=development."
        )


settings = Settings()
settings.validate_security()
