# ./api/proxy_admin/models.py

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import declarative_base, relationship
Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String, unique=True, nullable=False, index=True)
    role = Column(String, default="viewer", nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class HostGroup(Base):
    __tablename__ = "host_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    webhook_url = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Host(Base):
    __tablename__ = "hosts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey("host_groups.id", ondelete="SET NULL"), nullable=True)
    domains = Column(JSON, nullable=False, default=list)
    enabled = Column(Boolean, default=True, nullable=False)
    ssl_type = Column(String, default="none", nullable=False)
    ssl_force_https = Column(Boolean, default=False, nullable=False)
    ssl_cert_path = Column(String, nullable=True)
    ssl_key_path = Column(String, nullable=True)
    hsts = Column(Boolean, default=True, nullable=False)
    http2 = Column(Boolean, default=True, nullable=False)
    # Embedded, loosely-typed documents; see services/location_normalizer.py
    locations = Column(JSON, nullable=False, default=list)
    stream_ports = Column(JSON, nullable=True, default=list)
    webhook_url = Column(String, nullable=True)
    advanced_yaml = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class AccessList(Base):
    __tablename__ = "access_lists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    satisfy = Column(String, default="any", nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    clients = relationship(
        "AccessListClient",
        order_by="AccessListClient.id",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    auth = relationship(
        "AccessListAuth",
        order_by="AccessListAuth.id",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class AccessListClient(Base):
    __tablename__ = "access_list_clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    access_list_id = Column(Integer, ForeignKey("access_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    address = Column(String, nullable=False)
    directive = Column(String, default="allow", nullable=False)


class AccessListAuth(Base):
    __tablename__ = "access_list_auth"

    id = Column(Integer, primary_key=True, autoincrement=True)
    access_list_id = Column(Integer, ForeignKey("access_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    username = Column(String, nullable=False)
    password = Column(String, nullable=False)


class Setting(Base):
    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=True)
