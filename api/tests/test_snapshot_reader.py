from __future__ import annotations

import asyncio
import dataclasses
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from proxy_admin.models import AccessList
from proxy_admin.services.snapshot_reader import ConfigSnapshot, read_settings_map, read_snapshot


def _result(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(rows)
    return result


def _session(*row_sets):
    session = MagicMock()
    session.execute = AsyncMock(side_effect=[_result(rows) for rows in row_sets])
    return session


def _statements(session):
    return [call.args[0] for call in session.execute.await_args_list]


def test_snapshot_keeps_store_order():
    hosts = [SimpleNamespace(id=1), SimpleNamespace(id=2), SimpleNamespace(id=7)]
    lists = [
        SimpleNamespace(
            id=3,
            clients=[SimpleNamespace(id=10, address="10.0.0.0/8"), SimpleNamespace(id=11, address="all")],
            auth=[SimpleNamespace(id=20, username="ops")],
        )
    ]
    settings_rows = [SimpleNamespace(key="global_webhook_url", value="https://hooks.example.com/proxy")]
    session = _session(hosts, lists, settings_rows)

    snapshot = asyncio.run(read_snapshot(session))

    assert [host.id for host in snapshot.hosts] == [1, 2, 7]
    assert [client.id for client in snapshot.access_lists[0].clients] == [10, 11]
    assert snapshot.settings == {"global_webhook_url": "https://hooks.example.com/proxy"}
    assert isinstance(snapshot.hosts, tuple)
    assert isinstance(snapshot.access_lists, tuple)


def test_snapshot_queries_order_by_id_and_refresh_identity_map():
    session = _session([], [], [])

    asyncio.run(read_snapshot(session))

    hosts_stmt, lists_stmt, settings_stmt = _statements(session)
    assert "ORDER BY hosts.id ASC" in str(hosts_stmt)
    assert "ORDER BY access_lists.id ASC" in str(lists_stmt)
    assert "ORDER BY settings." in str(settings_stmt)
    assert hosts_stmt.get_execution_options()["populate_existing"] is True
    assert lists_stmt.get_execution_options()["populate_existing"] is True


def test_access_list_rules_load_in_insertion_order():
    assert [str(column) for column in AccessList.clients.property.order_by] == ["access_list_clients.id"]
    assert [str(column) for column in AccessList.auth.property.order_by] == ["access_list_auth.id"]


def test_null_setting_value_becomes_empty_string():
    session = _session(
        [
            SimpleNamespace(key="audit_retention_days", value="30"),
            SimpleNamespace(key="global_webhook_url", value=None),
        ]
    )

    settings_map = asyncio.run(read_settings_map(session))

    assert settings_map == {"audit_retention_days": "30", "global_webhook_url": ""}


def test_empty_store_gives_empty_snapshot():
    session = _session([], [], [])

    snapshot = asyncio.run(read_snapshot(session))

    assert snapshot == ConfigSnapshot()
    assert snapshot.hosts == ()
    assert snapshot.access_lists == ()
    assert snapshot.settings == {}


def test_snapshot_is_frozen():
    snapshot = ConfigSnapshot(hosts=(SimpleNamespace(id=1),))

    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.hosts = ()

    assert [f.name for f in dataclasses.fields(ConfigSnapshot)] == ["hosts", "access_lists", "settings"]
