"""Audit trail tests."""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from factories import ADMIN_ID, make_result
from points_forest.models.audit import AuditLog
from points_forest.services.audit import AuditService
from points_forest.utils.json_utils import json_dumps, json_loads


@pytest.mark.asyncio
async def test_record_writes_row_and_stream(mock_session, patch_redis, mock_redis):
    entry = await AuditService(mock_session).record(
        action="admin.adjust_points",
        actor_user_id=ADMIN_ID,
        context={"amount": 10, "target_user_id": "u1"},
    )

    assert isinstance(entry, AuditLog)
    mock_session.add.assert_called_once_with(entry)
    mock_session.flush.assert_awaited_once()

    stream, payload = mock_redis.xadd.await_args.args
    assert stream == AuditService.REDIS_STREAM_KEY
    assert payload["audit_id"] == entry.id
    assert json_loads(payload["context"]) == {"amount": 10, "target_user_id": "u1"}
    assert len(payload["audit_hash"]) == 64
    assert mock_redis.xadd.await_args.kwargs == {"maxlen": AuditService.REDIS_STREAM_MAX_LEN}


@pytest.mark.asyncio
async def test_stream_failure_keeps_database_row(mock_session, patch_redis, mock_redis):
    mock_redis.xadd.side_effect = RedisConnectionError("stream down")

    entry = await AuditService(mock_session).record("admin.ban_user", ADMIN_ID, {})

    assert entry.action == "admin.ban_user"
    mock_session.add.assert_called_once_with(entry)


@pytest.mark.asyncio
async def test_recent_entries_filtered_by_action(mock_session, patch_redis, mock_redis):
    mock_redis.xrevrange.return_value = [
        ("2-0", {"action": "admin.adjust_points", "context": json_dumps({"amount": 5})}),
        ("1-0", {"action": "admin.ban_user", "context": "{}"}),
    ]

    entries = await AuditService(mock_session).get_recent_entries(10, action="admin.adjust_points")

    assert entries == [
        {"action": "admin.adjust_points", "context": {"amount": 5}, "stream_id": "2-0"},
    ]
    mock_redis.xrevrange.assert_awaited_once_with(AuditService.REDIS_STREAM_KEY, count=20)


@pytest.mark.asyncio
async def test_recent_entries_without_redis(mock_session, monkeypatch):
    monkeypatch.setattr("points_forest.services.audit.get_redis", lambda: None)

    assert await AuditService(mock_session).get_recent_entries() == []


@pytest.mark.asyncio
async def test_list_logs(mock_session, patch_redis):
    log = AuditLog(id="a1", actor_user_id=ADMIN_ID, action="admin.adjust_points", context={})
    mock_session.execute.return_value = make_result(rows=[log])

    assert await AuditService(mock_session).list_logs(action="admin.adjust_points") == [log]
