from __future__ import annotations

import pytest
from pymongo.errors import PyMongoError

from fake_mongo import FakeCollection, FakeDB
from scorehub.services import audit_service


class _BrokenAudit(FakeCollection):
    async def insert_one(self, doc):
        raise PyMongoError("down")


def test_anonymize_ip():
    assert audit_service.anonymize_ip("192.168.1.42") == "192.168.1.0"
    assert audit_service.anonymize_ip("2001:db8:1:2:3:4:5:6") == "2001:db8:1:2::"
    assert audit_service.anonymize_ip("garbage") == ""
    assert audit_service.anonymize_ip("") == ""


@pytest.mark.asyncio
async def test_log_audit_writes_record(monkeypatch):
    db = FakeDB()
    monkeypatch.setattr(audit_service._db, "db", db, raising=False)

    await audit_service.log_audit(action="LOGIN_SUCCESS", actor_id="u1", metadata={"via": "password"})

    entry = db.audit_logs.docs[0]
    assert entry["action"] == "LOGIN_SUCCESS"
    assert entry["target_id"] == "u1"
    assert entry["metadata"] == {"via": "password"}


@pytest.mark.asyncio
async def test_log_audit_failure_is_not_raised(monkeypatch):
    monkeypatch.setattr(audit_service._db, "db", FakeDB(audit_logs=_BrokenAudit()), raising=False)

    await audit_service.log_audit(action="LOGIN_FAILED", actor_id="u1")
