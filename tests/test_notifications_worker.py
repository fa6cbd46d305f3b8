import pytest
from unittest.mock import patch

from learnlite.consumers.notifications_worker import start_notifications_worker


@pytest.mark.asyncio
async def test_single_cycle_respects_disabled_flag(monkeypatch):
    monkeypatch.delenv("NOTIFICATIONS_ENABLED", raising=False)

    with patch("learnlite.consumers.notifications_worker.create_engine") as create_engine:
        await start_notifications_worker(once=True)

    create_engine.assert_not_called()


@pytest.mark.asyncio
async def test_single_cycle_delivers_pending_events(monkeypatch, tmp_path, insert_events, fetch_rows):
    monkeypatch.setenv("NOTIFICATIONS_ENABLED", "true")
    monkeypatch.setenv("NOTIFICATIONS_SINK", "file")
    monkeypatch.setenv("NOTIFICATIONS_FILE", str(tmp_path / "var" / "notifications.log"))
    monkeypatch.setattr(
        "learnlite.consumers.notifications_worker.DB_URL", f"sqlite+aiosqlite:///{tmp_path / 'outbox.db'}"
    )
    await insert_events([("enrollment.created", {"enrollment_id": 4}), ("cert.issued", {"certificate_id": 9})])

    await start_notifications_worker(once=True)

    rows = await fetch_rows()
    assert all(processed for processed, _ in rows.values())
    lines = (tmp_path / "var" / "notifications.log").read_text().splitlines()
    assert len(lines) == 2
    assert '"enrollment.created"' in lines[0]
