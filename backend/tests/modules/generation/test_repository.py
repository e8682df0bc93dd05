"""Tests for the Supabase session repository."""

from datetime import datetime, timezone

import pytest
from unittest.mock import MagicMock
from postgrest.exceptions import APIError

from modules.generation.exceptions import DuplicateSessionError, SessionStoreError
from modules.generation.models import GenerationSession, PaymentMethod, SessionStatus
from modules.generation.repository import SessionRepository, SESSIONS_TABLE


def _row(**overrides) -> dict:
    row = {
        "id": "s1",
        "store_id": "store-1",
        "status": "queued",
        "request_id": "req_1",
        "payment_method": "overage",
        "shopper_email": None,
        "model_image_url": "https://a/1.jpg",
        "outfit_image_url": None,
        "generated_image_url": None,
        "prompt_system": "Virtual try-on",
        "credits_used": 1,
        "error_message": None,
        "metadata": {"overage_charge_id": "chg_123"},
        "created_at": "2026-10-18T10:00:00Z",
        "completed_at": None,
    }
    row.update(overrides)
    return row


class TestSessionRepository:
    @pytest.fixture
    def mock_db(self):
        return MagicMock()

    @pytest.fixture
    def repo(self, mock_db):
        return SessionRepository(mock_db)

    @pytest.mark.asyncio
    async def test_create_writes_row(self, repo, mock_db):
        mock_db.table.return_value.insert.return_value.execute.return_value.data = [_row()]
        session = GenerationSession(
            id="s1",
            store_id="store-1",
            request_id="req_1",
            payment_method=PaymentMethod.OVERAGE,
            prompt="Virtual try-on",
        )

        created = await repo.create(session)

        mock_db.table.assert_called_with(SESSIONS_TABLE)
        row = mock_db.table.return_value.insert.call_args.args[0]
        assert row["id"] == "s1"
        assert row["payment_method"] == "overage"
        assert row["prompt_system"] == "Virtual try-on"
        assert created.created_at == datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_create_failure(self, repo, mock_db):
        mock_db.table.return_value.insert.return_value.execute.side_effect = APIError(
            {"code": "08006", "message": "connection failure"}
        )

        with pytest.raises(SessionStoreError):
            await repo.create(GenerationSession(id="s1", store_id="store-1", request_id="req_1"))

    @pytest.mark.asyncio
    async def test_create_duplicate_request(self, repo, mock_db):
        mock_db.table.return_value.insert.return_value.execute.side_effect = APIError(
            {"code": "23505", "message": "duplicate key value violates unique constraint"}
        )

        with pytest.raises(DuplicateSessionError) as exc_info:
            await repo.create(GenerationSession(id="s2", store_id="store-1", request_id="req_1"))

        assert exc_info.value.request_id == "req_1"

    @pytest.mark.asyncio
    async def test_find_by_request(self, repo, mock_db):
        select = mock_db.table.return_value.select.return_value
        select.eq.return_value.eq.return_value.limit.return_value.execute.return_value.data = [
            _row(status="failed")
        ]

        session = await repo.find_by_request("store-1", "req_1")

        assert session.id == "s1"
        assert session.status == SessionStatus.FAILED
        select.eq.assert_called_once_with("store_id", "store-1")
        select.eq.return_value.eq.assert_called_once_with("request_id", "req_1")

    @pytest.mark.asyncio
    async def test_find_by_request_missing(self, repo, mock_db):
        select = mock_db.table.return_value.select.return_value
        select.eq.return_value.eq.return_value.limit.return_value.execute.return_value.data = []

        assert await repo.find_by_request("store-1", "req_1") is None

    @pytest.mark.asyncio
    async def test_get_maps_row(self, repo, mock_db):
        query = mock_db.table.return_value.select.return_value.eq.return_value.eq.return_value
        query.limit.return_value.execute.return_value.data = [_row()]

        session = await repo.get("s1", "store-1")

        assert session.payment_method == PaymentMethod.OVERAGE
        assert session.prompt == "Virtual try-on"
        assert session.metadata["overage_charge_id"] == "chg_123"

    @pytest.mark.asyncio
    async def test_get_missing(self, repo, mock_db):
        query = mock_db.table.return_value.select.return_value.eq.return_value.eq.return_value
        query.limit.return_value.execute.return_value.data = []

        assert await repo.get("s1", "store-1") is None

    @pytest.mark.asyncio
    async def test_mark_failed_conditional(self, repo, mock_db):
        update = mock_db.table.return_value.update.return_value.eq.return_value
        update.in_.return_value.execute.return_value.data = [_row(status="failed")]

        assert await repo.mark_failed("s1", "Generation timed out", only_if_active=True) is True

        update.in_.assert_called_once_with("status", ["queued", "processing"])
        values = mock_db.table.return_value.update.call_args.args[0]
        assert values["status"] == SessionStatus.FAILED.value
        assert values["error_message"] == "Generation timed out"

    @pytest.mark.asyncio
    async def test_mark_failed_no_match(self, repo, mock_db):
        update = mock_db.table.return_value.update.return_value.eq.return_value
        update.in_.return_value.execute.return_value.data = []

        assert await repo.mark_failed("s1", "Generation timed out", only_if_active=True) is False

    @pytest.mark.asyncio
    async def test_merge_metadata(self, repo, mock_db):
        read = mock_db.table.return_value.select.return_value.eq.return_value.limit.return_value
        read.execute.return_value.data = [{"metadata": {"existing": 1}}]

        await repo.merge_metadata("s1", {"overage_charge_id": "chg_123"})

        mock_db.table.return_value.update.assert_called_once_with(
            {"metadata": {"existing": 1, "overage_charge_id": "chg_123"}}
        )

    @pytest.mark.asyncio
    async def test_find_stuck(self, repo, mock_db):
        query = mock_db.table.return_value.select.return_value.in_.return_value
        query.lt.return_value.order.return_value.limit.return_value.execute.return_value.data = [
            _row(payment_method="credit")
        ]
        cutoff = datetime(2026, 10, 18, 10, 15, tzinfo=timezone.utc)

        stuck = await repo.find_stuck(cutoff, limit=10)

        assert [s.id for s in stuck] == ["s1"]
        query.lt.assert_called_once_with("created_at", cutoff.isoformat())
