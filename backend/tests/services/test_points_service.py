"""Points ledger tests.

- Credits and debits move the balance and write one ledger entry
- Overdrafts are rejected and leave the balance untouched
- The per-user lock is always released
- Integrity hashes detect tampering
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from factories import ADMIN_ID, PLAYER_ID, identity_map_get, make_user, session_get_for
from points_forest.models.audit import AuditLog
from points_forest.models.points import PointTransaction, TransactionSource, TransactionType
from points_forest.services.audit import AuditService
from points_forest.services.points import PointsService
from points_forest.utils.errors import (
    InsufficientPointsError,
    InvalidAmountError,
    LockNotAcquiredError,
    RewardError,
    UserBannedError,
    UserNotFoundError,
)


def added_of(session, model):
    return [call.args[0] for call in session.add.call_args_list if isinstance(call.args[0], model)]


@pytest.fixture
def user():
    return make_user(points=100)


@pytest.fixture
def service(mock_session, patch_redis, user):
    mock_session.get.side_effect = session_get_for(user)
    return PointsService(mock_session)


class TestTransferPoints:
    @pytest.mark.asyncio
    async def test_earn_credits_balance(self, service, mock_session, mock_redis, user):
        tx = await service.earn(PLAYER_ID, 50, TransactionSource.ROULETTE, reference_id="session-1")

        assert user.points == 150
        assert tx.amount == 50
        assert (tx.balance_before, tx.balance_after) == (100, 150)
        assert tx.tx_type is TransactionType.EARN
        assert tx.source == "roulette"
        assert tx.reference_id == "session-1"
        assert added_of(mock_session, PointTransaction) == [tx]
        mock_session.flush.assert_awaited_once()
        mock_redis.delete.assert_awaited_once_with(f"points:balance:{PLAYER_ID}")

    @pytest.mark.asyncio
    async def test_lock_taken_and_released(self, service, mock_redis):
        await service.grant_bonus(PLAYER_ID, 10, TransactionSource.DAILY_BONUS)

        lock_call = mock_redis.set.await_args
        assert lock_call.args[0] == f"points:lock:{PLAYER_ID}"
        assert lock_call.kwargs == {"nx": True, "ex": PointsService.LOCK_TTL}

        token = lock_call.args[1]
        mock_redis.eval.assert_awaited_once_with(
            PointsService.RELEASE_LOCK_SCRIPT, 1, f"points:lock:{PLAYER_ID}", token
        )

    @pytest.mark.asyncio
    async def test_spend_debits_balance(self, service, user):
        tx = await service.spend(PLAYER_ID, 100, TransactionSource.GACHA)

        assert user.points == 0
        assert tx.amount == -100
        assert tx.tx_type is TransactionType.SPEND

    @pytest.mark.asyncio
    async def test_overdraft_rejected(self, service, mock_session, mock_redis, user):
        with pytest.raises(InsufficientPointsError) as exc_info:
            await service.spend(PLAYER_ID, 101, TransactionSource.GACHA)

        assert exc_info.value.details == {"required": 101, "available": 100}
        assert user.points == 100
        mock_session.add.assert_not_called()
        mock_redis.eval.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_debit_checked_against_committed_balance(self, mock_session, patch_redis):
        # Loaded by auth at 300, another request has since committed 50
        held = make_user(points=300)
        mock_session.get.side_effect = identity_map_get(held, points=50)

        with pytest.raises(InsufficientPointsError) as exc_info:
            await PointsService(mock_session).spend(PLAYER_ID, 100, TransactionSource.GACHA)

        assert exc_info.value.details == {"required": 100, "available": 50}
        assert held.points == 50
        assert mock_session.get.await_args.kwargs == {"with_for_update": True, "populate_existing": True}

    @pytest.mark.asyncio
    async def test_credit_builds_on_committed_balance(self, mock_session, patch_redis):
        held = make_user(points=300)
        mock_session.get.side_effect = identity_map_get(held, points=50)

        tx = await PointsService(mock_session).earn(PLAYER_ID, 10, TransactionSource.ROULETTE)

        assert (tx.balance_before, tx.balance_after) == (50, 60)
        assert held.points == 60

    @pytest.mark.asyncio
    async def test_zero_amount_rejected(self, service, mock_redis):
        with pytest.raises(InvalidAmountError):
            await service.transfer_points(PLAYER_ID, 0, TransactionType.EARN, TransactionSource.GAME)

        mock_redis.set.assert_not_awaited()

    @pytest.mark.parametrize("method", ["earn", "spend", "grant_bonus"])
    @pytest.mark.asyncio
    async def test_helpers_require_positive_amount(self, service, method):
        with pytest.raises(InvalidAmountError):
            await getattr(service, method)(PLAYER_ID, -5, TransactionSource.GAME)

    @pytest.mark.asyncio
    async def test_lock_contention(self, service, mock_session, mock_redis):
        mock_redis.set.return_value = False

        with pytest.raises(LockNotAcquiredError):
            await service.earn(PLAYER_ID, 10, TransactionSource.GAME)

        mock_session.get.assert_not_awaited()
        mock_redis.eval.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_user(self, service, mock_redis):
        with pytest.raises(UserNotFoundError):
            await service.earn("missing-user", 10, TransactionSource.GAME)

        mock_redis.eval.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_banned_user_cannot_earn(self, service, user):
        user.is_banned = True

        with pytest.raises(UserBannedError):
            await service.earn(PLAYER_ID, 10, TransactionSource.GAME)

        assert user.points == 100

    @pytest.mark.asyncio
    async def test_flush_failure_becomes_transaction_failed(self, service, mock_session, mock_redis):
        mock_session.flush.side_effect = SQLAlchemyError("connection reset")

        with pytest.raises(RewardError) as exc_info:
            await service.earn(PLAYER_ID, 10, TransactionSource.GAME)

        assert exc_info.value.code == "TRANSACTION_FAILED"
        mock_redis.eval.assert_awaited_once()
        mock_redis.delete.assert_not_awaited()


class TestIntegrity:
    @pytest.mark.asyncio
    async def test_hash_verifies(self, service):
        tx = await service.earn(PLAYER_ID, 25, TransactionSource.QUEST)

        assert len(tx.integrity_hash) == 64
        assert PointsService.verify_integrity(tx)

    @pytest.mark.asyncio
    async def test_tampering_detected(self, service):
        tx = await service.earn(PLAYER_ID, 25, TransactionSource.QUEST)

        tx.amount = 2500

        assert not PointsService.verify_integrity(tx)


class TestAdminAdjust:
    @pytest.mark.asyncio
    async def test_adjustment_writes_audit_entry(self, service, mock_session, mock_redis, user):
        tx = await service.admin_adjust(PLAYER_ID, -40, "  duplicate reward  ", ADMIN_ID)

        assert user.points == 60
        assert tx.tx_type is TransactionType.ADMIN
        assert tx.admin_id == ADMIN_ID
        assert tx.admin_note == "duplicate reward"

        [entry] = added_of(mock_session, AuditLog)
        assert entry.action == "admin.adjust_points"
        assert entry.actor_user_id == ADMIN_ID
        assert entry.context == {
            "target_user_id": PLAYER_ID,
            "amount": -40,
            "reason": "duplicate reward",
            "transaction_id": tx.id,
            "balance_before": 100,
            "balance_after": 60,
        }
        assert mock_redis.xadd.await_args.args[0] == AuditService.REDIS_STREAM_KEY

    @pytest.mark.asyncio
    async def test_adjustment_allowed_for_banned_user(self, service, user):
        user.is_banned = True

        await service.admin_adjust(PLAYER_ID, 5, "appeal granted", ADMIN_ID)

        assert user.points == 105

    @pytest.mark.asyncio
    async def test_cannot_go_below_zero(self, service, user):
        with pytest.raises(InsufficientPointsError):
            await service.admin_adjust(PLAYER_ID, -500, "chargeback", ADMIN_ID)

        assert user.points == 100

    @pytest.mark.asyncio
    async def test_reason_required(self, service, mock_redis):
        with pytest.raises(InvalidAmountError):
            await service.admin_adjust(PLAYER_ID, 10, "   ", ADMIN_ID)

        mock_redis.set.assert_not_awaited()


class TestBalance:
    @pytest.mark.asyncio
    async def test_cached_balance(self, service, mock_session, mock_redis):
        mock_redis.get.return_value = "42"

        assert await service.get_balance(PLAYER_ID) == 42
        mock_session.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_balance_miss_populates_cache(self, service, mock_redis):
        assert await service.get_balance(PLAYER_ID) == 100

        mock_redis.setex.assert_awaited_once_with(
            f"points:balance:{PLAYER_ID}", PointsService.BALANCE_CACHE_TTL, "100"
        )
