"""
StorySnap Backend — Moderation Service Unit Tests
===================================================

What we test:
    ✅ Only admins may approve or reject
    ✅ approve / reject set status, approved_by, approved_at
    ✅ rejection reason kept on reject, cleared on approve
    ✅ any transition between approved and rejected is allowed
    ✅ unknown story → NotFoundError, unknown action → ValidationError
    ✅ admin check for known / unknown / missing identities
"""

import pytest
from unittest.mock import AsyncMock, patch
from uuid import uuid4

from sqlalchemy.dialects import postgresql

from storysnap.exceptions import AuthorizationError, NotFoundError, ValidationError
from storysnap.services.moderation_service import ModerationService


@pytest.fixture
def users(make_user, admin_user):
    """Patches user lookup with a tiny in-memory directory."""
    directory = {
        "admin-uid": admin_user,
        "user-uid": make_user(firebase_uid="user-uid"),
    }
    with patch("storysnap.services.moderation_service.user_service") as mock_users:
        mock_users.find_by_uid = AsyncMock(side_effect=lambda db, uid: directory.get(uid))
        yield mock_users


def update_params(mock_db_session) -> dict:
    stmt = mock_db_session.execute.call_args.args[0]
    return stmt.compile(dialect=postgresql.dialect()).params


class TestRequireAdmin:

    def setup_method(self):
        self.service = ModerationService()

    @pytest.mark.asyncio
    async def test_admin_resolves(self, mock_db_session, users, admin_user):
        assert await self.service.require_admin(mock_db_session, "admin-uid") is admin_user

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identity", ["user-uid", "stranger", None, ""])
    async def test_everyone_else_is_refused(self, mock_db_session, users, identity):
        with pytest.raises(AuthorizationError):
            await self.service.require_admin(mock_db_session, identity)


class TestTransition:

    def setup_method(self):
        self.service = ModerationService()

    @pytest.mark.asyncio
    async def test_non_admin_cannot_approve(self, mock_db_session, users):
        with pytest.raises(AuthorizationError):
            await self.service.transition(mock_db_session, uuid4(), "approve", "user-uid")
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authorization_checked_before_action(self, mock_db_session, users):
        with pytest.raises(AuthorizationError):
            await self.service.transition(mock_db_session, uuid4(), "publish", "user-uid")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", [None, "", "publish", "APPROVE"])
    async def test_unknown_action_rejected(self, mock_db_session, users, action):
        with pytest.raises(ValidationError):
            await self.service.transition(mock_db_session, uuid4(), action, "admin-uid")
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_approve_records_moderator(self, mock_db_session, users, execute_result, make_story):
        approved = make_story(status="approved", approved_by="admin-uid")
        mock_db_session.execute.return_value = execute_result(scalar=approved)

        story = await self.service.transition(
            mock_db_session, approved.id, "approve", "admin-uid", rejection_reason="ignored"
        )

        assert story is approved
        params = update_params(mock_db_session)
        assert params["status"] == "approved"
        assert params["approved_by"] == "admin-uid"
        assert params["approved_at"] is not None
        assert params["rejection_reason"] is None

    @pytest.mark.asyncio
    async def test_reject_keeps_trimmed_reason(self, mock_db_session, users, execute_result, make_story):
        mock_db_session.execute.return_value = execute_result(scalar=make_story(status="rejected"))

        await self.service.transition(
            mock_db_session, uuid4(), "reject", "admin-uid", rejection_reason="  Needs sources  "
        )

        params = update_params(mock_db_session)
        assert params["status"] == "rejected"
        assert params["rejection_reason"] == "Needs sources"

    @pytest.mark.asyncio
    async def test_reject_without_reason_clears_old_reason(self, mock_db_session, users, execute_result, make_story):
        mock_db_session.execute.return_value = execute_result(scalar=make_story(status="rejected"))

        await self.service.transition(mock_db_session, uuid4(), "reject", "admin-uid")

        assert update_params(mock_db_session)["rejection_reason"] is None

    @pytest.mark.asyncio
    async def test_update_touches_only_moderation_columns(self, mock_db_session, users, execute_result, make_story):
        mock_db_session.execute.return_value = execute_result(scalar=make_story(status="approved"))

        await self.service.transition(mock_db_session, uuid4(), "approve", "admin-uid")

        stmt = mock_db_session.execute.call_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        set_clause = sql.split(" WHERE ")[0]
        assert "upvotes" not in set_clause
        assert "upvoted_by" not in set_clause
        assert "title" not in set_clause

    @pytest.mark.asyncio
    async def test_missing_story_not_found(self, mock_db_session, users, execute_result):
        mock_db_session.execute.return_value = execute_result(scalar=None)

        with pytest.raises(NotFoundError):
            await self.service.transition(mock_db_session, uuid4(), "reject", "admin-uid")


class TestCheckAdmin:

    def setup_method(self):
        self.service = ModerationService()

    @pytest.mark.asyncio
    async def test_admin_and_regular_user(self, mock_db_session, users):
        assert await self.service.check_admin(mock_db_session, "admin-uid") is True
        assert await self.service.check_admin(mock_db_session, "user-uid") is False

    @pytest.mark.asyncio
    async def test_unknown_identity_not_found(self, mock_db_session, users):
        with pytest.raises(NotFoundError):
            await self.service.check_admin(mock_db_session, "stranger")

    @pytest.mark.asyncio
    async def test_missing_identity_is_validation_error(self, mock_db_session, users):
        with pytest.raises(ValidationError):
            await self.service.check_admin(mock_db_session, None)
