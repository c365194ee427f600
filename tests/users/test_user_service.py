"""Tests for the lazy user cache."""

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from edumarket.auth.permissions import UserRole
from edumarket.core.exceptions import UpstreamUnavailableError
from edumarket.identity.client import IdentityProfile, IdentityProviderClient
from edumarket.users.service import UserService


def user_row(user_id: str = "user_1", **overrides) -> SimpleNamespace:
    values = {
        "user_id": user_id,
        "name": "Ana Souza",
        "email": "ana@example.com",
        "image_url": None,
        "role": "student",
        "created_at": datetime(2024, 1, 1),
        "updated_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def identity_client() -> Mock:
    client = Mock(spec=IdentityProviderClient)
    client.get_user = AsyncMock(
        return_value=IdentityProfile(
            user_id="user_1", name="Ana Souza", email="ana@example.com"
        )
    )
    client.update_public_metadata = AsyncMock()
    return client


@pytest.fixture
def user_service(mock_session: Mock, identity_client: Mock) -> UserService:
    """Create UserService with mocked dependencies."""
    return UserService(
        session=mock_session, keyspace="test_keyspace", identity_client=identity_client
    )


class TestGetOrCreate:
    """Tests for UserService.get_or_create."""

    @pytest.mark.asyncio
    async def test_cached_user_skips_identity_provider(
        self,
        user_service: UserService,
        mock_session: Mock,
        identity_client: Mock,
        make_result,
    ) -> None:
        mock_session.aexecute.return_value = make_result([user_row()])

        user = await user_service.get_or_create("user_1")

        assert user.name == "Ana Souza"
        identity_client.get_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_materializes_on_first_access(
        self,
        user_service: UserService,
        mock_session: Mock,
        identity_client: Mock,
        make_result,
    ) -> None:
        mock_session.aexecute.side_effect = [
            make_result([]),
            make_result(was_applied=True),
        ]

        user = await user_service.get_or_create("user_1")

        assert user.user_id == "user_1"
        assert user.role == "student"
        identity_client.get_user.assert_awaited_once_with("user_1")
        insert_stmt = mock_session.aexecute.call_args_list[1].args[0]
        assert insert_stmt is user_service._insert_user

    @pytest.mark.asyncio
    async def test_race_loser_returns_winner_row(
        self, user_service: UserService, mock_session: Mock, make_result
    ) -> None:
        winner = user_row(name="Winner Name", created_at=datetime(2023, 12, 31))
        mock_session.aexecute.side_effect = [
            make_result([]),
            make_result([winner], was_applied=False),
            make_result([winner]),
        ]

        user = await user_service.get_or_create("user_1")

        assert user.name == "Winner Name"
        assert user.created_at.year == 2023

    @pytest.mark.asyncio
    async def test_identity_provider_down(
        self,
        user_service: UserService,
        mock_session: Mock,
        identity_client: Mock,
        make_result,
    ) -> None:
        mock_session.aexecute.return_value = make_result([])
        identity_client.get_user.side_effect = UpstreamUnavailableError()

        with pytest.raises(UpstreamUnavailableError):
            await user_service.get_or_create("user_1")

        assert mock_session.aexecute.await_count == 1


class TestUpdateRole:
    """Tests for UserService.update_role_to_educator."""

    @pytest.mark.asyncio
    async def test_updates_provider_and_cache(
        self,
        user_service: UserService,
        mock_session: Mock,
        identity_client: Mock,
        make_result,
    ) -> None:
        mock_session.aexecute.return_value = make_result([user_row()])

        user = await user_service.update_role_to_educator("user_1")

        assert user.role == UserRole.EDUCATOR.value
        identity_client.update_public_metadata.assert_awaited_once_with(
            "user_1", {"role": "educator"}
        )
        stmt, params = mock_session.aexecute.call_args.args
        assert stmt is user_service._update_role
        assert params[0] == "educator"

    @pytest.mark.asyncio
    async def test_provider_failure_leaves_cache_untouched(
        self,
        user_service: UserService,
        mock_session: Mock,
        identity_client: Mock,
        make_result,
    ) -> None:
        mock_session.aexecute.return_value = make_result([user_row()])
        identity_client.update_public_metadata.side_effect = UpstreamUnavailableError()

        with pytest.raises(UpstreamUnavailableError):
            await user_service.update_role_to_educator("user_1")

        statements = [call.args[0] for call in mock_session.aexecute.call_args_list]
        assert user_service._update_role not in statements

    @pytest.mark.asyncio
    async def test_get_users_without_ids(
        self, user_service: UserService, mock_session: Mock
    ) -> None:
        assert await user_service.get_users([]) == {}
        mock_session.aexecute.assert_not_called()


class TestSyncProfile:
    """Tests for webhook-driven cache refreshes."""

    @pytest.fixture
    def profile(self) -> IdentityProfile:
        return IdentityProfile(
            user_id="user_1",
            name="Ana Lima",
            email="ana.lima@example.com",
            image_url="https://img/new",
            role=UserRole.EDUCATOR,
        )

    @pytest.mark.asyncio
    async def test_new_user_is_inserted(
        self,
        user_service: UserService,
        mock_session: Mock,
        profile: IdentityProfile,
        make_result,
    ) -> None:
        mock_session.aexecute.return_value = make_result(was_applied=True)

        user = await user_service.sync_profile(profile)

        assert user.name == "Ana Lima"
        statements = [call.args[0] for call in mock_session.aexecute.call_args_list]
        assert statements == [user_service._insert_user]

    @pytest.mark.asyncio
    async def test_existing_user_is_refreshed(
        self,
        user_service: UserService,
        mock_session: Mock,
        identity_client: Mock,
        profile: IdentityProfile,
        make_result,
    ) -> None:
        mock_session.aexecute.side_effect = [
            make_result([user_row()], was_applied=False),
            make_result(),
        ]

        await user_service.sync_profile(profile)

        stmt, params = mock_session.aexecute.call_args.args
        assert stmt is user_service._update_profile
        assert params[:4] == [
            "Ana Lima",
            "ana.lima@example.com",
            "https://img/new",
            "educator",
        ]
        assert params[-1] == "user_1"
        identity_client.get_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_remove_user(
        self, user_service: UserService, mock_session: Mock
    ) -> None:
        await user_service.remove_user("user_1")

        mock_session.aexecute.assert_awaited_once_with(
            user_service._delete_user, ["user_1"]
        )
