"""
Unit tests for business logic (services layer).
Tests service functions with mocked database calls.
"""

import pytest
from unittest.mock import AsyncMock, patch
from datetime import datetime, UTC
from sqlalchemy.exc import OperationalError
from app.services import (
    register_user,
    login_user,
    verify_credentials,
    list_ideas,
    create_idea,
    update_idea,
    delete_idea,
)
from app.auth import decode_access_token, hash_password
from app.errors import AuthError, Conflict, NotFound, StorageError, ValidationError
from app.schemas import Credentials, CurrentUser, IdeaIn


class MockUser:
    """Mock User object for testing with all required fields."""
    def __init__(self, id: int, username: str, password: str = "pw1"):
        self.id = id
        self.username = username
        self.password_hash = hash_password(password)
        self.created_at = datetime.now(UTC)


class MockIdea:
    """Mock Idea row as returned by the CRUD layer."""
    def __init__(self, id: int, user_id: int, title: str, notes: str = "",
                 categories: str = "", excitement: int = 5):
        self.id = id
        self.user_id = user_id
        self.title = title
        self.notes = notes
        self.categories = categories
        self.excitement = excitement
        self.created_at = datetime.now(UTC)


ALICE = CurrentUser(id=1, username="alice")
SESSION = object()  # services only pass the session through to crud


@pytest.mark.asyncio
class TestRegisterUser:
    """Test register_user service function."""

    async def test_register_issues_token(self):
        with patch('app.services.insert_user', new_callable=AsyncMock,
                   return_value=MockUser(1, "alice")) as mock_insert:
            result = await register_user(SESSION, Credentials(username="alice", password="pw1"))

        assert result.user_id == 1
        assert result.username == "alice"
        assert decode_access_token(result.token) == {"id": 1, "username": "alice"}
        # Stored hash, never the plaintext
        stored_hash = mock_insert.call_args.args[2]
        assert stored_hash != "pw1"

    async def test_register_duplicate_raises_conflict(self):
        with patch('app.services.insert_user', new_callable=AsyncMock,
                   side_effect=ValueError("duplicate username")):
            with pytest.raises(Conflict) as exc_info:
                await register_user(SESSION, Credentials(username="alice", password="pw1"))

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Username already exists"

    @pytest.mark.parametrize("body", [
        {"username": "alice"},
        {"password": "pw1"},
        {"username": "", "password": "pw1"},
        {},
    ])
    async def test_register_missing_fields(self, body):
        with patch('app.services.insert_user', new_callable=AsyncMock) as mock_insert:
            with pytest.raises(ValidationError, match="Username and password required"):
                await register_user(SESSION, Credentials(**body))
        mock_insert.assert_not_called()


@pytest.mark.asyncio
class TestLogin:
    """Test credential verification and login."""

    async def test_login_success_matches_registration_claims(self):
        with patch('app.services.select_user_by_username', new_callable=AsyncMock,
                   return_value=MockUser(1, "alice", "pw1")):
            result = await login_user(SESSION, Credentials(username="alice", password="pw1"))

        assert decode_access_token(result.token) == {"id": 1, "username": "alice"}

    async def test_unknown_user_and_wrong_password_look_the_same(self):
        with patch('app.services.select_user_by_username', new_callable=AsyncMock, return_value=None):
            with pytest.raises(AuthError) as unknown:
                await verify_credentials(SESSION, "ghost", "pw1")

        with patch('app.services.select_user_by_username', new_callable=AsyncMock,
                   return_value=MockUser(1, "alice", "pw1")):
            with pytest.raises(AuthError) as wrong:
                await verify_credentials(SESSION, "alice", "wrong")

        assert unknown.value.status_code == wrong.value.status_code == 401
        assert unknown.value.message == wrong.value.message == "Invalid credentials"

    async def test_login_storage_failure(self):
        with patch('app.services.select_user_by_username', new_callable=AsyncMock,
                   side_effect=OperationalError("SELECT", {}, Exception("disk I/O error"))):
            with pytest.raises(StorageError) as exc_info:
                await login_user(SESSION, Credentials(username="alice", password="pw1"))

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Database error"


@pytest.mark.asyncio
class TestCreateIdea:
    """Test create_idea service function."""

    async def test_defaults_applied(self):
        with patch('app.services.crud_insert_idea', new_callable=AsyncMock,
                   return_value=MockIdea(10, 1, "ship it")) as mock_insert:
            result = await create_idea(SESSION, ALICE, IdeaIn(title="ship it"))

        kwargs = mock_insert.call_args.kwargs
        assert kwargs["user_id"] == 1
        assert kwargs["notes"] == ""
        assert kwargs["categories"] == ""
        assert kwargs["excitement"] == 5
        assert result.categories == []
        assert result.excitement == 5

    async def test_categories_joined_for_storage(self):
        with patch('app.services.crud_insert_idea', new_callable=AsyncMock,
                   return_value=MockIdea(10, 1, "t", categories="x,y")) as mock_insert:
            result = await create_idea(SESSION, ALICE, IdeaIn(title="t", categories=["x", "y"]))

        assert mock_insert.call_args.kwargs["categories"] == "x,y"
        assert result.categories == ["x", "y"]

    @pytest.mark.parametrize("title", [None, ""])
    async def test_missing_title(self, title):
        with patch('app.services.crud_insert_idea', new_callable=AsyncMock) as mock_insert:
            with pytest.raises(ValidationError, match="Title required"):
                await create_idea(SESSION, ALICE, IdeaIn(title=title))
        mock_insert.assert_not_called()

    @pytest.mark.parametrize("excitement", [0, 11, -1, 100])
    async def test_excitement_out_of_range(self, excitement):
        with patch('app.services.crud_insert_idea', new_callable=AsyncMock) as mock_insert:
            with pytest.raises(ValidationError, match="Excitement must be 1-10"):
                await create_idea(SESSION, ALICE, IdeaIn(title="t", excitement=excitement))
        mock_insert.assert_not_called()

    @pytest.mark.parametrize("excitement", [1, 5, 10])
    async def test_excitement_in_range_kept(self, excitement):
        with patch('app.services.crud_insert_idea', new_callable=AsyncMock,
                   return_value=MockIdea(10, 1, "t", excitement=excitement)) as mock_insert:
            await create_idea(SESSION, ALICE, IdeaIn(title="t", excitement=excitement))

        assert mock_insert.call_args.kwargs["excitement"] == excitement


@pytest.mark.asyncio
class TestUpdateIdea:
    """Test update_idea service function."""

    async def test_update_success(self):
        with patch('app.services.crud_update_idea', new_callable=AsyncMock, return_value=1) as mock_update:
            result = await update_idea(SESSION, ALICE, 10, IdeaIn(title="new", categories=["a"]))

        assert result.success is True
        args = mock_update.call_args.args
        assert args[1:3] == (10, 1)
        assert args[3] == {"title": "new", "notes": "", "categories": "a", "excitement": 5}

    async def test_update_not_found(self):
        with patch('app.services.crud_update_idea', new_callable=AsyncMock, return_value=0):
            with pytest.raises(NotFound) as exc_info:
                await update_idea(SESSION, ALICE, 10, IdeaIn(title="new"))

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Idea not found"

    async def test_update_does_not_require_title(self):
        with patch('app.services.crud_update_idea', new_callable=AsyncMock, return_value=1) as mock_update:
            await update_idea(SESSION, ALICE, 10, IdeaIn(title=""))

        assert mock_update.call_args.args[3]["title"] == ""

    async def test_update_excitement_out_of_range(self):
        with patch('app.services.crud_update_idea', new_callable=AsyncMock) as mock_update:
            with pytest.raises(ValidationError):
                await update_idea(SESSION, ALICE, 10, IdeaIn(title="t", excitement=11))
        mock_update.assert_not_called()


@pytest.mark.asyncio
class TestListAndDelete:
    """Test list_ideas and delete_idea service functions."""

    async def test_list_splits_categories(self):
        rows = [MockIdea(2, 1, "b", categories="x,y"), MockIdea(1, 1, "a")]
        with patch('app.services.crud_list_ideas', new_callable=AsyncMock, return_value=rows) as mock_list:
            result = await list_ideas(SESSION, ALICE)

        mock_list.assert_awaited_once_with(SESSION, 1)
        assert [i.id for i in result] == [2, 1]
        assert result[0].categories == ["x", "y"]
        assert result[1].categories == []

    async def test_delete_success(self):
        with patch('app.services.crud_delete_idea', new_callable=AsyncMock, return_value=1):
            result = await delete_idea(SESSION, ALICE, 10)
        assert result.success is True

    async def test_delete_not_found(self):
        with patch('app.services.crud_delete_idea', new_callable=AsyncMock, return_value=0):
            with pytest.raises(NotFound):
                await delete_idea(SESSION, ALICE, 10)

    async def test_unrepresentable_id_is_not_found(self):
        with patch('app.services.crud_delete_idea', new_callable=AsyncMock) as mock_delete, \
                patch('app.services.crud_update_idea', new_callable=AsyncMock) as mock_update:
            with pytest.raises(NotFound):
                await delete_idea(SESSION, ALICE, 2**63)
            with pytest.raises(NotFound):
                await update_idea(SESSION, ALICE, -2**63 - 1, IdeaIn(title="t"))

        mock_delete.assert_not_called()
        mock_update.assert_not_called()
