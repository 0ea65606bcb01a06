"""
Tests for user database operations.
"""

from datetime import datetime
from unittest.mock import patch, MagicMock
from uuid import UUID

import psycopg
import pytest

from questionbank.db.users import (
    get_user_by_subject_id,
    upsert_user_if_absent,
    upsert_user_with_refresh,
    save_user_from_login,
)
from questionbank.errors import PersistenceError
from questionbank.integrations.google.models import GoogleProfile
from questionbank.models.user import User


TEST_USER_ID = UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def sample_user_row():
    """Create a sample database row for a user."""
    return (
        TEST_USER_ID,
        "u1",
        "Ann",
        "ann@x.com",
        "p.png",
        datetime(2026, 1, 15, 10, 0, 0),
        datetime(2026, 1, 15, 10, 0, 0),
    )


@pytest.fixture
def mock_cursor():
    with patch("questionbank.db.users.get_db_cursor") as mock_get_cursor:
        cursor = MagicMock()
        mock_get_cursor.return_value.__enter__.return_value = cursor
        yield cursor


class TestGetUserBySubjectId:
    def test_user_found(self, mock_cursor, sample_user_row):
        mock_cursor.fetchone.return_value = sample_user_row

        user = get_user_by_subject_id("u1")

        assert isinstance(user, User)
        assert user.id == TEST_USER_ID
        assert user.subject_id == "u1"
        assert user.picture_url == "p.png"
        assert mock_cursor.execute.call_args[0][1] == ("u1",)

    def test_user_not_found(self, mock_cursor):
        mock_cursor.fetchone.return_value = None
        assert get_user_by_subject_id("missing") is None

    def test_database_error(self, mock_cursor):
        mock_cursor.execute.side_effect = psycopg.OperationalError("down")
        with pytest.raises(PersistenceError):
            get_user_by_subject_id("u1")


class TestUpsertUserIfAbsent:
    """Test upsert_user_if_absent function."""

    def test_creates_new_user(self, mock_cursor, sample_user_row):
        """First login inserts exactly one row."""
        mock_cursor.fetchone.return_value = sample_user_row

        user = upsert_user_if_absent("u1", "Ann", "ann@x.com", "p.png")

        assert user.subject_id == "u1"
        assert user.name == "Ann"
        mock_cursor.execute.assert_called_once()
        sql, params = mock_cursor.execute.call_args[0]
        assert "INSERT INTO users" in sql
        assert "ON CONFLICT (subject_id) DO NOTHING" in sql
        assert params == ("u1", "Ann", "ann@x.com", "p.png")

    def test_existing_user_is_not_modified(self, mock_cursor, sample_user_row):
        """A repeat login reads back the stored row and leaves it untouched."""
        mock_cursor.fetchone.side_effect = [None, sample_user_row]

        user = upsert_user_if_absent("u1", "Ann Renamed", "new@x.com", "new.png")

        # The stored profile wins
        assert user.name == "Ann"
        assert user.email == "ann@x.com"
        assert mock_cursor.execute.call_count == 2
        statements = [c[0][0] for c in mock_cursor.execute.call_args_list]
        assert "INSERT INTO users" in statements[0]
        assert statements[1].strip().startswith("SELECT")
        assert not any("UPDATE" in s for s in statements)

    def test_database_error(self, mock_cursor):
        mock_cursor.execute.side_effect = psycopg.OperationalError("down")
        with pytest.raises(PersistenceError, match="Failed to save user"):
            upsert_user_if_absent("u1", "Ann", "ann@x.com", "p.png")

    def test_row_vanished(self, mock_cursor):
        mock_cursor.fetchone.side_effect = [None, None]
        with pytest.raises(PersistenceError):
            upsert_user_if_absent("u1", "Ann", "ann@x.com", "p.png")


class TestUpsertUserWithRefresh:
    def test_updates_profile_fields(self, mock_cursor, sample_user_row):
        mock_cursor.fetchone.return_value = sample_user_row

        upsert_user_with_refresh("u1", "Ann", "ann@x.com", "p.png")

        sql = mock_cursor.execute.call_args[0][0]
        assert "ON CONFLICT (subject_id) DO UPDATE" in sql
        assert "name = EXCLUDED.name" in sql
        assert "subject_id = EXCLUDED" not in sql

    def test_database_error(self, mock_cursor):
        mock_cursor.execute.side_effect = psycopg.OperationalError("down")
        with pytest.raises(PersistenceError):
            upsert_user_with_refresh("u1", "Ann", "ann@x.com", "p.png")


class TestSaveUserFromLogin:
    profile = GoogleProfile(
        subject_id="u1", name="Ann", email="ann@x.com", picture_url="p.png"
    )

    @patch("questionbank.db.users.upsert_user_with_refresh")
    @patch("questionbank.db.users.upsert_user_if_absent")
    def test_defaults_to_insert_if_absent(self, mock_absent, mock_refresh):
        save_user_from_login(self.profile)

        mock_absent.assert_called_once_with("u1", "Ann", "ann@x.com", "p.png")
        mock_refresh.assert_not_called()

    @patch("questionbank.db.users.upsert_user_with_refresh")
    @patch("questionbank.db.users.upsert_user_if_absent")
    def test_refresh_when_requested(self, mock_absent, mock_refresh):
        save_user_from_login(self.profile, refresh=True)

        mock_refresh.assert_called_once_with("u1", "Ann", "ann@x.com", "p.png")
        mock_absent.assert_not_called()

    @patch("questionbank.db.users.REFRESH_PROFILE_ON_LOGIN", True)
    @patch("questionbank.db.users.upsert_user_with_refresh")
    @patch("questionbank.db.users.upsert_user_if_absent")
    def test_refresh_from_setting(self, mock_absent, mock_refresh):
        save_user_from_login(self.profile)

        mock_refresh.assert_called_once()
        mock_absent.assert_not_called()
