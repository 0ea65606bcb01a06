"""Database operations for user management."""

import logging
import os
from typing import Optional

import psycopg

from questionbank.errors import PersistenceError
from questionbank.integrations.google.models import GoogleProfile
from questionbank.models.user import User
from .connection import get_db_cursor

# Off by default: a repeat login leaves the stored profile as first seen.
REFRESH_PROFILE_ON_LOGIN = os.getenv("REFRESH_PROFILE_ON_LOGIN", "false").lower() in (
    "1",
    "true",
    "yes",
)

USER_COLUMNS = "id, subject_id, name, email, picture_url, created_at, updated_at"

logger = logging.getLogger(__name__)


def get_user_by_subject_id(subject_id: str) -> Optional[User]:
    """Get a user by their Google subject id."""
    try:
        with get_db_cursor() as cursor:
            cursor.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE subject_id = %s",
                (subject_id,),
            )
            row = cursor.fetchone()
    except psycopg.Error as e:
        logger.error(f"Failed to read user subject_id={subject_id}: {e}")
        raise PersistenceError("Failed to load user") from e
    return _row_to_user(row) if row else None


def upsert_user_if_absent(
    subject_id: str,
    name: Optional[str],
    email: Optional[str],
    picture_url: Optional[str],
) -> User:
    """Create the user for `subject_id` unless one already exists.

    An existing row is never modified. If a concurrent first login for the
    same subject wins the insert, the unique constraint turns ours into a
    no-op and the winner's row is returned.

    Returns:
        The newly created or already existing User.

    Raises:
        PersistenceError: If the database can't be reached or the write fails.
    """
    try:
        with get_db_cursor() as cursor:
            cursor.execute(
                f"""
                INSERT INTO users (subject_id, name, email, picture_url)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (subject_id) DO NOTHING
                RETURNING {USER_COLUMNS}
                """,
                (subject_id, name, email, picture_url),
            )
            row = cursor.fetchone()
            if row is not None:
                logger.info(f"Created user for subject_id={subject_id}")
                return _row_to_user(row)

            cursor.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE subject_id = %s",
                (subject_id,),
            )
            row = cursor.fetchone()
    except psycopg.Error as e:
        logger.error(f"Failed to upsert user subject_id={subject_id}: {e}")
        raise PersistenceError("Failed to save user") from e

    if row is None:
        raise PersistenceError("Failed to save user")
    logger.debug(f"User already exists for subject_id={subject_id}")
    return _row_to_user(row)


def upsert_user_with_refresh(
    subject_id: str,
    name: Optional[str],
    email: Optional[str],
    picture_url: Optional[str],
) -> User:
    """Create the user, or overwrite name/email/picture if it already exists."""
    try:
        with get_db_cursor() as cursor:
            cursor.execute(
                f"""
                INSERT INTO users (subject_id, name, email, picture_url)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (subject_id) DO UPDATE
                SET name = EXCLUDED.name,
                    email = EXCLUDED.email,
                    picture_url = EXCLUDED.picture_url
                RETURNING {USER_COLUMNS}
                """,
                (subject_id, name, email, picture_url),
            )
            row = cursor.fetchone()
    except psycopg.Error as e:
        logger.error(f"Failed to upsert user subject_id={subject_id}: {e}")
        raise PersistenceError("Failed to save user") from e

    if row is None:
        raise PersistenceError("Failed to save user")
    return _row_to_user(row)


def save_user_from_login(profile: GoogleProfile, refresh: bool | None = None) -> User:
    """Persist the profile of a user who just signed in.

    Args:
        profile: The verified Google profile.
        refresh: Overwrite stored profile fields on repeat logins. Defaults to
            the REFRESH_PROFILE_ON_LOGIN setting.
    """
    if refresh is None:
        refresh = REFRESH_PROFILE_ON_LOGIN
    upsert = upsert_user_with_refresh if refresh else upsert_user_if_absent
    return upsert(
        profile.subject_id,
        profile.name,
        profile.email,
        profile.picture_url,
    )


def _row_to_user(row) -> User:
    """Convert a database row to a User object."""
    id, subject_id, name, email, picture_url, created_at, updated_at = row
    return User(
        id=id,
        subject_id=subject_id,
        name=name,
        email=email,
        picture_url=picture_url,
        created_at=created_at,
        updated_at=updated_at,
    )
