"""The Google sign-in sequence, from authorization code to local user.

Each step must finish before the next starts: exchange, then profile fetch,
then persistence. The session itself is issued by the caller once a
`LoginResult` comes back. Any failure is terminal for the attempt; the user
restarts from the consent screen since authorization codes are single-use.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from starlette.concurrency import run_in_threadpool

from questionbank.errors import PersistenceError, QuestionBankError
from questionbank.integrations import google
from questionbank.integrations.google.models import GoogleProfile, GoogleToken
from questionbank.db.users import save_user_from_login
from questionbank.models.user import User

logger = logging.getLogger(__name__)


class LoginState(str, Enum):
    STARTED = "started"
    CODE_RECEIVED = "code_received"
    TOKEN_EXCHANGED = "token_exchanged"
    PROFILE_FETCHED = "profile_fetched"
    USER_PERSISTED = "user_persisted"
    SESSION_ISSUED = "session_issued"
    FAILED = "failed"


_ORDER = [
    LoginState.STARTED,
    LoginState.CODE_RECEIVED,
    LoginState.TOKEN_EXCHANGED,
    LoginState.PROFILE_FETCHED,
    LoginState.USER_PERSISTED,
    LoginState.SESSION_ISSUED,
]


@dataclass
class LoginAttempt:
    """Tracks a single sign-in attempt through its states."""

    state: LoginState = LoginState.STARTED
    subject_id: str | None = None
    failure_reason: str | None = None
    history: list[LoginState] = field(default_factory=lambda: [LoginState.STARTED])

    @property
    def is_terminal(self) -> bool:
        return self.state in (LoginState.SESSION_ISSUED, LoginState.FAILED)

    def advance(self, next_state: LoginState) -> None:
        """Move forward exactly one step.

        Raises:
            ValueError: If the attempt is finished or `next_state` skips a step.
        """
        if self.is_terminal:
            raise ValueError(f"Login attempt already {self.state.value}")
        if next_state == LoginState.FAILED:
            raise ValueError("Use fail() to end an attempt")
        expected = _ORDER[_ORDER.index(self.state) + 1]
        if next_state != expected:
            raise ValueError(
                f"Cannot move from {self.state.value} to {next_state.value}"
            )
        self.state = next_state
        self.history.append(next_state)

    def fail(self, reason: str) -> None:
        if self.is_terminal:
            raise ValueError(f"Login attempt already {self.state.value}")
        logger.warning(
            f"Login failed at {self.state.value} "
            f"(subject_id={self.subject_id}): {reason}"
        )
        self.state = LoginState.FAILED
        self.failure_reason = reason
        self.history.append(LoginState.FAILED)


@dataclass
class LoginResult:
    token: GoogleToken
    profile: GoogleProfile
    user: User


async def complete_login(code: str, attempt: LoginAttempt) -> LoginResult:
    """Turn an authorization code into a verified, persisted user.

    On failure the attempt is marked FAILED and the error is re-raised.
    """
    try:
        attempt.advance(LoginState.CODE_RECEIVED)

        token = await google.exchange_code_for_token(code)
        attempt.advance(LoginState.TOKEN_EXCHANGED)

        profile = await google.fetch_profile(token.access_token)
        attempt.subject_id = profile.subject_id
        attempt.advance(LoginState.PROFILE_FETCHED)

        try:
            user = await run_in_threadpool(save_user_from_login, profile)
        except PersistenceError:
            # The code is spent but there is no local user for this subject.
            logger.error(
                f"Reconciliation candidate: token exchanged for "
                f"subject_id={profile.subject_id} but user was not persisted"
            )
            raise
        attempt.advance(LoginState.USER_PERSISTED)
    except QuestionBankError as e:
        attempt.fail(e.message)
        raise
    except Exception as e:
        attempt.fail(f"Unexpected error: {type(e).__name__}")
        raise

    return LoginResult(token=token, profile=profile, user=user)
