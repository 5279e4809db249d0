"""
User session handling.

Authentication itself happens outside this package. Callers resolve the
signed-in user and pass a UserSession (or None) into every operation;
nothing here reads a "current user" from global state.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NotAuthenticatedError(Exception):
    """No active user session."""
    pass


class UserSession(BaseModel):
    """The authenticated user an operation runs on behalf of."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    user_id: str = Field(
        ...,
        min_length=1,
        description="ID every expense query and mutation is scoped to"
    )
    email: Optional[str] = None


def require_user(session: Optional[UserSession]) -> str:
    """
    Return the session's user id, or raise if nobody is signed in.

    Raises:
        NotAuthenticatedError: If session is None
    """
    if session is None:
        raise NotAuthenticatedError("Not authenticated")
    return session.user_id
