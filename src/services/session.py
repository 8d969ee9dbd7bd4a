"""Current-user supplier with change notifications."""

from typing import Callable, Mapping, Optional
from pydantic import ValidationError
from src.models.session import SessionUser
from src.utils.logging import get_structured_logger, mask_email, mask_user_id

logger = get_structured_logger(__name__)

USER_ID_HEADER = "x-user-id"
USER_EMAIL_HEADER = "x-user-email"

SessionListener = Callable[[Optional[SessionUser]], None]


class SessionProvider:
    """
    Holds the authenticated user, or None when signed out.

    Sign-in itself happens in the identity provider; this object only
    carries its result and tells subscribers when it changes.
    """

    def __init__(self, user: Optional[SessionUser] = None):
        self._user = user
        self._listeners: list[SessionListener] = []

    @property
    def current_user(self) -> Optional[SessionUser]:
        return self._user

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_user(self, user: Optional[SessionUser]) -> None:
        previous_id = self._user.id if self._user else None
        new_id = user.id if user else None
        self._user = user
        if previous_id == new_id:
            return

        logger.info(
            "Session user changed",
            previous_user_id=mask_user_id(previous_id),
            user_id=mask_user_id(new_id),
            email=mask_email(user.email) if user else None
        )
        for listener in list(self._listeners):
            listener(user)

    def sign_out(self) -> None:
        self.set_user(None)

    @classmethod
    def from_headers(cls, headers: Optional[Mapping[str, str]]) -> "SessionProvider":
        """Build a session from identity headers set by the upstream auth layer."""
        normalized = {str(k).lower(): v for k, v in (headers or {}).items()}
        user_id = (normalized.get(USER_ID_HEADER) or "").strip()
        if not user_id:
            return cls()
        try:
            user = SessionUser(id=user_id, email=normalized.get(USER_EMAIL_HEADER) or None)
        except ValidationError as e:
            logger.warning("Ignoring invalid identity headers", error=str(e))
            return cls()
        return cls(user)
