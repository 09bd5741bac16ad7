"""
Session state - current user, active view, draft handoff and timed notifications.

Single consumer, lives on one asyncio loop. Every notification owns a TimerHandle;
dismissing it cancels the handle so no timer fires after the notification is gone.
"""

import asyncio
import uuid
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from util.logging import logger
from .config import DEFAULT_TAB, get_notification_timeout_ms
from .dao import ProfileCache
from .errors import MalformedRecordError
from .schema import AppNotification, NotificationType, Tab, UserProfile


class AppSession:
    """Process-wide application state with a login/logout lifecycle."""

    def __init__(self, cache: ProfileCache, *, notification_timeout_ms: int = None,
                 default_tab: Union[Tab, str] = None):
        self.cache = cache
        self.notification_timeout_ms = (
            notification_timeout_ms if notification_timeout_ms is not None else get_notification_timeout_ms()
        )
        self.default_tab = Tab(default_tab or DEFAULT_TAB)

        # Restore a persisted login
        self.current_user: Optional[UserProfile] = cache.get_user_profile()
        self.active_tab: Tab = self.default_tab
        self.draft_handoff: Optional[Any] = None

        self._notifications: Dict[str, AppNotification] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._observers: List[Callable[[str], None]] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------
    def subscribe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register callback(field_name) for state changes; returns an unsubscribe function."""
        self._observers.append(callback)

        def _unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)

        return _unsubscribe

    def _emit(self, field_name: str) -> None:
        for callback in list(self._observers):
            try:
                callback(field_name)
            except Exception as e:
                logger.error(f"Session observer failed on '{field_name}' change: {e}")

    # ------------------------------------------------------------------
    # Login lifecycle
    # ------------------------------------------------------------------
    def login(self, user: Union[UserProfile, Dict[str, Any]]) -> UserProfile:
        """Set the current user and persist it through the profile cache."""
        if isinstance(user, UserProfile):
            profile = user
        else:
            try:
                profile = UserProfile.model_validate(user)
            except ValidationError as e:
                raise MalformedRecordError("user_profile", e.errors(include_url=False)) from e
        if not self.cache.save_user_profile(profile):
            logger.warning(f"User '{profile.uid}' logged in but the profile could not be persisted")
        self.current_user = profile
        logger.log_operation("session.login", "success", {"uid": profile.uid})
        self._emit("current_user")
        return profile

    def logout(self) -> None:
        """Clear the persisted user and reset to the default view."""
        self.cache.clear_user_profile()
        self.current_user = None
        self.active_tab = self.default_tab
        logger.log_operation("session.logout", "success")
        self._emit("current_user")
        self._emit("active_tab")

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    # ------------------------------------------------------------------
    # Plain setters
    # ------------------------------------------------------------------
    def set_active_tab(self, tab: Union[Tab, str]) -> None:
        self.active_tab = Tab(tab)
        self._emit("active_tab")

    def set_draft_handoff(self, payload: Optional[Any]) -> None:
        self.draft_handoff = payload
        self._emit("draft_handoff")

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    @property
    def notifications(self) -> List[AppNotification]:
        """Live notifications in creation order."""
        return list(self._notifications.values())

    def notify(self, notification_type: Union[NotificationType, str], message: str) -> str:
        """Show a notification and schedule its removal; returns its id."""
        ntype = NotificationType(notification_type)
        notification_id = uuid.uuid4().hex
        self._notifications[notification_id] = AppNotification(id=notification_id, type=ntype, message=message)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; notification {notification_id} stays until dismissed")
        else:
            self._timers[notification_id] = loop.call_later(
                self.notification_timeout_ms / 1000.0, self._expire, notification_id
            )

        logger.log_notification("created", notification_id, ntype.value)
        self._emit("notifications")
        return notification_id

    def _expire(self, notification_id: str) -> None:
        self._timers.pop(notification_id, None)
        if self._notifications.pop(notification_id, None) is not None:
            logger.log_notification("expired", notification_id)
            self._emit("notifications")

    def dismiss(self, notification_id: str) -> None:
        """Remove a notification now; unknown or already-removed ids are a no-op."""
        timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()
        if self._notifications.pop(notification_id, None) is not None:
            logger.log_notification("dismissed", notification_id)
            self._emit("notifications")

    def close(self) -> None:
        """Cancel every pending notification timer."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._notifications.clear()
