"""Desktop notifications for prayer alerts."""
import logging
import os
from typing import Any, Dict, Optional

from plyer import notification as plyer_notification


class DesktopNotifier:
    """Notification sink. notify() is a no-op unless permission is granted."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.configure(config or {})

    def configure(self, config: Dict[str, Any]) -> None:
        self.enabled = bool(config.get("enabled", True))
        self.app_name = config.get("app_name", "Salat")
        self.icon = os.path.expanduser(config.get("icon") or "")
        self.timeout = int(config.get("timeout", 30))

    @property
    def permission_granted(self) -> bool:
        return self.enabled

    def notify(self, title: str, body: str, icon: Optional[str] = None) -> bool:
        """Show a desktop notification. Returns True if one was sent."""
        if not self.permission_granted:
            self.logger.debug(f"Notifications disabled, skipping: {title}")
            return False
        kwargs = dict(
            app_name=self.app_name,
            title=title,
            message=body,
            timeout=self.timeout,
        )
        icon = icon or self.icon
        if icon:
            kwargs["app_icon"] = icon
        try:
            plyer_notification.notify(**kwargs)
        except NotImplementedError:
            # plyer has no backend on this platform (e.g. headless Linux without dbus)
            self.logger.warning(f"No notification backend available, could not show: {title}")
            return False
        self.logger.info(f"Notification sent: {title}")
        return True
