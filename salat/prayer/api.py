"""
API for prayer times, notification settings and adhan playback. Mounted at /api/.
Responses use the camelCase aliases of the pydantic schemas.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, ValidationError

from .schemas import NotificationSettings, NotificationSettingsUpdate, PrayerTimes

logger = logging.getLogger(__name__)


class AdhanTestRequest(BaseModel):
    prayer: Optional[str] = None


def get_router(salat_app) -> Optional[APIRouter]:
    """Return router for this package; mounted with prefix /api."""
    router = APIRouter(tags=["Prayer Times"])
    service = salat_app.service

    @router.get("/prayer-times", response_model=PrayerTimes)
    def get_prayer_times() -> PrayerTimes:
        """Today's prayer times, scraped and stored first if missing."""
        try:
            return service.get_today_prayer_times()
        except Exception as e:
            logger.exception(f"Error fetching prayer times: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch prayer times")

    @router.post("/prayer-times/update", response_model=PrayerTimes)
    def update_prayer_times() -> PrayerTimes:
        """Scrape now and replace today's record."""
        try:
            return service.refresh_prayer_times()
        except Exception as e:
            logger.exception(f"Error updating prayer times: {e}")
            raise HTTPException(status_code=500, detail="Failed to update prayer times")

    @router.get("/notification-settings", response_model=NotificationSettings)
    def get_notification_settings() -> NotificationSettings:
        try:
            settings = service.get_settings()
        except Exception as e:
            logger.exception(f"Error fetching notification settings: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch notification settings")
        if settings is None:
            raise HTTPException(status_code=404, detail="Notification settings not found")
        return settings

    @router.patch("/notification-settings", response_model=NotificationSettings)
    def patch_notification_settings(payload: Dict[str, Any] = Body(...)) -> NotificationSettings:
        try:
            update = NotificationSettingsUpdate.model_validate(payload)
        except ValidationError as e:
            raise HTTPException(
                status_code=400,
                detail={"message": "Invalid data", "errors": e.errors(include_url=False, include_context=False)},
            )
        try:
            return service.update_settings(update)
        except Exception as e:
            logger.exception(f"Error updating notification settings: {e}")
            raise HTTPException(status_code=500, detail="Failed to update notification settings")

    @router.post("/adhan/test")
    def test_adhan(request: Optional[AdhanTestRequest] = None) -> Dict[str, Any]:
        """Play the adhan now at the configured volume."""
        prayer = (request.prayer if request else None) or "Test"
        settings = service.get_settings() or NotificationSettings()
        playing = salat_app.adhan_manager.play_adhan(prayer, settings.volume_level)
        return {"playing": playing, "prayer": prayer}

    @router.post("/adhan/stop")
    def stop_adhan() -> Dict[str, Any]:
        salat_app.adhan_manager.stop_adhan()
        return {"playing": False}

    return router
