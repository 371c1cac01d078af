import logging
from typing import Dict, Any, List

from django.db import transaction

from inventory.models import AppSetting
from inventory.services.base_service import BaseService, ValidationError, success_response

logger = logging.getLogger(__name__)


class AppSettingService(BaseService):
    """
    Key/value settings store. Upserts by key.

    The alert engine and the notification dispatcher take this class as an
    injected dependency and only read it through get(), prevent_negative_issue()
    and alert_recipients().
    """

    model = AppSetting

    PREVENT_NEGATIVE_ISSUE = "preventNegativeIssue"
    ALERT_EMAIL_RECIPIENTS = "alertEmailRecipients"

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        row = cls.model.objects.filter(key=key).only("value").first()
        if row is None:
            return default
        return row.value

    @classmethod
    def get_all(cls) -> Dict[str, Any]:
        return {row.key: row.value for row in cls.model.objects.all()}

    @classmethod
    def set(cls, key: str, value: Any) -> AppSetting:
        if not key or not isinstance(key, str):
            raise ValidationError("Setting key must be a non-empty string", "key")

        setting, created = cls.model.objects.update_or_create(
            key=key, defaults={"value": value}
        )
        logger.info(f"Setting {'created' if created else 'updated'}: {key}")
        return setting

    @classmethod
    @transaction.atomic
    def set_many(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(values, dict):
            raise ValidationError("Settings payload must be an object")

        for key, value in values.items():
            cls.set(key, value)

        return success_response({
            "updated_keys": sorted(values.keys()),
        }, f"Updated {len(values)} setting(s)")

    @classmethod
    def prevent_negative_issue(cls) -> bool:
        value = cls.get(cls.PREVENT_NEGATIVE_ISSUE)
        if isinstance(value, bool):
            return value
        return True

    @classmethod
    def alert_recipients(cls) -> List[str]:
        value = cls.get(cls.ALERT_EMAIL_RECIPIENTS)
        if not isinstance(value, list):
            return []
        return [
            address.strip()
            for address in value
            if isinstance(address, str) and address.strip()
        ]

