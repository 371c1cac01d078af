from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group

from accounts.roles import MANAGER_GROUP
from inventory.models import InventoryRecord
from inventory.services import InventoryRecordService

User = get_user_model()


def make_user(username="clerk", role="user", password="secret-pass"):
    user = User.objects.create_user(username=username, password=password)
    if role == "admin":
        user.is_staff = True
        user.save(update_fields=["is_staff"])
    elif role == "manager":
        group, _ = Group.objects.get_or_create(name=MANAGER_GROUP)
        user.groups.add(group)
    return user


def make_record(user, barcode="B100", warehouse="Main", qty=10, level=5, item_name="Widget", **kwargs):
    result = InventoryRecordService.create(
        barcode=barcode,
        warehouse_name=warehouse,
        item_name=item_name,
        user=user,
        stock_qty=qty,
        stock_alert_level=level,
        **kwargs,
    )
    return InventoryRecord.objects.get(pk=result["id"])


class RecordingDispatcher:
    def __init__(self):
        self.submitted = []

    def submit(self, alert):
        self.submitted.append(alert)


class ExplodingDispatcher:
    def submit(self, alert):
        raise RuntimeError("dispatcher down")


class StaticSettings:
    def __init__(self, prevent_negative=True, recipients=None):
        self.prevent_negative = prevent_negative
        self.recipients = recipients or []

    def prevent_negative_issue(self):
        return self.prevent_negative

    def alert_recipients(self):
        return list(self.recipients)
