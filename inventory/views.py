from django.conf import settings
from django.http import JsonResponse
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.utils.crypto import constant_time_compare
from django.utils.decorators import method_decorator
import json
import logging

from accounts.roles import is_admin
from inventory.services import (
    ServiceError, ValidationError, NotFoundError, PermissionDeniedError,
    InsufficientStockError,
    AppSettingService, InventoryRecordService, StockTransactionService,
    AlertService, AlertNotificationService, ExpiryAlertService, BatchService,
    get_stock_service,
)

logger = logging.getLogger(__name__)


def error_response(message: str, code: str = "error", status: int = 400, details: dict = None):
    data = {"error": message, "code": code}
    if details:
        data["details"] = details
    return JsonResponse(data, status=status)


def handle_service_error(e: Exception):
    if isinstance(e, ValidationError):
        details = dict(e.details)
        if e.field:
            details["field"] = e.field
        return error_response(e.message, e.code.lower(), 400, details)
    elif isinstance(e, NotFoundError):
        return error_response(e.message, "not_found", 404)
    elif isinstance(e, PermissionDeniedError):
        return error_response(e.message, "forbidden", 403)
    elif isinstance(e, InsufficientStockError):
        return error_response(e.message, "insufficient_stock", 400, e.details)
    elif isinstance(e, ServiceError):
        return error_response(e.message, e.code.lower(), 400)
    else:
        logger.exception("Unhandled error in inventory view")
        return error_response("Internal server error", "server_error", 500)


def get_int(params, name: str, default: int) -> int:
    try:
        return int(params.get(name, default))
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", name)


def get_bool(params, name: str):
    value = params.get(name)
    if value in (None, ""):
        return None
    return str(value).lower() in ("1", "true", "yes")


class BaseInventoryView(View):
    """JSON views behind the session cookie. Unauthenticated requests get 401."""

    login_required = True

    @method_decorator(csrf_exempt)
    def dispatch(self, request, *args, **kwargs):
        if self.login_required and not self.is_authenticated(request):
            return error_response("Unauthorized", "unauthorized", 401)
        return super().dispatch(request, *args, **kwargs)

    def is_authenticated(self, request) -> bool:
        return request.user.is_authenticated

    def get_json_body(self, request):
        try:
            data = json.loads(request.body) if request.body else {}
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError("Invalid JSON body")
        if not isinstance(data, dict):
            raise ValidationError("JSON body must be an object")
        return data

    def success(self, data: dict, status: int = 200):
        return JsonResponse(data, status=status)


# ==================== STOCK MOVEMENTS ====================

class ReceiveView(BaseInventoryView):

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = get_stock_service().receive(
                barcode=data.get("barcode"),
                warehouse_name=data.get("warehouseName"),
                quantity=data.get("quantity"),
                user=request.user,
                reference_doc=data.get("referenceDoc"),
                reason=data.get("reason"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class ReceiveBatchView(BaseInventoryView):

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = get_stock_service().receive_batch(
                barcode=data.get("barcode"),
                warehouse_name=data.get("warehouseName"),
                quantity=data.get("quantity"),
                user=request.user,
                reference_doc=data.get("referenceDoc"),
                reason=data.get("reason"),
                enable_batch_tracking=bool(data.get("enableBatchTracking")),
                batch_number=data.get("batchNumber"),
                expiry_date=data.get("expiryDate"),
                manufacture_date=data.get("manufactureDate"),
                supplier_info=data.get("supplierInfo"),
                lot_number=data.get("lotNumber"),
                cost_per_unit=data.get("costPerUnit"),
                notes=data.get("notes"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class IssueView(BaseInventoryView):

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = get_stock_service().issue(
                barcode=data.get("barcode"),
                warehouse_name=data.get("warehouseName"),
                quantity=data.get("quantity"),
                user=request.user,
                reference_doc=data.get("referenceDoc"),
                reason=data.get("reason"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class TransferView(BaseInventoryView):

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = get_stock_service().transfer(
                barcode=data.get("barcode"),
                from_warehouse=data.get("fromWarehouse"),
                to_warehouse=data.get("toWarehouse"),
                quantity=data.get("quantity"),
                user=request.user,
                reference_doc=data.get("referenceDoc"),
                reason=data.get("reason"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


# ==================== RECORDS ====================

class RecordCreateView(BaseInventoryView):

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = InventoryRecordService.create(
                barcode=data.get("barcode"),
                warehouse_name=data.get("warehouseName"),
                item_name=data.get("itemName"),
                user=request.user,
                stock_qty=data.get("stockQty", 0),
                stock_alert_level=data.get("stockAlertLevel", 0),
                category=data.get("category", ""),
                unit=data.get("unit", ""),
                expire_date=data.get("expireDate"),
                expire_date_alert=data.get("expireDateAlert", 0),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class RecordListView(BaseInventoryView):

    def get(self, request):
        try:
            result = InventoryRecordService.list(
                search=request.GET.get("q"),
                warehouse_name=request.GET.get("warehouseName"),
                category=request.GET.get("category"),
                low_stock_only=bool(get_bool(request.GET, "lowStock")),
                page=get_int(request.GET, "page", 1),
                per_page=get_int(request.GET, "limit", 50),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class RecordLookupView(BaseInventoryView):

    def get(self, request):
        try:
            result = InventoryRecordService.lookup(
                request.GET.get("barcode"), request.GET.get("warehouseName")
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class UpdateAlertLevelView(BaseInventoryView):

    def patch(self, request):
        try:
            data = self.get_json_body(request)
            result = InventoryRecordService.update_alert_level(
                data.get("id"), data.get("stockAlertLevel")
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class HistoryView(BaseInventoryView):

    def get(self, request):
        try:
            inventory_id = request.GET.get("inventoryId")
            result = StockTransactionService.history(
                inventory_id=get_int(request.GET, "inventoryId", 0) if inventory_id else None,
                barcode=request.GET.get("barcode"),
                warehouse_name=request.GET.get("warehouseName"),
                transaction_type=request.GET.get("type"),
                page=get_int(request.GET, "page", 1),
                per_page=get_int(request.GET, "limit", 50),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class ExpiringView(BaseInventoryView):

    def get(self, request):
        try:
            return self.success(ExpiryAlertService.list())
        except Exception as e:
            return handle_service_error(e)


class BatchListView(BaseInventoryView):

    def get(self, request):
        try:
            days = request.GET.get("days")
            result = BatchService.list(
                barcode=request.GET.get("barcode"),
                warehouse_name=request.GET.get("warehouseName"),
                expiring_within_days=get_int(request.GET, "days", 0) if days else None,
                has_stock_only=get_bool(request.GET, "hasStock") is not False,
                page=get_int(request.GET, "page", 1),
                per_page=get_int(request.GET, "limit", 50),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class BatchDetailView(BaseInventoryView):

    def get(self, request, batch_id):
        try:
            return self.success(BatchService.get(batch_id))
        except Exception as e:
            return handle_service_error(e)


# ==================== ALERTS ====================

class AlertListView(BaseInventoryView):

    def get(self, request):
        try:
            sort = request.GET.get("sort", "createdAt")
            result = AlertService.list(
                q=request.GET.get("q"),
                acknowledged=get_bool(request.GET, "acknowledged"),
                priority=request.GET.get("priority"),
                alert_type=request.GET.get("type"),
                sort="priority" if sort == "priority" else "created_at",
                order=request.GET.get("order", "desc"),
                page=get_int(request.GET, "page", 1),
                limit=get_int(request.GET, "limit", 20),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class ActiveAlertsView(BaseInventoryView):

    def get(self, request):
        try:
            return self.success(AlertService.active())
        except Exception as e:
            return handle_service_error(e)


class AlertAcknowledgeView(BaseInventoryView):

    def post(self, request, alert_id):
        try:
            result = AlertService.acknowledge(alert_id, request.user)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class AlertNotifyView(BaseInventoryView):
    """POST runs the email sweep (session or X-Api-Key for cron), GET previews it."""

    login_required = False

    def has_cron_key(self, request) -> bool:
        expected = getattr(settings, "CRON_API_KEY", "")
        provided = request.headers.get("X-Api-Key", "")
        return bool(expected) and bool(provided) and constant_time_compare(provided, expected)

    def get(self, request):
        if not request.user.is_authenticated:
            return error_response("Unauthorized", "unauthorized", 401)
        try:
            return self.success(AlertNotificationService().preview())
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        if not (request.user.is_authenticated or self.has_cron_key(request)):
            return error_response("Unauthorized", "unauthorized", 401)
        try:
            return self.success(AlertNotificationService().notify_active())
        except Exception as e:
            return handle_service_error(e)


# ==================== SETTINGS ====================

class SettingsView(BaseInventoryView):

    def get(self, request):
        try:
            return self.success({"settings": AppSettingService.get_all()})
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            if not is_admin(request.user):
                raise PermissionDeniedError("Only admins can change settings")
            data = self.get_json_body(request)
            result = AppSettingService.set_many(data)
            result["ok"] = True
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)
