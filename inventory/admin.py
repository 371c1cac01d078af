from django.contrib import admin
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateFilter, RangeDateTimeFilter

from .models import InventoryRecord, StockTransaction, Batch, BatchTransaction, AlertLog, AppSetting
from .services.alert_service import BATCH_EXPIRY_WINDOW
from .services.base_service import format_quantity


@admin.register(InventoryRecord)
class InventoryRecordAdmin(ModelAdmin):
    list_display = ['item_name', 'barcode', 'warehouse_name', 'qty_display', 'alert_level_display',
                    'stock_badge', 'expire_date']
    list_filter = ['warehouse_name', 'category', ('expire_date', RangeDateFilter)]
    list_filter_submit = True
    search_fields = ['item_name', 'barcode', 'category']
    # stock_qty only moves through the ledger
    readonly_fields = ['stock_qty', 'created_by', 'created_at', 'updated_at']

    @display(description=_("Qty"), ordering='stock_qty')
    def qty_display(self, obj):
        return f"{format_quantity(obj.stock_qty)} {obj.unit}".strip()

    @display(description=_("Alert level"), ordering='stock_alert_level')
    def alert_level_display(self, obj):
        return format_quantity(obj.stock_alert_level) if obj.low_stock_enabled else "-"

    @display(description=_("Stock"), label={"Negative": "danger", "Low": "warning", "OK": "success"})
    def stock_badge(self, obj):
        if obj.stock_qty < 0:
            return "Negative"
        if obj.low_stock_enabled and obj.stock_qty <= obj.stock_alert_level:
            return "Low"
        return "OK"

    def save_model(self, request, obj, form, change):
        if not change:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockTransaction)
class StockTransactionAdmin(ModelAdmin):
    list_display = ['id', 'transaction_date', 'transaction_type', 'inventory', 'quantity',
                    'quantity_before', 'quantity_after', 'processed_by']
    list_filter = ['transaction_type', ('transaction_date', RangeDateTimeFilter)]
    list_filter_submit = True
    search_fields = ['inventory__barcode', 'inventory__item_name', 'reference_doc']
    list_select_related = ['inventory', 'processed_by']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class BatchTransactionInline(TabularInline):
    model = BatchTransaction
    extra = 0
    fields = ['transaction_date', 'transaction_type', 'quantity', 'reason', 'reference_doc', 'processed_by']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Batch)
class BatchAdmin(ModelAdmin):
    list_display = ['batch_number', 'inventory', 'warehouse_name', 'remaining_display', 'expiry_date', 'expiry_badge']
    list_filter = ['warehouse_name', ('expiry_date', RangeDateFilter)]
    list_filter_submit = True
    search_fields = ['batch_number', 'lot_number', 'inventory__barcode', 'inventory__item_name']
    list_select_related = ['inventory']
    inlines = [BatchTransactionInline]
    # Batches are created by batch receipts only
    readonly_fields = ['batch_number', 'inventory', 'warehouse_name', 'quantity_received', 'quantity_remaining',
                       'created_by', 'created_at']

    @display(description=_("Remaining"), ordering='quantity_remaining')
    def remaining_display(self, obj):
        return format_quantity(obj.quantity_remaining)

    @display(description=_("Expiry"), label={"Expired": "danger", "Expiring": "warning", "OK": "success"})
    def expiry_badge(self, obj):
        days = (obj.expiry_date - timezone.localdate()).days
        if days < 0:
            return "Expired"
        if days <= BATCH_EXPIRY_WINDOW:
            return "Expiring"
        return "OK"

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AlertLog)
class AlertLogAdmin(ModelAdmin):
    list_display = ['id', 'created_at', 'alert_type', 'priority_badge', 'inventory', 'message', 'acknowledged']
    list_filter = ['alert_type', 'priority_level', 'acknowledged', ('created_at', RangeDateTimeFilter)]
    list_filter_submit = True
    search_fields = ['message', 'inventory__barcode', 'inventory__item_name']
    list_select_related = ['inventory']
    readonly_fields = ['alert_type', 'priority_level', 'message', 'inventory', 'batch', 'created_at',
                       'acknowledged_by', 'acknowledged_at']
    actions = ['acknowledge_selected']

    @display(description=_("Priority"), label={"high": "danger", "medium": "warning", "low": "info"})
    def priority_badge(self, obj):
        return obj.priority_level

    @admin.action(description=_("Acknowledge selected alerts"))
    def acknowledge_selected(self, request, queryset):
        updated = queryset.filter(acknowledged=False).update(
            acknowledged=True, acknowledged_by=request.user, acknowledged_at=timezone.now()
        )
        self.message_user(request, _("%d alert(s) acknowledged.") % updated)

    def has_add_permission(self, request):
        return False


@admin.register(AppSetting)
class AppSettingAdmin(ModelAdmin):
    list_display = ['key', 'value', 'updated_at']
    search_fields = ['key']
