"""
Inventory Services - stock movements, ledger and alerting

Usage:
    from inventory.services import get_stock_service, AlertService

    # Receive stock
    get_stock_service().receive("4780001", "Main", "5", user=request.user)

    # Unacknowledged alerts
    AlertService.list(acknowledged=False)
"""

# Base utilities
from inventory.services.base_service import (
    ServiceError,
    ValidationError,
    NotFoundError,
    PermissionDeniedError,
    InsufficientStockError,
    NegativeStockError,
    success_response,
    paginate_queryset,
    parse_quantity,
    format_quantity,
    to_decimal,
    BaseService,
)

# Settings
from .settings_service import AppSettingService

# Records & ledger
from .record_service import InventoryRecordService
from .ledger_service import StockTransactionService

# Alerts & notifications
from .notification_service import (
    NotificationDispatcher,
    MailTransport,
    AlertNotice,
    DispatchResult,
    DispatchStatus,
    get_dispatcher,
)
from .alert_service import AlertEngine, AlertService, AlertNotificationService
from .expiry_service import ExpiryAlertService
from .batch_service import BatchService

# Stock operations
from .stock_service import StockMovementService, get_stock_service


__all__ = [
    'ServiceError',
    'ValidationError',
    'NotFoundError',
    'PermissionDeniedError',
    'InsufficientStockError',
    'NegativeStockError',
    'success_response',
    'paginate_queryset',
    'parse_quantity',
    'format_quantity',
    'to_decimal',
    'BaseService',

    'AppSettingService',
    'InventoryRecordService',
    'StockTransactionService',

    'NotificationDispatcher',
    'MailTransport',
    'AlertNotice',
    'DispatchResult',
    'DispatchStatus',
    'get_dispatcher',
    'AlertEngine',
    'AlertService',
    'AlertNotificationService',
    'ExpiryAlertService',
    'BatchService',

    'StockMovementService',
    'get_stock_service',
]
