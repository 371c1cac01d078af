from django.urls import path
from . import views

app_name = "inventory"

urlpatterns = [
    path("inventory/receive", views.ReceiveView.as_view(), name="receive"),
    path("inventory/receive-batch", views.ReceiveBatchView.as_view(), name="receive-batch"),
    path("inventory/issue", views.IssueView.as_view(), name="issue"),
    path("inventory/transfer", views.TransferView.as_view(), name="transfer"),

    path("inventory/create", views.RecordCreateView.as_view(), name="record-create"),
    path("inventory/list", views.RecordListView.as_view(), name="record-list"),
    path("inventory/lookup", views.RecordLookupView.as_view(), name="record-lookup"),
    path("inventory/update-alert", views.UpdateAlertLevelView.as_view(), name="update-alert"),
    path("inventory/history", views.HistoryView.as_view(), name="history"),
    path("inventory/expiring", views.ExpiringView.as_view(), name="expiring"),
    path("inventory/batches", views.BatchListView.as_view(), name="batch-list"),
    path("inventory/batches/<int:batch_id>", views.BatchDetailView.as_view(), name="batch-detail"),

    path("alerts/list", views.AlertListView.as_view(), name="alert-list"),
    path("alerts/active", views.ActiveAlertsView.as_view(), name="alert-active"),
    path("alerts/<int:alert_id>/acknowledge", views.AlertAcknowledgeView.as_view(), name="alert-acknowledge"),
    path("alerts/notify", views.AlertNotifyView.as_view(), name="alert-notify"),

    path("settings", views.SettingsView.as_view(), name="settings"),
]
