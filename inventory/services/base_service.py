from typing import Dict, Any, Optional, List, Tuple
from decimal import Decimal, InvalidOperation
from django.db.models import Model

# Matches DecimalField(max_digits=15, decimal_places=4)
QUANTITY_STEP = Decimal("0.0001")
MAX_QUANTITY = Decimal("100000000000")


class ServiceError(Exception):
    def __init__(self, message: str, code: str = "ERROR", details: Dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    def __init__(self, message: str, field: str = None, details: Dict = None):
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            "NOT_FOUND",
            {"resource": resource, "identifier": str(identifier)}
        )


class PermissionDeniedError(ServiceError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, "FORBIDDEN")


class InsufficientStockError(ServiceError):
    def __init__(self, item_name: str, required: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient stock for {item_name}: required {format_quantity(required)}, "
            f"available {format_quantity(available)}",
            "INSUFFICIENT_STOCK",
            {"item": item_name, "required": str(required), "available": str(available)}
        )


class NegativeStockError(ValidationError):
    """An issue that would drive stock below zero while negative issues are blocked."""

    def __init__(self, requested: Decimal, available: Decimal):
        super().__init__(
            "Issuing this quantity would result in negative stock. Reduce the quantity.",
            "quantity",
            {"requested": str(requested), "available": str(available)},
        )
        self.code = "NEGATIVE_STOCK"


def success_response(data: Any = None, message: str = "Success") -> Dict:
    response = {"success": True, "message": message}
    if data is not None:
        if isinstance(data, dict):
            response.update(data)
        else:
            response["data"] = data
    return response


def paginate_queryset(queryset, page: int = 1, per_page: int = 20, max_per_page: int = 100) -> Tuple[List, Dict]:
    page = max(1, page)
    per_page = min(max(1, per_page), max_per_page)

    total = queryset.count()
    total_pages = (total + per_page - 1) // per_page

    offset = (page - 1) * per_page
    items = list(queryset[offset:offset + per_page])

    return items, {
        "page": page,
        "per_page": per_page,
        "total_items": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1
    }


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None:
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def parse_quantity(value: Any, field: str = "quantity") -> Decimal:
    """Strict parse of a movement quantity: finite and greater than zero."""
    if value is None or isinstance(value, bool) or value == "":
        raise ValidationError(f"{field} is required", field)
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number", field)
    if not quantity.is_finite():
        raise ValidationError(f"{field} must be a finite number", field)
    if abs(quantity) >= MAX_QUANTITY:
        raise ValidationError(f"{field} is out of range", field)
    quantity = quantity.quantize(QUANTITY_STEP)
    if quantity <= 0:
        raise ValidationError(f"{field} must be greater than zero", field)
    return quantity


def format_quantity(value: Decimal) -> str:
    """4.0000 -> '4', 2.5000 -> '2.5'"""
    value = to_decimal(value)
    if value == 0:
        return "0"
    return f"{value.normalize():f}"


class BaseService:
    model = None

    @classmethod
    def get_by_id(cls, id: int) -> Optional[Model]:
        try:
            return cls.model.objects.get(id=id)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            return None

    @classmethod
    def get_or_404(cls, id: int) -> Model:
        obj = cls.get_by_id(id)
        if not obj:
            raise NotFoundError(cls.model.__name__, id)
        return obj

    @classmethod
    def exists(cls, id: int) -> bool:
        return cls.model.objects.filter(id=id).exists()
