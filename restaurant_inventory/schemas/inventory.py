from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from restaurant_inventory.core.config import DEFAULT_LOW_STOCK_THRESHOLD, MAX_QUANTITY
from restaurant_inventory.models.inventory import ReferenceType, TransactionType

VALID_UNITS = [
    'kg', 'g', 'grams', 'lb', 'oz',                    # Weight
    'l', 'liters', 'ml', 'gal', 'qt', 'pt',            # Volume
    'pieces', 'units', 'boxes',                        # Count
    'cups', 'tbsp', 'tsp',                             # Cooking measurements
]


def _check_unit(value: str) -> str:
    if value not in VALID_UNITS:
        raise ValueError(f"Unit of measure must be one of: {', '.join(VALID_UNITS)}")
    return value


def _check_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Product name cannot be empty")
    return value


# ---------------- Product Store ----------------

class ProductCreate(BaseModel):
    """Schema for creating a product. An initial quantity is booked as an opening restock."""
    name: str = Field(..., max_length=200, description="Unique product name.")
    description: Optional[str] = Field(None, max_length=1000)
    unit_of_measure: str = Field(..., description="Unit the product is stocked in.")
    current_quantity: Decimal = Field(Decimal("0"), ge=0, lt=MAX_QUANTITY, description="Opening stock level.")
    low_stock_threshold: Decimal = Field(DEFAULT_LOW_STOCK_THRESHOLD, ge=0)
    cost_per_unit: Optional[Decimal] = Field(None, ge=0)
    supplier_info: Optional[str] = Field(None, max_length=500)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value):
        return _check_name(value)

    @field_validator("unit_of_measure")
    @classmethod
    def validate_unit(cls, value):
        return _check_unit(value)


class ProductUpdate(BaseModel):
    """Partial update. Quantity is deliberately absent: it only moves through the ledger."""
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    unit_of_measure: Optional[str] = None
    low_stock_threshold: Optional[Decimal] = Field(None, ge=0)
    cost_per_unit: Optional[Decimal] = Field(None, ge=0)
    supplier_info: Optional[str] = Field(None, max_length=500)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value):
        return None if value is None else _check_name(value)

    @field_validator("unit_of_measure")
    @classmethod
    def validate_unit(cls, value):
        return None if value is None else _check_unit(value)


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    unit_of_measure: str
    current_quantity: Decimal
    low_stock_threshold: Decimal
    cost_per_unit: Optional[Decimal] = None
    supplier_info: Optional[str] = None
    stock_status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RestockRequest(BaseModel):
    quantity: Decimal = Field(..., gt=0, lt=MAX_QUANTITY, description="Quantity to add.")
    notes: Optional[str] = Field(None, max_length=1000)
    reference_id: Optional[int] = Field(None, gt=0)


class AdjustRequest(BaseModel):
    quantity_change: Decimal = Field(..., gt=-MAX_QUANTITY, lt=MAX_QUANTITY, description="Signed quantity change.")
    notes: Optional[str] = Field(None, max_length=1000)
    reference_id: Optional[int] = Field(None, gt=0)


class WasteRequest(BaseModel):
    quantity: Decimal = Field(..., gt=0, lt=MAX_QUANTITY, description="Quantity discarded.")
    notes: Optional[str] = Field(None, max_length=1000)


# ---------------- Ledger ----------------

class TransactionRecord(BaseModel):
    """Immutable ledger entry as exposed to callers."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    transaction_type: TransactionType
    quantity_change: Decimal
    reference_type: Optional[ReferenceType] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class StockMovementResult(BaseModel):
    """Result of restock / adjust / waste: the ledger row plus the product after the change."""
    transaction: TransactionRecord
    product: ProductResponse


class LedgerAudit(BaseModel):
    product_id: int
    current_quantity: Decimal
    ledger_total: Decimal
    drift: Decimal
    consistent: bool


# ---------------- Availability & Reconciliation ----------------

class ProductRequirement(BaseModel):
    """Aggregated need for one product across every line item of an order."""
    product_id: int
    product_name: str
    unit: Optional[str] = None
    ingredient_names: List[str] = Field(default_factory=list)
    required: Decimal
    available: Decimal


class Shortage(BaseModel):
    product_id: int
    product_name: str
    required: Decimal
    available: Decimal
    shortage: Decimal
    unit: Optional[str] = None


class AvailabilityResult(BaseModel):
    required_by_product: Dict[int, Decimal] = Field(default_factory=dict)
    insufficient: List[Shortage] = Field(default_factory=list)
    ingredient_quantities: List[ProductRequirement] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not self.insufficient


class ReconciliationIssue(BaseModel):
    type: str  # insufficient_inventory | processing_error | already_reconciled
    message: str
    details: Optional[Dict[str, Any]] = None


class ReconciliationResult(BaseModel):
    order_id: int
    success: bool
    transactions: List[TransactionRecord] = Field(default_factory=list)
    errors: List[ReconciliationIssue] = Field(default_factory=list)
    message: Optional[str] = None

    @property
    def has_shortage(self) -> bool:
        return any(e.type == "insufficient_inventory" for e in self.errors)

    @property
    def shortages(self) -> List[Dict[str, Any]]:
        return [e.details for e in self.errors if e.type == "insufficient_inventory"]


# ---------------- Alerts ----------------

class StockAlert(BaseModel):
    id: int
    name: str
    current_quantity: Decimal
    low_stock_threshold: Optional[Decimal] = None
    unit_of_measure: str
    alert_type: str  # low_stock | out_of_stock
    severity: str    # medium | high | critical
    message: str


class DashboardSummary(BaseModel):
    total_products: int
    low_stock_count: int
    out_of_stock_count: int
    total_inventory_value: Decimal
    low_stock_alerts: List[StockAlert]
    out_of_stock_alerts: List[StockAlert]
    alert_summary: str
