import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from restaurant_inventory.core.config import (
    PRODUCT_PAGE_LIMIT_DEFAULT,
    PRODUCT_PAGE_LIMIT_MAX,
    TRANSACTION_PAGE_LIMIT_DEFAULT,
    TRANSACTION_PAGE_LIMIT_MAX,
)
from restaurant_inventory.core.exceptions import InventoryError
from restaurant_inventory.models.inventory import ReferenceType, TransactionType
from restaurant_inventory.schemas.inventory import (
    AdjustRequest,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    RestockRequest,
    StockMovementResult,
    TransactionRecord,
    WasteRequest,
)
from restaurant_inventory.schemas.response import Pagination, SuccessResponse
from restaurant_inventory.services import alert_service, ledger, product_store

log = logging.getLogger("uvicorn")

router = APIRouter()


def _movement(product, transaction) -> dict:
    return StockMovementResult(
        transaction=TransactionRecord.model_validate(transaction),
        product=ProductResponse.model_validate(product),
    ).model_dump()


# ---------------- Products ----------------

@router.get("/products", response_model=SuccessResponse)
async def list_products_endpoint(
    search: Optional[str] = None,
    unit: Optional[str] = None,
    low_stock: bool = False,
    out_of_stock: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(PRODUCT_PAGE_LIMIT_DEFAULT, ge=1, le=PRODUCT_PAGE_LIMIT_MAX),
    sort_by: str = Query("name", pattern="^(name|current_quantity|low_stock_threshold|cost_per_unit|created_at)$"),
    sort_order: str = Query("ASC", pattern="^(ASC|DESC|asc|desc)$"),
):
    """Lists products with search, unit and stock-level filters."""
    products, total = await product_store.list_products(
        search=search,
        unit=unit,
        low_stock=low_stock,
        out_of_stock=out_of_stock,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    data = {
        "products": [ProductResponse.model_validate(p).model_dump() for p in products],
        "pagination": Pagination.build(page, limit, total).model_dump(),
    }
    return SuccessResponse(data=data)


@router.post("/products", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_product_endpoint(payload: ProductCreate):
    """Creates a product. A non-zero initial quantity is recorded as an opening restock."""
    try:
        product, _ = await ledger.create_product(payload)
        log.info(f"Product {product.id} created.")
        return SuccessResponse(data=ProductResponse.model_validate(product).model_dump())
    except (InventoryError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error creating product: {e}")
        raise HTTPException(status_code=500, detail="Server failed to create product.")


@router.get("/products/{product_id}", response_model=SuccessResponse)
async def get_product_endpoint(product_id: int):
    product = await product_store.get_product(product_id)
    return SuccessResponse(data=ProductResponse.model_validate(product).model_dump())


@router.put("/products/{product_id}", response_model=SuccessResponse)
async def update_product_endpoint(product_id: int, payload: ProductUpdate):
    """Updates descriptive fields and thresholds. Stock levels only move through the ledger endpoints."""
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update.")
    product = await product_store.update_product(product_id, changes)
    return SuccessResponse(data=ProductResponse.model_validate(product).model_dump())


@router.delete("/products/{product_id}", response_model=SuccessResponse)
async def delete_product_endpoint(product_id: int):
    await product_store.delete_product(product_id)
    return SuccessResponse(data={"message": f"Product {product_id} deleted."})


# ---------------- Stock movements ----------------

@router.post("/products/{product_id}/restock", response_model=SuccessResponse)
async def restock_endpoint(product_id: int, payload: RestockRequest):
    try:
        product, transaction = await ledger.restock(
            product_id, payload.quantity, notes=payload.notes, reference_id=payload.reference_id
        )
        return SuccessResponse(data=_movement(product, transaction))
    except (InventoryError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error restocking product {product_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to restock product.")


@router.post("/products/{product_id}/adjust", response_model=SuccessResponse)
async def adjust_endpoint(product_id: int, payload: AdjustRequest):
    """Signed correction. Refused with 400 when it would leave negative stock."""
    try:
        product, transaction = await ledger.adjust(
            product_id, payload.quantity_change, notes=payload.notes, reference_id=payload.reference_id
        )
        return SuccessResponse(data=_movement(product, transaction))
    except (InventoryError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error adjusting product {product_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to adjust inventory.")


@router.post("/products/{product_id}/waste", response_model=SuccessResponse)
async def waste_endpoint(product_id: int, payload: WasteRequest):
    try:
        product, transaction = await ledger.record_waste(product_id, payload.quantity, notes=payload.notes)
        return SuccessResponse(data=_movement(product, transaction))
    except (InventoryError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error recording waste for product {product_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to record waste.")


@router.get("/products/{product_id}/audit", response_model=SuccessResponse)
async def audit_endpoint(product_id: int):
    """Compares the ledger sum with the cached quantity of the product."""
    audit = await ledger.audit_product_balance(product_id)
    return SuccessResponse(data=audit.model_dump())


# ---------------- Ledger ----------------

@router.get("/transactions", response_model=SuccessResponse)
async def list_transactions_endpoint(
    product_id: Optional[int] = Query(None, ge=1),
    transaction_type: Optional[TransactionType] = None,
    reference_type: Optional[ReferenceType] = None,
    reference_id: Optional[int] = Query(None, ge=1),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(TRANSACTION_PAGE_LIMIT_DEFAULT, ge=1, le=TRANSACTION_PAGE_LIMIT_MAX),
):
    """Ledger entries, newest first."""
    rows, total = await ledger.list_transactions(
        page=page,
        limit=limit,
        product_id=product_id,
        transaction_type=transaction_type,
        reference_type=reference_type,
        reference_id=reference_id,
        start_date=start_date,
        end_date=end_date,
    )
    data = {
        "transactions": [TransactionRecord.model_validate(r).model_dump() for r in rows],
        "pagination": Pagination.build(page, limit, total).model_dump(),
    }
    return SuccessResponse(data=data)


@router.get("/transactions/{transaction_id}", response_model=SuccessResponse)
async def get_transaction_endpoint(transaction_id: int):
    transaction = await ledger.get_transaction(transaction_id)
    if not transaction:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found.")
    return SuccessResponse(data=TransactionRecord.model_validate(transaction).model_dump())


# ---------------- Alerts ----------------

@router.get("/alerts/low-stock", response_model=SuccessResponse)
async def low_stock_alerts_endpoint():
    alerts = await alert_service.get_low_stock_alerts()
    return SuccessResponse(data={"alerts": [a.model_dump() for a in alerts], "count": len(alerts)})


@router.get("/alerts/out-of-stock", response_model=SuccessResponse)
async def out_of_stock_alerts_endpoint():
    alerts = await alert_service.get_out_of_stock_alerts()
    return SuccessResponse(data={"alerts": [a.model_dump() for a in alerts], "count": len(alerts)})


@router.get("/dashboard", response_model=SuccessResponse)
async def dashboard_endpoint():
    """Stock overview: counts, current alerts and total inventory value."""
    summary = await alert_service.get_dashboard()
    return SuccessResponse(data=summary.model_dump())
