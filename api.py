"""
JSON API under /api: CRUD for transactions and categories plus the
dashboard aggregates. Handlers only translate between HTTP and the
services; error-to-status mapping lives in ``register_error_handlers``.
"""

import logging

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deps import filters_from_request, get_db, period_from_request, transaction_type_from
from schemas import (
    CategoryIn,
    CategoryOut,
    DashboardOut,
    TransactionIn,
    TransactionOut,
)
from services import (
    CategoryInUse,
    CategoryService,
    MetricsService,
    RecordNotFound,
    TransactionService,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

transactions_router = APIRouter(prefix="/api/transactions", tags=["transactions"])
categories_router = APIRouter(prefix="/api/categories", tags=["categories"])
dashboard_router = APIRouter(prefix="/api", tags=["dashboard"])


# -------------------------------------------------------------------
# Transactions
# -------------------------------------------------------------------


@transactions_router.get("", response_model=list[TransactionOut])
def api_list_transactions(request: Request, db: Session = Depends(get_db)):
    filters = filters_from_request(request)
    return TransactionService(db).list(filters)


@transactions_router.get("/{transaction_id}", response_model=TransactionOut)
def api_get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    return TransactionService(db).get(transaction_id)


@transactions_router.post("", response_model=TransactionOut, status_code=201)
def api_create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    return TransactionService(db).create(data)


@transactions_router.put("/{transaction_id}", response_model=TransactionOut)
def api_update_transaction(
    transaction_id: int, data: TransactionIn, db: Session = Depends(get_db)
):
    return TransactionService(db).update(transaction_id, data)


@transactions_router.delete("/{transaction_id}", status_code=204)
def api_delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    TransactionService(db).delete(transaction_id)
    return Response(status_code=204)


# -------------------------------------------------------------------
# Categories
# -------------------------------------------------------------------


@categories_router.get("", response_model=list[CategoryOut])
def api_list_categories(db: Session = Depends(get_db)):
    return CategoryService(db).list_all()


@categories_router.get("/{category_id}", response_model=CategoryOut)
def api_get_category(category_id: int, db: Session = Depends(get_db)):
    return CategoryService(db).get(category_id)


@categories_router.get("/{category_id}/subcategories", response_model=list[CategoryOut])
def api_get_subcategories(category_id: int, db: Session = Depends(get_db)):
    return CategoryService(db).subcategories(category_id)


@categories_router.get(
    "/{category_id}/transactions", response_model=list[TransactionOut]
)
def api_get_category_transactions(category_id: int, db: Session = Depends(get_db)):
    return CategoryService(db).transactions(category_id)


@categories_router.post("", response_model=CategoryOut, status_code=201)
def api_create_category(data: CategoryIn, db: Session = Depends(get_db)):
    return CategoryService(db).create(data)


@categories_router.put("/{category_id}", response_model=CategoryOut)
def api_update_category(category_id: int, data: CategoryIn, db: Session = Depends(get_db)):
    return CategoryService(db).update(category_id, data)


@categories_router.delete("/{category_id}", status_code=204)
def api_delete_category(category_id: int, db: Session = Depends(get_db)):
    CategoryService(db).delete(category_id)
    return Response(status_code=204)


# -------------------------------------------------------------------
# Dashboard
# -------------------------------------------------------------------


@dashboard_router.get("/dashboard", response_model=DashboardOut)
def api_dashboard(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request)
    txn_type = transaction_type_from(request.query_params.get("transactionType"))
    return MetricsService(db).dashboard(period, txn_type)


# -------------------------------------------------------------------
# Error mapping
# -------------------------------------------------------------------


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RecordNotFound)
    async def not_found_handler(request: Request, exc: RecordNotFound):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(CategoryInUse)
    async def conflict_handler(request: Request, exc: CategoryInUse):
        return JSONResponse(status_code=409, content={"error": str(exc)})

    @app.exception_handler(ValidationFailed)
    async def validation_handler(request: Request, exc: ValidationFailed):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            f"storage_error: {request.method} {request.url.path}", exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(exc)},
        )


def include_api(app: FastAPI) -> None:
    app.include_router(transactions_router)
    app.include_router(categories_router)
    app.include_router(dashboard_router)
    register_error_handlers(app)
