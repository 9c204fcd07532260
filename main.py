import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aggregation import summarize
from api import include_api
from config import get_settings
from csrf import generate_csrf_token, validate_csrf_token
from database import init_db
from deps import filters_from_request, get_db, period_from_request, transaction_type_from
from models import SortOrder, TransactionType
from schemas import CategoryIn, TransactionIn
from services import (
    CategoryInUse,
    CategoryService,
    MetricsService,
    RecordNotFound,
    TransactionService,
)

BASE_DIR = Path(__file__).resolve().parent
settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Personal Finance Tracker")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")
templates = Jinja2Templates(directory=BASE_DIR / "templates")

include_api(app)


def format_amount(value, currency: Optional[str] = None) -> str:
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        amount = Decimal("0")
    text = f"{amount:,.2f}".replace(",", " ").replace(".", ",")
    return f"{text} {currency or settings.default_currency}"


templates.env.filters["amount"] = format_amount
templates.env.globals["csrf_token"] = generate_csrf_token
templates.env.globals["TransactionType"] = TransactionType
templates.env.globals["uncategorized_label"] = settings.uncategorized_label


@app.on_event("startup")
def startup_event():
    init_db()
    logger.info(f"startup: database={settings.database_url}")


def render(
    request: Request, template: str, context: dict[str, object], status_code: int = 200
) -> HTMLResponse:
    return templates.TemplateResponse(request, template, context, status_code=status_code)


def render_storage_error(request: Request, template: str, exc: SQLAlchemyError, context=None):
    logger.error(f"storage_error: {request.method} {request.url.path}", exc_info=exc)
    ctx: dict[str, object] = {"error": "Could not load data from the database.", "reload": True}
    ctx.update(context or {})
    return render(request, template, ctx, status_code=500)


def error_message(exc: ValueError) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
    return str(exc)


async def checked_form(request: Request):
    form = await request.form()
    if not validate_csrf_token(form.get("csrf_token", "")):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
    return form


def parse_form_amount(value: str) -> Decimal:
    clean = value.strip().replace(" ", "").replace(",", ".")
    if clean.count(".") > 1:
        parts = clean.split(".")
        clean = "".join(parts[:-1]) + "." + parts[-1]
    try:
        amount = Decimal(clean)
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc
    if not amount.is_finite():
        raise ValueError("Invalid amount")
    return amount


def _optional(form, key: str) -> Optional[str]:
    value = (form.get(key) or "").strip()
    return value or None


def _optional_int(form, key: str) -> Optional[int]:
    value = _optional(form, key)
    return int(value) if value else None


def transaction_payload_from_form(form) -> TransactionIn:
    currency = _optional(form, "currency")
    return TransactionIn(
        booking_date=form.get("booking_date", ""),
        amount=parse_form_amount(form.get("amount", "")),
        sender=_optional(form, "sender"),
        receiver=_optional(form, "receiver"),
        name=_optional(form, "name"),
        title=_optional(form, "title"),
        currency=currency.upper() if currency else None,
        payment_type=_optional(form, "payment_type"),
        category_id=_optional_int(form, "category_id"),
    )


def category_payload_from_form(form) -> CategoryIn:
    return CategoryIn(
        name=(form.get("name") or "").strip(),
        sifo_code=_optional(form, "sifo_code"),
        description=_optional(form, "description"),
        parent_id=_optional_int(form, "parent_id"),
    )


# -------------------------------------------------------------------
# Dashboard
# -------------------------------------------------------------------


@app.get("/", response_class=HTMLResponse)
def dashboard(request: Request, db: Session = Depends(get_db)):
    try:
        period = period_from_request(request)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    txn_type = transaction_type_from(request.query_params.get("transactionType"))
    context: dict[str, object] = {"period": period, "transaction_type": txn_type}
    try:
        context["dashboard"] = MetricsService(db).dashboard(period, txn_type)
    except SQLAlchemyError as exc:
        return render_storage_error(request, "dashboard.html", exc, context)
    return render(request, "dashboard.html", context)


# -------------------------------------------------------------------
# Transactions
# -------------------------------------------------------------------


@app.get("/transactions", response_class=HTMLResponse)
def transactions_page(request: Request, db: Session = Depends(get_db)):
    try:
        filters = filters_from_request(request)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    context: dict[str, object] = {"filters": filters, "SortOrder": SortOrder}
    try:
        transactions = TransactionService(db).list(filters)
    except SQLAlchemyError as exc:
        return render_storage_error(request, "transactions.html", exc, context)
    context.update({"transactions": transactions, "summary": summarize(transactions)})
    return render(request, "transactions.html", context)


def _transaction_form(
    request: Request,
    db: Session,
    *,
    transaction=None,
    values: Optional[dict] = None,
    error: Optional[str] = None,
    status_code: int = 200,
) -> HTMLResponse:
    return render(
        request,
        "transaction_form.html",
        {
            "transaction": transaction,
            "values": values or {},
            "category_groups": CategoryService(db).list_grouped(),
            "error": error,
        },
        status_code=status_code,
    )


@app.get("/transactions/new", response_class=HTMLResponse)
def new_transaction_page(request: Request, db: Session = Depends(get_db)):
    return _transaction_form(
        request, db, values={"currency": settings.default_currency}
    )


@app.post("/transactions")
async def create_transaction(request: Request, db: Session = Depends(get_db)):
    form = await checked_form(request)
    try:
        txn = TransactionService(db).create(transaction_payload_from_form(form))
    except ValueError as exc:
        return _transaction_form(
            request, db, values=dict(form), error=error_message(exc), status_code=400
        )
    return RedirectResponse(
        url=request.app.url_path_for("transaction_page", transaction_id=txn.id),
        status_code=303,
    )


@app.get("/transactions/{transaction_id}", response_class=HTMLResponse)
def transaction_page(transaction_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        txn = TransactionService(db).get(transaction_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return render(request, "transaction_detail.html", {"transaction": txn})


@app.get("/transactions/{transaction_id}/edit", response_class=HTMLResponse)
def edit_transaction_page(
    transaction_id: int, request: Request, db: Session = Depends(get_db)
):
    try:
        txn = TransactionService(db).get(transaction_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    values = {
        "booking_date": txn.booking_date.isoformat(),
        "amount": f"{txn.amount:.2f}",
        "sender": txn.sender or "",
        "receiver": txn.receiver or "",
        "name": txn.name or "",
        "title": txn.title or "",
        "currency": txn.currency or "",
        "payment_type": txn.payment_type or "",
        "category_id": str(txn.category_id or ""),
    }
    return _transaction_form(request, db, transaction=txn, values=values)


@app.post("/transactions/{transaction_id}/edit")
async def update_transaction(
    transaction_id: int, request: Request, db: Session = Depends(get_db)
):
    form = await checked_form(request)
    service = TransactionService(db)
    try:
        txn = service.get(transaction_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    try:
        service.update(transaction_id, transaction_payload_from_form(form))
    except ValueError as exc:
        return _transaction_form(
            request,
            db,
            transaction=txn,
            values=dict(form),
            error=error_message(exc),
            status_code=400,
        )
    return RedirectResponse(
        url=request.app.url_path_for("transaction_page", transaction_id=transaction_id),
        status_code=303,
    )


@app.post("/transactions/{transaction_id}/delete")
async def delete_transaction(
    transaction_id: int, request: Request, db: Session = Depends(get_db)
):
    await checked_form(request)
    try:
        TransactionService(db).delete(transaction_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return RedirectResponse(
        url=request.app.url_path_for("transactions_page"), status_code=303
    )


# -------------------------------------------------------------------
# Categories
# -------------------------------------------------------------------


@app.get("/categories", response_class=HTMLResponse)
def categories_page(request: Request, db: Session = Depends(get_db)):
    try:
        groups = CategoryService(db).list_grouped()
    except SQLAlchemyError as exc:
        return render_storage_error(request, "categories.html", exc, {"groups": []})
    return render(request, "categories.html", {"groups": groups})


def _category_form(
    request: Request,
    db: Session,
    *,
    category=None,
    values: Optional[dict] = None,
    error: Optional[str] = None,
    status_code: int = 200,
) -> HTMLResponse:
    parents = [
        c for c in CategoryService(db).top_level() if category is None or c.id != category.id
    ]
    return render(
        request,
        "category_form.html",
        {
            "category": category,
            "values": values or {},
            "parents": parents,
            "error": error,
        },
        status_code=status_code,
    )


@app.get("/categories/new", response_class=HTMLResponse)
def new_category_page(request: Request, db: Session = Depends(get_db)):
    values = {"parent_id": request.query_params.get("parent_id", "")}
    return _category_form(request, db, values=values)


@app.post("/categories")
async def create_category(request: Request, db: Session = Depends(get_db)):
    form = await checked_form(request)
    try:
        category = CategoryService(db).create(category_payload_from_form(form))
    except ValueError as exc:
        return _category_form(
            request, db, values=dict(form), error=error_message(exc), status_code=400
        )
    return RedirectResponse(
        url=request.app.url_path_for("category_page", category_id=category.id),
        status_code=303,
    )


def _category_detail(
    request: Request,
    db: Session,
    category_id: int,
    *,
    error: Optional[str] = None,
    status_code: int = 200,
) -> HTMLResponse:
    service = CategoryService(db)
    try:
        category = service.get(category_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    transactions = service.transactions(category.id)
    return render(
        request,
        "category_detail.html",
        {
            "category": category,
            "subcategories": service.subcategories(category.id),
            "transactions": transactions,
            "summary": summarize(transactions),
            "error": error,
        },
        status_code=status_code,
    )


@app.get("/categories/{category_id}", response_class=HTMLResponse)
def category_page(category_id: int, request: Request, db: Session = Depends(get_db)):
    return _category_detail(request, db, category_id)


@app.get("/categories/{category_id}/edit", response_class=HTMLResponse)
def edit_category_page(category_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        category = CategoryService(db).get(category_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    values = {
        "name": category.name,
        "sifo_code": category.sifo_code or "",
        "description": category.description or "",
        "parent_id": str(category.parent_id or ""),
    }
    return _category_form(request, db, category=category, values=values)


@app.post("/categories/{category_id}/edit")
async def update_category(
    category_id: int, request: Request, db: Session = Depends(get_db)
):
    form = await checked_form(request)
    service = CategoryService(db)
    try:
        category = service.get(category_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    try:
        service.update(category_id, category_payload_from_form(form))
    except ValueError as exc:
        return _category_form(
            request,
            db,
            category=category,
            values=dict(form),
            error=error_message(exc),
            status_code=400,
        )
    return RedirectResponse(
        url=request.app.url_path_for("category_page", category_id=category_id),
        status_code=303,
    )


@app.post("/categories/{category_id}/delete")
async def delete_category(
    category_id: int, request: Request, db: Session = Depends(get_db)
):
    await checked_form(request)
    try:
        CategoryService(db).delete(category_id)
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except CategoryInUse as exc:
        return _category_detail(
            request, db, category_id, error=str(exc), status_code=409
        )
    return RedirectResponse(
        url=request.app.url_path_for("categories_page"), status_code=303
    )


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
