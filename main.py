import logging
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import get_settings
from database import init_db, session_scope
from models import Account, Budget, Category, CategoryType, Tag, Transaction
from periods import Period, local_today, parse_month, resolve_period
from schemas import (
    AccountIn,
    BudgetIn,
    CategoryIn,
    SubcategoryIn,
    TagIn,
    TransactionIn,
)
from services import (
    AccountService,
    BudgetService,
    CategoryService,
    LedgerUnavailable,
    ReportService,
    TagService,
    TransactionFilters,
    TransactionService,
)

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Tracker")


def get_db():
    with session_scope() as db:
        yield db


@app.on_event("startup")
def startup_event():
    init_db()
    logger.info("startup: schema ready")


@app.exception_handler(LedgerUnavailable)
def ledger_unavailable_handler(request: Request, exc: LedgerUnavailable):
    logger.error(f"report_failed: path={request.url.path} error={exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def _int_list(request: Request, name: str) -> list[int]:
    values: list[int] = []
    for raw in request.query_params.getlist(name):
        for part in raw.split(","):
            part = part.strip()
            if not part or part == "all":
                continue
            try:
                values.append(int(part))
            except ValueError as exc:
                raise HTTPException(
                    status_code=400, detail=f"Invalid {name}: {part}"
                ) from exc
    return values


def _date_param(request: Request, name: str) -> Optional[date]:
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: {raw}") from exc


def period_from_request(request: Request) -> Optional[Period]:
    period_slug = request.query_params.get("period")
    if not period_slug:
        return None
    try:
        return resolve_period(
            period_slug,
            request.query_params.get("start"),
            request.query_params.get("end"),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def filters_from_request(request: Request) -> TransactionFilters:
    period = period_from_request(request)
    start = period.start if period else _date_param(request, "start")
    end = period.end if period else _date_param(request, "end")
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="Start date must be before end date")
    return TransactionFilters(
        start=start,
        end=end,
        account_ids=_int_list(request, "account"),
        category_ids=_int_list(request, "category"),
        subcategory_ids=_int_list(request, "subcategory"),
        tag_ids=_int_list(request, "tag"),
    )


def month_from_request(request: Request) -> date:
    raw = request.query_params.get("month")
    if not raw:
        return local_today().replace(day=1)
    try:
        return parse_month(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def account_payload(account: Account) -> dict[str, object]:
    return {
        "id": account.id,
        "name": account.name,
        "type": account.type.value,
        "opening_balance_cents": account.opening_balance_cents,
        "institution": account.institution,
    }


def category_payload(category: Category) -> dict[str, object]:
    return {
        "id": category.id,
        "name": category.name,
        "type": category.type.value,
        "color": category.color,
        "emoji": category.emoji,
        "subcategories": [
            {"id": s.id, "name": s.name} for s in category.subcategories
        ],
    }


def tag_payload(tag: Tag) -> dict[str, object]:
    return {"id": tag.id, "name": tag.name, "color": tag.color}


def transaction_payload(txn: Transaction) -> dict[str, object]:
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "type": txn.type.value,
        "description": txn.description,
        "amount_cents": txn.amount_cents,
        "account_id": txn.account_id,
        "destination_account_id": txn.destination_account_id,
        "category_id": txn.category_id,
        "subcategory_id": txn.subcategory_id,
        "transfer_pair_id": txn.transfer_pair_id,
        "notes": txn.notes,
        "tags": [tag_payload(t) for t in txn.tags],
    }


def budget_payload(budget: Budget) -> dict[str, object]:
    return {
        "id": budget.id,
        "category_id": budget.category_id,
        "amount_cents": budget.amount_cents,
        "month": budget.month.isoformat(),
    }


@app.get("/api/accounts")
def api_accounts(db: Session = Depends(get_db)):
    return [account_payload(a) for a in AccountService(db).list_all()]


@app.post("/api/accounts", status_code=201)
def api_create_account(data: AccountIn, db: Session = Depends(get_db)):
    return account_payload(AccountService(db).create(data))


@app.put("/api/accounts/{account_id}")
def api_update_account(account_id: int, data: AccountIn, db: Session = Depends(get_db)):
    try:
        account = AccountService(db).update(account_id, data)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return account_payload(account)


@app.delete("/api/accounts/{account_id}", status_code=204)
def api_delete_account(account_id: int, db: Session = Depends(get_db)):
    try:
        AccountService(db).delete(account_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/api/categories")
def api_categories(request: Request, db: Session = Depends(get_db)):
    type_param = request.query_params.get("type")
    category_type = None
    if type_param:
        try:
            category_type = CategoryType(type_param)
        except ValueError:
            category_type = None
    return [category_payload(c) for c in CategoryService(db).list_all(category_type)]


@app.post("/api/categories", status_code=201)
def api_create_category(data: CategoryIn, db: Session = Depends(get_db)):
    try:
        category = CategoryService(db).create(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return category_payload(category)


@app.put("/api/categories/{category_id}")
def api_update_category(
    category_id: int, data: CategoryIn, db: Session = Depends(get_db)
):
    try:
        category = CategoryService(db).update(category_id, data)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return category_payload(category)


@app.delete("/api/categories/{category_id}", status_code=204)
def api_delete_category(category_id: int, db: Session = Depends(get_db)):
    try:
        CategoryService(db).delete(category_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/api/subcategories", status_code=201)
def api_create_subcategory(data: SubcategoryIn, db: Session = Depends(get_db)):
    try:
        sub = CategoryService(db).add_subcategory(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"id": sub.id, "category_id": sub.category_id, "name": sub.name}


@app.delete("/api/subcategories/{subcategory_id}", status_code=204)
def api_delete_subcategory(subcategory_id: int, db: Session = Depends(get_db)):
    try:
        CategoryService(db).delete_subcategory(subcategory_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/api/tags")
def api_tags(db: Session = Depends(get_db)):
    return [tag_payload(t) for t in TagService(db).list_all()]


@app.post("/api/tags", status_code=201)
def api_create_tag(data: TagIn, db: Session = Depends(get_db)):
    try:
        tag = TagService(db).create(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return tag_payload(tag)


@app.put("/api/tags/{tag_id}")
def api_update_tag(tag_id: int, data: TagIn, db: Session = Depends(get_db)):
    try:
        tag = TagService(db).update(tag_id, data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return tag_payload(tag)


@app.delete("/api/tags/{tag_id}", status_code=204)
def api_delete_tag(tag_id: int, db: Session = Depends(get_db)):
    try:
        TagService(db).delete(tag_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/api/transactions")
@app.get("/api/reports/transactions")
def api_transactions(request: Request, db: Session = Depends(get_db)):
    filters = filters_from_request(request)
    return {"items": ReportService(db).transaction_rows(filters)}


@app.post("/api/transactions", status_code=201)
def api_create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    try:
        txn = TransactionService(db).create(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return transaction_payload(txn)


@app.get("/api/transactions/{transaction_id}")
def api_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        txn = TransactionService(db).get(transaction_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return transaction_payload(txn)


@app.put("/api/transactions/{transaction_id}")
def api_update_transaction(
    transaction_id: int, data: TransactionIn, db: Session = Depends(get_db)
):
    service = TransactionService(db)
    try:
        service.get(transaction_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    try:
        txn = service.update(transaction_id, data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return transaction_payload(txn)


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def api_delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        TransactionService(db).delete(transaction_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/api/budgets")
def api_budgets(request: Request, db: Session = Depends(get_db)):
    month = month_from_request(request)
    return [budget_payload(b) for b in BudgetService(db).list_for_month(month)]


@app.post("/api/budgets", status_code=201)
def api_upsert_budget(data: BudgetIn, db: Session = Depends(get_db)):
    try:
        budget = BudgetService(db).upsert(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return budget_payload(budget)


@app.delete("/api/budgets/{budget_id}", status_code=204)
def api_delete_budget(budget_id: int, db: Session = Depends(get_db)):
    try:
        BudgetService(db).delete(budget_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/api/dashboard")
def api_dashboard(db: Session = Depends(get_db)):
    return ReportService(db).dashboard()


@app.get("/api/reports/monthly")
def api_monthly_report(request: Request, db: Session = Depends(get_db)):
    filters = filters_from_request(request)
    return ReportService(db).monthly_summary(filters)


@app.get("/api/reports/daily-balances")
def api_daily_balances(request: Request, db: Session = Depends(get_db)):
    filters = filters_from_request(request)
    try:
        limit = int(request.query_params.get("limit", "20"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid limit") from exc
    limit = min(max(limit, 1), 500)
    return ReportService(db).daily_balances(filters, limit=limit)


@app.get("/api/reports/budgets")
def api_budget_report(request: Request, db: Session = Depends(get_db)):
    month = month_from_request(request)
    filters = filters_from_request(request)
    return ReportService(db).budget_report(month, filters)


@app.get("/api/reports/category-breakdown")
def api_category_breakdown(request: Request, db: Session = Depends(get_db)):
    month = month_from_request(request)
    type_param = request.query_params.get("type", CategoryType.expense.value)
    try:
        category_type = CategoryType(type_param)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid type") from exc
    filters = filters_from_request(request)
    return ReportService(db).category_breakdown(month, filters, category_type)


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
