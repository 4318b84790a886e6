import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import Caller, require_caller, resolve_caller
from cache import ViewCache
from config import get_settings
from csrf import generate_csrf_token, validate_csrf_token
from database import SessionLocal
from errors import InvalidAmount, NotFoundOrUnauthorized, Unauthorized
from periods import Window, resolve_window
from schemas import ExpenseIn, SortKey
from services import CategoryService, ExpenseService, SummaryService

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Expenses Dashboard")
view_cache = ViewCache(settings.view_cache_ttl_secs)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_view_cache() -> ViewCache:
    return view_cache


def get_caller(request: Request) -> Optional[Caller]:
    return resolve_caller(request)


def authenticated(caller: Optional[Caller] = Depends(get_caller)) -> Caller:
    try:
        return require_caller(caller)
    except Unauthorized as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


def csrf_protected(request: Request, caller: Caller = Depends(authenticated)) -> Caller:
    token = request.headers.get("X-CSRF-Token", "")
    if not validate_csrf_token(token, caller.id):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
    return caller


def window_from_request(request: Request) -> Window:
    period = request.query_params.get("period")
    start = request.query_params.get("start")
    end = request.query_params.get("end")
    if start and end and not period:
        period = "custom"
    try:
        return resolve_window(period, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def category_from_request(request: Request) -> Optional[str]:
    category = request.query_params.get("category")
    # "all" is accepted for compatibility with older clients
    if not category or category == "all":
        return None
    return category


def int_param(request: Request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {name}") from exc


def summary_payload(summary) -> dict[str, object]:
    return {
        "total": summary.total,
        "count": summary.count,
        "by_category": [
            {
                "name": item.name,
                "total": item.total,
                "count": item.count,
                "percent": round(item.share_of(summary.total), 1),
            }
            for item in summary.by_category
        ],
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/session")
def session_info(caller: Caller = Depends(authenticated)):
    return {
        "user": {"id": caller.id, "email": caller.email},
        "csrf_token": generate_csrf_token(caller.id),
    }


@app.get("/api/categories")
def api_categories(
    caller: Caller = Depends(authenticated), db: Session = Depends(get_db)
):
    return [{"id": c.id, "name": c.name} for c in CategoryService(db).list_all()]


@app.get("/api/expenses")
def api_expenses(
    request: Request,
    caller: Caller = Depends(authenticated),
    db: Session = Depends(get_db),
    cache: ViewCache = Depends(get_view_cache),
):
    window = window_from_request(request)
    try:
        sort = SortKey(request.query_params.get("sort", SortKey.date_desc.value))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid sort key") from exc
    page = int_param(request, "page", 1)
    page_size = min(
        int_param(request, "page_size", settings.default_page_size),
        settings.max_page_size,
    )
    try:
        result = ExpenseService(db, caller, cache).list(
            window,
            category_id=category_from_request(request),
            sort=sort,
            page=page,
            page_size=page_size,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return result.model_dump(mode="json")


@app.get("/api/expenses/export.csv")
def api_export_expenses(
    request: Request,
    caller: Caller = Depends(authenticated),
    db: Session = Depends(get_db),
):
    window = window_from_request(request)
    content = ExpenseService(db, caller).export_csv(
        window, category_id=category_from_request(request)
    )
    filename = f"expenses_{window.start.date()}_{window.end.date()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/expenses", status_code=201)
def api_create_expense(
    data: ExpenseIn,
    caller: Caller = Depends(csrf_protected),
    db: Session = Depends(get_db),
    cache: ViewCache = Depends(get_view_cache),
):
    try:
        expense_id = ExpenseService(db, caller, cache).create(data)
    except InvalidAmount as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except IntegrityError as exc:
        raise HTTPException(status_code=400, detail="Category not found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"id": expense_id}


@app.post("/api/expenses/clear")
def api_clear_expenses(
    caller: Caller = Depends(csrf_protected),
    db: Session = Depends(get_db),
    cache: ViewCache = Depends(get_view_cache),
):
    deleted = ExpenseService(db, caller, cache).clear_all()
    return {"deleted": deleted}


@app.post("/api/expenses/demo")
def api_demo_expenses(
    caller: Caller = Depends(csrf_protected),
    db: Session = Depends(get_db),
    cache: ViewCache = Depends(get_view_cache),
):
    try:
        created = ExpenseService(db, caller, cache).seed_demo()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"created": created}


@app.post("/api/expenses/{expense_id}/delete")
def api_delete_expense(
    expense_id: str,
    caller: Caller = Depends(csrf_protected),
    db: Session = Depends(get_db),
    cache: ViewCache = Depends(get_view_cache),
):
    try:
        ExpenseService(db, caller, cache).delete(expense_id)
    except NotFoundOrUnauthorized as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/api/dashboard/summary")
def api_dashboard_summary(
    request: Request,
    caller: Caller = Depends(authenticated),
    db: Session = Depends(get_db),
    cache: ViewCache = Depends(get_view_cache),
):
    window = window_from_request(request)
    summary = SummaryService(db, caller, cache).summarize(window)
    return summary_payload(summary)


@app.get("/api/dashboard")
def api_dashboard(
    request: Request,
    caller: Caller = Depends(authenticated),
    db: Session = Depends(get_db),
    cache: ViewCache = Depends(get_view_cache),
):
    window = window_from_request(request)
    summary = SummaryService(db, caller, cache).summarize(window)
    recent = ExpenseService(db, caller, cache).recent(window, limit=5)
    average = round(summary.total / summary.count, 2) if summary.count else 0.0
    return {
        "period": window.slug,
        "start": window.start.isoformat(),
        "end": window.end.isoformat(),
        "summary": summary_payload(summary),
        "average": average,
        "recent": [item.model_dump(mode="json") for item in recent],
    }


def main():
    """Serve the app with a single worker.

    view_cache lives in process memory, so extra workers would serve views
    that another worker's writes have made stale, for up to the cache TTL.
    """
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
