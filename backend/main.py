from contextlib import asynccontextmanager
from datetime import datetime
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response

import analytics
import config
import reports
import rewards
from errors import NotFoundError, StoreError, ValidationError
from models import (
    CategoryBreakdown,
    CompletionRatePoint,
    DashboardData,
    KPIs,
    MonthlyPoint,
    PriorityBreakdown,
    ProductivityInsights,
    ReportFilters,
    ReportRow,
    ReportSummary,
    Task,
    TaskCreate,
    WeeklyPoint,
)
from database import (
    init_db,
    find_tasks,
    create_task_db,
    complete_task_db,
    cancel_task_db,
    reset_task_db,
    delete_task_db,
    restore_task_db,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    init_db()
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(_request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.errors})


@app.exception_handler(NotFoundError)
async def not_found_handler(_request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(_request: Request, exc: StoreError):
    logger.error("Store failure: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Task store unavailable"})


def current_owner(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Owner identity as asserted by the authentication layer in front of this service."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id


def current_time() -> datetime:
    """Reference time for every computation of a request; overridden in tests."""
    return datetime.now()


def report_filters(
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[str] = None,
    tags: Optional[str] = None,
    include_deleted: Optional[str] = None,
) -> ReportFilters:
    return reports.parse_filters({
        "date_from": date_from,
        "date_to": date_to,
        "status": status,
        "category": category,
        "priority": priority,
        "tags": tags,
        "include_deleted": include_deleted,
    })


# Dashboard

@app.get("/dashboard")
async def get_dashboard(
    owner_id: str = Depends(current_owner), now: datetime = Depends(current_time)
) -> DashboardData:
    return await analytics.get_dashboard_data(owner_id, now)


@app.get("/dashboard/completion-rate-trend")
def get_completion_rate_trend(
    days: int = Query(default=config.DEFAULT_TREND_DAYS),
    owner_id: str = Depends(current_owner),
    now: datetime = Depends(current_time),
) -> list[CompletionRatePoint]:
    return analytics.get_completion_rate_trend(owner_id, now, days)


@app.get("/dashboard/weekly-data")
def get_weekly_data(
    weeks: int = Query(default=config.DEFAULT_TREND_WEEKS),
    owner_id: str = Depends(current_owner),
    now: datetime = Depends(current_time),
) -> list[WeeklyPoint]:
    return analytics.get_weekly_created_vs_completed(owner_id, now, weeks)


@app.get("/dashboard/category-breakdown")
def get_category_breakdown(
    days: int = Query(default=config.DEFAULT_TREND_DAYS),
    owner_id: str = Depends(current_owner),
    now: datetime = Depends(current_time),
) -> list[CategoryBreakdown]:
    return analytics.get_category_breakdown(owner_id, now, days)


@app.get("/dashboard/priority-breakdown")
def get_priority_breakdown(
    days: int = Query(default=config.DEFAULT_TREND_DAYS),
    owner_id: str = Depends(current_owner),
    now: datetime = Depends(current_time),
) -> list[PriorityBreakdown]:
    return analytics.get_priority_breakdown(owner_id, now, days)


@app.get("/dashboard/kpis")
async def get_kpis(
    owner_id: str = Depends(current_owner), now: datetime = Depends(current_time)
) -> KPIs:
    return await analytics.get_kpis_async(owner_id, now)


@app.get("/dashboard/monthly-trend")
def get_monthly_trend(
    months: int = Query(default=config.DEFAULT_TREND_MONTHS),
    owner_id: str = Depends(current_owner),
    now: datetime = Depends(current_time),
) -> list[MonthlyPoint]:
    return analytics.get_monthly_trend(owner_id, now, months)


@app.get("/dashboard/today")
def get_today(
    owner_id: str = Depends(current_owner), now: datetime = Depends(current_time)
):
    return {
        "stats": analytics.get_today_stats(owner_id, now),
        "productivity_score": analytics.get_productivity_score(owner_id, now),
    }


@app.get("/dashboard/insights")
def get_insights(
    owner_id: str = Depends(current_owner), now: datetime = Depends(current_time)
) -> ProductivityInsights:
    return analytics.get_productivity_insights(owner_id, now)


# Reports

@app.get("/reports/tasks")
def get_report_tasks(
    filters: ReportFilters = Depends(report_filters),
    owner_id: str = Depends(current_owner),
    now: datetime = Depends(current_time),
) -> list[ReportRow]:
    return reports.get_report_rows(owner_id, filters, now)


@app.get("/reports/summary")
def get_report_summary(
    filters: ReportFilters = Depends(report_filters),
    owner_id: str = Depends(current_owner),
    now: datetime = Depends(current_time),
) -> ReportSummary:
    return reports.get_report_summary(owner_id, filters, now)


@app.get("/reports/export.csv")
def export_csv(
    filters: ReportFilters = Depends(report_filters),
    owner_id: str = Depends(current_owner),
    now: datetime = Depends(current_time),
) -> Response:
    content = reports.generate_csv(owner_id, filters, now)
    filename = reports.report_filename(now, "csv")
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/reports/export.html")
def export_html(
    filters: ReportFilters = Depends(report_filters),
    owner_id: str = Depends(current_owner),
    now: datetime = Depends(current_time),
) -> HTMLResponse:
    return HTMLResponse(content=reports.generate_report_html(owner_id, filters, now))


# Tasks (write path of the task-management side)

@app.get("/tasks")
def get_tasks(owner_id: str = Depends(current_owner)) -> list[Task]:
    return find_tasks(owner_id)


@app.post("/tasks")
def create_task(task_data: TaskCreate, owner_id: str = Depends(current_owner)):
    task = create_task_db(owner_id, task_data)
    return {"task": task, "motivational_quote": rewards.get_random_quote("taskCreated")}


@app.post("/tasks/{task_id}/complete")
def complete_task(
    task_id: str, owner_id: str = Depends(current_owner), now: datetime = Depends(current_time)
):
    task = complete_task_db(owner_id, task_id, completed_at=now)
    return {"task": task, "rewards": rewards.build_completion_rewards(owner_id, now)}


@app.post("/tasks/{task_id}/cancel")
def cancel_task(task_id: str, owner_id: str = Depends(current_owner)):
    task = cancel_task_db(owner_id, task_id)
    return {"task": task, "motivational_quote": rewards.get_random_quote("statusChange")}


@app.post("/tasks/{task_id}/reset")
def reset_task(task_id: str, owner_id: str = Depends(current_owner)):
    task = reset_task_db(owner_id, task_id)
    return {"task": task, "motivational_quote": rewards.get_random_quote("taskReset")}


@app.delete("/tasks/{task_id}")
def delete_task(
    task_id: str, owner_id: str = Depends(current_owner), now: datetime = Depends(current_time)
) -> dict:
    delete_task_db(owner_id, task_id, deleted_at=now)
    return {"status": "deleted"}


@app.post("/tasks/{task_id}/restore")
def restore_task(task_id: str, owner_id: str = Depends(current_owner)) -> Task:
    return restore_task_db(owner_id, task_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
