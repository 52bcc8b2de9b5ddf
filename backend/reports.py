"""
Filtered task reports: rows with derived fields, summary statistics, CSV and
an HTML document suitable for an external PDF renderer.
"""
import html
import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from database import find_tasks
from errors import ValidationError
from models import (
    Priority,
    ReportFilters,
    ReportRow,
    ReportSummary,
    Task,
    TaskStatus,
    completion_time_minutes,
    is_overdue,
    round_half_up,
)

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Title",
    "Description",
    "Date",
    "Due Time",
    "Status",
    "Priority",
    "Category",
    "Tags",
    "Estimated Minutes",
    "Created At",
    "Completed At",
    "Completion Time (minutes)",
    "Is Overdue",
]

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_filters(params: Mapping[str, Any]) -> ReportFilters:
    """
    Validate raw filter parameters (query string values or a dict).

    "all" or an empty value leaves a dimension unfiltered; tags may be a list
    or a comma separated string. Raises ValidationError listing every bad field.
    """
    try:
        filters = ReportFilters.model_validate(dict(params))
    except PydanticValidationError as e:
        raise ValidationError([
            {"field": ".".join(str(part) for part in err["loc"]) or "filters", "message": err["msg"]}
            for err in e.errors()
        ]) from e
    if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
        raise ValidationError.single("date_to", "End date must be on or after start date")
    return filters


def get_filtered_tasks(owner_id: str, filters: ReportFilters) -> list[Task]:
    """Tasks matching the filters, newest date first, then high priority first.

    Soft-deleted tasks are left out unless filters.include_deleted is set.
    """
    return find_tasks(
        owner_id,
        scheduled_from=filters.date_from,
        scheduled_to=filters.date_to,
        status=filters.status,
        category=filters.category,
        priority=filters.priority,
        tags=filters.tags or None,
        include_deleted=filters.include_deleted,
    )


def build_report_rows(tasks: list[Task], now: datetime) -> list[ReportRow]:
    return [
        ReportRow(
            task=task,
            is_overdue=is_overdue(task, now),
            completion_time_minutes=completion_time_minutes(task),
        )
        for task in tasks
    ]


def get_report_rows(owner_id: str, filters: ReportFilters, now: datetime) -> list[ReportRow]:
    return build_report_rows(get_filtered_tasks(owner_id, filters), now)


def summarize_tasks(tasks: list[Task], now: datetime) -> ReportSummary:
    summary = ReportSummary(total=len(tasks))
    durations = []
    for task in tasks:
        if task.status == TaskStatus.COMPLETED:
            summary.completed += 1
        elif task.status == TaskStatus.PENDING:
            summary.pending += 1
        else:
            summary.cancelled += 1
        if is_overdue(task, now):
            summary.overdue += 1
        summary.by_priority[task.priority] += 1
        summary.by_category[task.category] = summary.by_category.get(task.category, 0) + 1

        minutes = completion_time_minutes(task)
        if minutes is not None:
            durations.append(minutes)

    if durations:
        summary.average_completion_time = int(round_half_up(sum(durations) / len(durations)))
    return summary


def get_report_summary(owner_id: str, filters: ReportFilters, now: datetime) -> ReportSummary:
    return summarize_tasks(get_filtered_tasks(owner_id, filters), now)


def _timestamp(value: Optional[datetime]) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value is not None else ""


def _optional(value) -> str:
    return "" if value is None else str(value)


def _csv_record(row: ReportRow) -> list[str]:
    task = row.task
    return [
        task.title,
        task.description,
        task.scheduled_date.isoformat(),
        task.due_time or "",
        task.status.value,
        task.priority.value,
        task.category.value,
        ", ".join(task.tags),
        _optional(task.estimated_minutes),
        _timestamp(task.created_at),
        _timestamp(task.completed_at),
        _optional(row.completion_time_minutes),
        "Yes" if row.is_overdue else "No",
    ]


def generate_csv(owner_id: str, filters: ReportFilters, now: datetime) -> str:
    """CSV export: a header row plus one line per matching task."""
    rows = get_report_rows(owner_id, filters, now)
    frame = pd.DataFrame([_csv_record(row) for row in rows], columns=CSV_COLUMNS, dtype=str)
    logger.info("CSV report for owner %s: %d tasks", owner_id, len(rows))
    return frame.to_csv(index=False, lineterminator="\n")


def report_filename(now: datetime, extension: str) -> str:
    return f"tasks-report-{now.strftime('%Y-%m-%d-%H-%M')}.{extension}"


REPORT_STYLE = """
    body { font-family: Arial, sans-serif; margin: 0; padding: 20px; color: #333; }
    .header { text-align: center; border-bottom: 2px solid #333; padding-bottom: 20px; margin-bottom: 30px; }
    .summary { display: flex; justify-content: space-between; margin-bottom: 30px; flex-wrap: wrap; }
    .summary-item { text-align: center; padding: 15px; background: #f8f9fa; border-radius: 8px; min-width: 120px; margin: 5px; }
    .summary-number { font-size: 24px; font-weight: bold; color: #007bff; }
    .summary-label { font-size: 12px; color: #666; margin-top: 5px; }
    table { width: 100%; border-collapse: collapse; margin-top: 20px; }
    th, td { border: 1px solid #ddd; padding: 8px; text-align: left; font-size: 12px; }
    th { background-color: #f8f9fa; font-weight: bold; }
    .status-completed { color: #28a745; }
    .status-pending { color: #ffc107; }
    .status-cancelled { color: #dc3545; }
    .priority-high { color: #dc3545; }
    .priority-medium { color: #ffc107; }
    .priority-low { color: #28a745; }
    .overdue { color: #dc3545; font-weight: bold; }
"""


def _long_date(value: date) -> str:
    return value.strftime("%b %d, %Y")


def _date_range_label(filters: ReportFilters) -> str:
    if filters.date_from and filters.date_to:
        return f"{_long_date(filters.date_from)} - {_long_date(filters.date_to)}"
    if filters.date_from:
        return f"From {_long_date(filters.date_from)}"
    if filters.date_to:
        return f"Until {_long_date(filters.date_to)}"
    return "All Time"


def _table_row(row: ReportRow) -> str:
    task = row.task
    e = html.escape
    overdue = ' class="overdue"' if row.is_overdue else ""
    return (
        f"<tr{overdue}>"
        f"<td>{e(task.title)}</td>"
        f"<td>{_long_date(task.scheduled_date)}</td>"
        f'<td class="status-{task.status.value}">{task.status.value.capitalize()}</td>'
        f'<td class="priority-{task.priority.value}">{task.priority.value.capitalize()}</td>'
        f"<td>{e(task.category.value.capitalize())}</td>"
        f"<td>{e(task.due_time or '-')}</td>"
        f"<td>{e(', '.join(task.tags) or '-')}</td>"
        "</tr>"
    )


def render_report_html(
    rows: list[ReportRow], summary: ReportSummary, filters: ReportFilters, now: datetime
) -> str:
    cards = [
        (summary.total, "Total Tasks"),
        (summary.completed, "Completed"),
        (summary.pending, "Pending"),
        (summary.cancelled, "Cancelled"),
        (summary.overdue, "Overdue"),
        (summary.average_completion_time, "Avg. Completion (min)"),
    ]
    summary_html = "\n".join(
        f'<div class="summary-item"><div class="summary-number">{value}</div>'
        f'<div class="summary-label">{label}</div></div>'
        for value, label in cards
    )
    priority_html = ", ".join(
        f"{p.value.capitalize()}: {summary.by_priority.get(p, 0)}" for p in reversed(list(Priority))
    )
    category_html = ", ".join(
        f"{html.escape(c.value.capitalize())}: {n}" for c, n in summary.by_category.items()
    ) or "-"
    body_rows = "\n".join(_table_row(row) for row in rows)

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Task Report</title>
<style>{REPORT_STYLE}</style>
</head>
<body>
<div class="header">
<h1>Task Report</h1>
<p>Generated on {now.strftime('%B %d, %Y at %H:%M')}</p>
<p>Date Range: {html.escape(_date_range_label(filters))}</p>
</div>
<div class="summary">
{summary_html}
</div>
<p>By priority: {priority_html}</p>
<p>By category: {category_html}</p>
<table>
<thead>
<tr><th>Title</th><th>Date</th><th>Status</th><th>Priority</th><th>Category</th><th>Due Time</th><th>Tags</th></tr>
</thead>
<tbody>
{body_rows}
</tbody>
</table>
</body>
</html>
"""


def generate_report_html(owner_id: str, filters: ReportFilters, now: datetime) -> str:
    """Self-contained HTML report; PDF conversion happens outside this service."""
    tasks = get_filtered_tasks(owner_id, filters)
    rows = build_report_rows(tasks, now)
    return render_report_html(rows, summarize_tasks(tasks, now), filters, now)
