from __future__ import annotations

import csv
import io
import re
from typing import Iterable, Sequence

import pandas as pd

from ..common.datetime_utils import utc_date_of
from .aggregation import worklog_hours

EXPORT_COLUMNS = ["date", "developer", "issue", "summary", "hours", "comment"]

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DEFAULT_POSITION = "Software Engineer"

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Excel limits: 31 chars, none of []:*?/\
_SHEET_NAME_BAD = re.compile(r"[\[\]:*?/\\]")
_SHEET_NAME_MAX = 31


def _developer(worklog: dict) -> str:
    author = worklog.get("author") or {}
    return author.get("displayName") or author.get("accountId") or ""


def export_rows(worklogs: Iterable[dict]) -> list[dict]:
    rows = []
    for w in worklogs:
        rows.append(
            {
                "date": utc_date_of(w["started"]).isoformat() if w.get("started") else "",
                "developer": _developer(w),
                "issue": w.get("issueKey") or "",
                "summary": w.get("summary") or "",
                "hours": round(worklog_hours(w), 2),
                "comment": w.get("comment") or "",
            }
        )
    rows.sort(key=lambda r: (r["date"], r["developer"], r["issue"]))
    return rows


def summary_rows(worklogs: Sequence[dict]) -> list[dict]:
    """Team totals: hours, developers, issues and worklog entries."""
    total_hours = sum(worklog_hours(w) for w in worklogs)
    return [
        {"Metric": "Total Hours", "Value": round(total_hours, 2)},
        {"Metric": "Total Developers", "Value": len({_developer(w) for w in worklogs})},
        {"Metric": "Total Issues", "Value": len({w.get("issueKey") for w in worklogs if w.get("issueKey")})},
        {"Metric": "Total Worklog Entries", "Value": len(worklogs)},
    ]


def group_by_developer(worklogs: Sequence[dict]) -> list[tuple[str, list[dict]]]:
    """(developer, worklogs) pairs, most hours first."""
    groups: dict[str, list[dict]] = {}
    for w in worklogs:
        groups.setdefault(_developer(w), []).append(w)
    return sorted(
        groups.items(),
        key=lambda item: (-sum(worklog_hours(w) for w in item[1]), item[0]),
    )


def developer_rows(worklogs: Sequence[dict]) -> list[dict]:
    return [
        {
            "Developer": name,
            "Position": DEFAULT_POSITION,
            "Total Hours": round(sum(worklog_hours(w) for w in items), 2),
            "Worklog Entries": len(items),
        }
        for name, items in group_by_developer(worklogs)
    ]


def individual_rows(worklogs: Sequence[dict]) -> list[dict]:
    """One developer's worklogs, grouped by weekday (Monday first), oldest first within a day."""
    dated = sorted(
        (w for w in worklogs if w.get("started")),
        key=lambda w: w["started"],
    )
    by_day: dict[str, list[dict]] = {day: [] for day in WEEKDAYS}
    for w in dated:
        day = utc_date_of(w["started"])
        by_day[WEEKDAYS[day.weekday()]].append(
            {
                "Day": WEEKDAYS[day.weekday()],
                "Date": day.isoformat(),
                "Issue": w.get("issueKey") or "",
                "Task": w.get("summary") or "",
                "Achievement": w.get("comment") or "No comment",
                "Hours": round(worklog_hours(w), 2),
            }
        )
    return [row for day in WEEKDAYS for row in by_day[day]]


def _sheet_name(name: str, used: set[str]) -> str:
    base = _SHEET_NAME_BAD.sub("", name).strip()[:_SHEET_NAME_MAX] or "Developer"
    candidate, n = base, 2
    while candidate.lower() in used:
        suffix = f" ({n})"
        candidate = base[: _SHEET_NAME_MAX - len(suffix)] + suffix
        n += 1
    used.add(candidate.lower())
    return candidate


def to_csv_bytes(rows: list[dict]) -> bytes:
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    # BOM so Excel opens UTF-8 correctly
    return out.getvalue().encode("utf-8-sig")


def to_xlsx_bytes(worklogs: Sequence[dict], *, include_individual_reports: bool = False) -> bytes:
    """Team report workbook: Summary, Developers and Worklogs sheets.

    With `include_individual_reports`, one extra sheet per developer lists
    their worklogs grouped by day.
    """
    worklogs = list(worklogs)
    df = pd.DataFrame(export_rows(worklogs), columns=EXPORT_COLUMNS)
    df.columns = ["Date", "Developer", "Issue", "Summary", "Hours", "Comment"]

    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        pd.DataFrame(summary_rows(worklogs), columns=["Metric", "Value"]).to_excel(
            writer, index=False, sheet_name="Summary"
        )
        pd.DataFrame(
            developer_rows(worklogs), columns=["Developer", "Position", "Total Hours", "Worklog Entries"]
        ).to_excel(writer, index=False, sheet_name="Developers")
        df.to_excel(writer, index=False, sheet_name="Worklogs")

        if include_individual_reports:
            used = {"summary", "developers", "worklogs"}
            for name, items in group_by_developer(worklogs):
                pd.DataFrame(
                    individual_rows(items), columns=["Day", "Date", "Issue", "Task", "Achievement", "Hours"]
                ).to_excel(writer, index=False, sheet_name=_sheet_name(name, used))
    return out.getvalue()
