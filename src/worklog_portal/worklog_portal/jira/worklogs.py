"""Flatten Jira issues into worklog rows."""
from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional

from ..common.datetime_utils import utc_date_of


def extract_text(content: Iterable[Any]) -> str:
    """Collect the text of an Atlassian Document Format tree, space separated."""
    texts: list[str] = []

    def walk(node: Any) -> None:
        if not isinstance(node, dict):
            return
        if isinstance(node.get("text"), str):
            texts.append(node["text"])
        children = node.get("content")
        if isinstance(children, list):
            for child in children:
                walk(child)
        attrs = node.get("attrs")
        if isinstance(attrs, dict) and isinstance(attrs.get("text"), str):
            texts.append(attrs["text"])

    for node in content:
        walk(node)
    return " ".join(texts)


def extract_attachments(content: Iterable[Any]) -> list[dict]:
    found: list[dict] = []

    def walk(node: Any) -> None:
        if not isinstance(node, dict):
            return
        attrs = node.get("attrs")
        if isinstance(attrs, dict):
            if isinstance(attrs.get("file"), dict):
                found.append({"type": "jira-file", "data": attrs["file"]})
            if isinstance(attrs.get("media"), dict):
                found.append({"type": "jira-media", "data": attrs["media"]})
        if node.get("type") in ("media", "mediaGroup"):
            found.append({"type": "embedded-media", "data": node})
        children = node.get("content")
        if isinstance(children, list):
            for child in children:
                walk(child)

    for node in content:
        walk(node)
    return found


def comment_text(comment: Any) -> tuple[Optional[str], list[dict]]:
    """Plain text and embedded attachments of a worklog comment (string or ADF)."""
    if not comment:
        return None, []
    if isinstance(comment, str):
        return comment, []
    if isinstance(comment, dict):
        content = comment.get("content")
        if isinstance(content, list):
            return extract_text(content), extract_attachments(content)
        if isinstance(comment.get("text"), str):
            return comment["text"], []
    return None, []


def _worklog_attachments(worklog: dict) -> list[dict]:
    att = worklog.get("attachment")
    if isinstance(att, list):
        return [{"type": "jira-file", "data": a} for a in att if isinstance(a, dict) and "id" in a]
    if isinstance(att, dict):
        return [{"type": "jira-file", "data": att}]
    return []


def extract_worklogs(issues: Iterable[dict], start: date, end: date) -> list[dict]:
    """Worklogs of `issues` whose start falls (UTC date) within [start, end]."""
    rows: list[dict] = []
    for issue in issues or []:
        fields = issue.get("fields") or {}
        worklog_block = fields.get("worklog") or {}
        for worklog in worklog_block.get("worklogs") or []:
            started = worklog.get("started")
            if not isinstance(started, str):
                continue
            try:
                day = utc_date_of(started)
            except ValueError:
                continue
            if not (start <= day <= end):
                continue

            text, comment_attachments = comment_text(worklog.get("comment"))
            row = dict(worklog)
            row["issueKey"] = issue.get("key") or ""
            row["summary"] = fields.get("summary") if isinstance(fields.get("summary"), str) else ""
            row["comment"] = text
            row["attachments"] = _worklog_attachments(worklog) + comment_attachments
            rows.append(row)
    return rows
