"""
Load resources and users from a JSON export.

Expected layout::

    {
      "users": [{"id": "u1", "username": "alice"}],
      "resources": [{"id": "r1", "title": "...", "fileUrl": "uploads/a.pdf", ...}]
    }

Resource keys may be camelCase (as exported by the web app) or snake_case.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..storage import ResourceRecord, ResourceStatus, UserRecord


_KEY_ALIASES: dict[str, str] = {
    "fileUrl": "file_url",
    "createdAt": "created_at",
    "courseName": "course_name",
    "resourceType": "resource_type",
    "yearOfCreation": "year_of_creation",
    "courseYear": "course_year",
    "uploaderId": "uploader_id",
}


def load_export(path: str | Path) -> tuple[list[UserRecord], list[ResourceRecord]]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Export must be a JSON object with 'users' and 'resources'.")
    users = [_parse_user(item) for item in payload.get("users", [])]
    resources = [parse_resource(item) for item in payload.get("resources", [])]
    return users, resources


def parse_resource(raw: dict[str, Any]) -> ResourceRecord:
    data = {_KEY_ALIASES.get(key, key): value for key, value in raw.items()}
    for required in ("id", "title", "file_url"):
        if not data.get(required):
            raise ValueError(f"Resource is missing required field {required!r}: {raw!r}")

    created_raw = data.get("created_at")
    created_at = (
        datetime.fromisoformat(str(created_raw).replace("Z", "+00:00"))
        if created_raw
        else datetime.now()
    )
    # Stored timestamps are naive UTC.
    if created_at.tzinfo is not None:
        created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)

    tags = data.get("tags") or []
    if not isinstance(tags, list):
        raise ValueError(f"Resource tags must be a list: {raw!r}")

    embedding = data.get("embedding")
    return ResourceRecord(
        id=str(data["id"]),
        title=str(data["title"]),
        file_url=str(data["file_url"]),
        created_at=created_at,
        status=ResourceStatus(str(data.get("status", ResourceStatus.PENDING.value)).upper()),
        description=data.get("description"),
        tags=[str(tag) for tag in tags],
        school=data.get("school"),
        program=data.get("program"),
        course_name=data.get("course_name"),
        resource_type=data.get("resource_type"),
        year_of_creation=_optional_int(data.get("year_of_creation")),
        course_year=_optional_int(data.get("course_year")),
        uploader_id=data.get("uploader_id"),
        embedding=[float(v) for v in embedding] if embedding else None,
    )


def _parse_user(raw: dict[str, Any]) -> UserRecord:
    if not raw.get("id") or not raw.get("username"):
        raise ValueError(f"User needs 'id' and 'username': {raw!r}")
    return UserRecord(id=str(raw["id"]), username=str(raw["username"]))


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)
