"""
Shape store rows into the public search result schema.
"""

from __future__ import annotations

from ..models import SearchResult
from ..storage import ResourceRecord, ResourceStatus, ScoredResource


ANONYMOUS_UPLOADER = "Anonymous"
UNKNOWN_FILE_TYPE = "unknown"


def file_type_from_url(file_url: str) -> str:
    """Lower-cased suffix after the last dot, or ``unknown``."""
    if "." not in file_url:
        return UNKNOWN_FILE_TYPE
    suffix = file_url.rsplit(".", 1)[1].lower()
    return suffix or UNKNOWN_FILE_TYPE


def format_result(
    resource: ResourceRecord,
    *,
    similarity: float | None = None,
    uploader_name: str | None = None,
) -> SearchResult:
    uploader = (
        uploader_name
        if resource.uploader_id is not None and uploader_name
        else ANONYMOUS_UPLOADER
    )
    return SearchResult(
        id=resource.id,
        title=resource.title,
        description=resource.description or "",
        tags=list(resource.tags),
        uploader=uploader,
        upload_date=resource.created_at.isoformat(),
        file_type=file_type_from_url(resource.file_url),
        downloads=0,
        school=resource.school or "",
        program=resource.program or "",
        course_name=resource.course_name or "",
        resource_type=resource.resource_type or "",
        year_of_creation=resource.year_of_creation or 0,
        course_year=str(resource.course_year) if resource.course_year is not None else "",
        file_url=resource.file_url,
        status=ResourceStatus(resource.status).value,
        similarity=similarity,
    )


def format_hit(hit: ScoredResource) -> SearchResult:
    return format_result(
        hit.resource,
        similarity=hit.similarity,
        uploader_name=hit.uploader_name,
    )
