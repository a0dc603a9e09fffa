"""
Build the text that a resource embedding is generated from.
"""

from __future__ import annotations

from ..storage import ResourceRecord


def embedded_fields(resource: ResourceRecord) -> tuple[object, ...]:
    """Values that feed the embedding text, in their fixed order."""
    return (
        resource.title,
        resource.description,
        resource.course_name,
        resource.resource_type,
        resource.school,
        resource.program,
        tuple(resource.tags),
        resource.year_of_creation,
    )


def build_resource_text(resource: ResourceRecord) -> str:
    """
    Concatenate title, description, course name, resource type, school,
    program, tags and year of creation. Empty parts are skipped.
    """
    parts: list[str] = [
        resource.title or "",
        resource.description or "",
        resource.course_name or "",
        resource.resource_type or "",
        resource.school or "",
        resource.program or "",
        *(resource.tags or []),
        str(resource.year_of_creation) if resource.year_of_creation is not None else "",
    ]
    non_empty = [part.strip() for part in parts if part and part.strip()]
    if not non_empty:
        raise ValueError("Resource must have at least one non-empty field")
    return " ".join(non_empty)
