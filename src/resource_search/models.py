from pydantic import BaseModel, ConfigDict, Field
from typing import Any


class SearchResult(BaseModel):
    """Public shape of a single search hit"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(description="Resource id")
    title: str = Field(description="Resource title")
    description: str = Field(description="Description, empty when missing")
    tags: list[str] = Field(description="Tags in stored order")
    uploader: str = Field(description="Uploader username or 'Anonymous'")
    upload_date: str = Field(alias="uploadDate", description="ISO-8601 creation time")
    file_type: str = Field(alias="fileType", description="Lower-cased file suffix")
    downloads: int = Field(default=0, description="Not tracked, always 0")
    school: str = Field(description="School, empty when missing")
    program: str = Field(description="Program, empty when missing")
    course_name: str = Field(alias="courseName", description="Course name, empty when missing")
    resource_type: str = Field(alias="resourceType", description="Resource type, empty when missing")
    year_of_creation: int = Field(alias="yearOfCreation", description="Year, 0 when missing")
    course_year: str = Field(alias="courseYear", description="Course year as text, empty when missing")
    file_url: str = Field(alias="fileUrl", description="Storage key of the file")
    status: str = Field(description="Moderation status")
    similarity: float | None = Field(
        default=None, description="Cosine similarity, semantic mode only"
    )

    def to_public_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
