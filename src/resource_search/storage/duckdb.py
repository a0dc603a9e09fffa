"""
DuckDB storage backend for resources, uploaders, and their embeddings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import duckdb

from ..errors import StoreError
from .base import ResourceRecord, ResourceStatus, ScoredResource, UserRecord


_LEXICAL_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "course_name",
    "school",
    "program",
    "resource_type",
)

_RESOURCE_COLUMNS = """
    r.id,
    r.title,
    r.description,
    r.tags,
    r.school,
    r.program,
    r.course_name,
    r.resource_type,
    r.year_of_creation,
    r.course_year,
    r.file_url,
    r.status,
    r.uploader_id,
    r.created_at
"""


class DuckDBStorage:
    """DuckDB-backed persistence for resources and users."""

    def __init__(
        self,
        db_path: str,
        *,
        read_only: bool = False,
        initialize: bool = True,
        connection: duckdb.DuckDBPyConnection | None = None,
    ) -> None:
        if db_path == ":memory:":
            self.db_path = db_path
        else:
            self.db_path = str(Path(db_path).expanduser().resolve())
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.read_only = read_only
        if connection is not None:
            self._conn = connection
        else:
            try:
                self._conn = duckdb.connect(self.db_path, read_only=read_only)
            except duckdb.Error as exc:
                raise StoreError(f"Failed to open resource store: {exc}") from exc
        if initialize and not read_only:
            self.initialize()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self._conn.close()

    def cursor(self) -> DuckDBStorage:
        """Return a storage view on a fresh cursor of the same database.

        Cursors are safe to use from another thread while this connection
        stays open.
        """
        return DuckDBStorage(
            self.db_path,
            read_only=self.read_only,
            initialize=False,
            connection=self._conn.cursor(),
        )

    def initialize(self) -> None:
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id VARCHAR PRIMARY KEY,
                username VARCHAR NOT NULL
            );
            """
        )
        # No primary key: DuckDB rewrites list-column updates as delete+insert,
        # which trips index constraints. upsert_resource keeps ids unique.
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS resources (
                id VARCHAR NOT NULL,
                title VARCHAR NOT NULL,
                description VARCHAR,
                tags VARCHAR[],
                school VARCHAR,
                program VARCHAR,
                course_name VARCHAR,
                resource_type VARCHAR,
                year_of_creation INTEGER,
                course_year INTEGER,
                file_url VARCHAR NOT NULL,
                status VARCHAR NOT NULL DEFAULT 'PENDING'
                    CHECK (status IN ('PENDING', 'APPROVED', 'REJECTED')),
                uploader_id VARCHAR,
                embedding DOUBLE[],
                created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
            );
            """
        )

    def upsert_user(self, user: UserRecord) -> None:
        self._execute(
            """
            INSERT INTO users (id, username)
            VALUES (?, ?)
            ON CONFLICT(id) DO UPDATE SET username = excluded.username
            """,
            [user.id, user.username],
        )

    def delete_user(self, *, user_id: str) -> None:
        self._execute("DELETE FROM users WHERE id = ?", [user_id])

    def upsert_resource(self, resource: ResourceRecord) -> None:
        self._execute("BEGIN TRANSACTION")
        try:
            self._execute("DELETE FROM resources WHERE id = ?", [resource.id])
            self._insert_resource(resource)
        except StoreError:
            self._conn.rollback()
            raise
        self._execute("COMMIT")

    def _insert_resource(self, resource: ResourceRecord) -> None:
        self._execute(
            """
            INSERT INTO resources (
                id, title, description, tags, school, program, course_name,
                resource_type, year_of_creation, course_year, file_url, status,
                uploader_id, embedding, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                resource.id,
                resource.title,
                resource.description,
                list(resource.tags),
                resource.school,
                resource.program,
                resource.course_name,
                resource.resource_type,
                resource.year_of_creation,
                resource.course_year,
                resource.file_url,
                ResourceStatus(resource.status).value,
                resource.uploader_id,
                list(resource.embedding) if resource.embedding is not None else None,
                resource.created_at,
            ],
        )

    def get_resource(self, *, resource_id: str) -> ResourceRecord | None:
        row = self._execute(
            f"""
            SELECT {_RESOURCE_COLUMNS}, r.embedding
            FROM resources r
            WHERE r.id = ?
            LIMIT 1
            """,
            [resource_id],
        ).fetchone()
        if row is None:
            return None
        embedding = row[14]
        return self._row_to_resource(
            row[:14],
            embedding=[float(v) for v in embedding] if embedding is not None else None,
        )

    def find_approved(self, *, query: str | None = None) -> list[ScoredResource]:
        sql = f"""
            SELECT {_RESOURCE_COLUMNS}, u.username
            FROM resources r
            LEFT JOIN users u ON u.id = r.uploader_id
            WHERE r.status = 'APPROVED'
        """
        params: list[Any] = []
        if query:
            clauses = [
                f"contains(lower(coalesce(r.{column}, '')), lower(?))"
                for column in _LEXICAL_FIELDS
            ]
            clauses.append("list_contains(coalesce(r.tags, []::VARCHAR[]), ?)")
            params.extend([query] * len(_LEXICAL_FIELDS))
            params.append(query)
            sql += "\n  AND (" + " OR ".join(clauses) + ")"
        sql += "\nORDER BY r.created_at DESC, r.id ASC"

        rows = self._execute(sql, params).fetchall()
        return [
            ScoredResource(
                resource=self._row_to_resource(row[:14]),
                uploader_name=str(row[14]) if row[14] is not None else None,
            )
            for row in rows
        ]

    def find_approved_by_vector_distance(
        self,
        *,
        query_embedding: list[float],
        max_results: int,
        min_similarity: float,
    ) -> list[ScoredResource]:
        sql = f"""
            SELECT * FROM (
                SELECT
                    {_RESOURCE_COLUMNS},
                    u.username,
                    list_cosine_similarity(r.embedding, ?::DOUBLE[]) AS similarity
                FROM resources r
                LEFT JOIN users u ON u.id = r.uploader_id
                WHERE r.status = 'APPROVED'
                  AND r.embedding IS NOT NULL
                  AND len(r.embedding) = ?
            ) scored
            WHERE isfinite(similarity)
              AND similarity > ?
            ORDER BY similarity DESC, id ASC
            LIMIT ?
        """
        params: list[Any] = [
            [float(v) for v in query_embedding],
            len(query_embedding),
            float(min_similarity),
            int(max_results),
        ]
        rows = self._execute(sql, params).fetchall()
        return [
            ScoredResource(
                resource=self._row_to_resource(row[:14]),
                uploader_name=str(row[14]) if row[14] is not None else None,
                similarity=float(row[15]),
            )
            for row in rows
        ]

    def store_resource_embedding(
        self, *, resource_id: str, embedding: list[float]
    ) -> None:
        self._execute(
            "UPDATE resources SET embedding = ? WHERE id = ?",
            [[float(v) for v in embedding], resource_id],
        )

    def clear_resource_embedding(self, *, resource_id: str) -> None:
        self._execute(
            "UPDATE resources SET embedding = NULL WHERE id = ?",
            [resource_id],
        )

    def list_resources_missing_embeddings(
        self, *, limit: int | None = None
    ) -> list[ResourceRecord]:
        sql = f"""
            SELECT {_RESOURCE_COLUMNS}
            FROM resources r
            WHERE r.embedding IS NULL
            ORDER BY r.created_at ASC, r.id ASC
        """
        params: list[Any] = []
        if limit is not None:
            sql += "\nLIMIT ?"
            params.append(max(limit, 0))
        rows = self._execute(sql, params).fetchall()
        return [self._row_to_resource(row) for row in rows]

    def count_resources(self, *, status: ResourceStatus | None = None) -> int:
        if status is None:
            row = self._execute("SELECT COUNT(*) FROM resources").fetchone()
        else:
            row = self._execute(
                "SELECT COUNT(*) FROM resources WHERE status = ?",
                [ResourceStatus(status).value],
            ).fetchone()
        return int(row[0]) if row else 0

    def _execute(
        self, sql: str, params: list[Any] | None = None
    ) -> duckdb.DuckDBPyConnection:
        try:
            if params is None:
                return self._conn.execute(sql)
            return self._conn.execute(sql, params)
        except duckdb.Error as exc:
            raise StoreError(f"Resource store query failed: {exc}") from exc

    @staticmethod
    def _row_to_resource(
        row: tuple[Any, ...],
        *,
        embedding: list[float] | None = None,
    ) -> ResourceRecord:
        return ResourceRecord(
            id=str(row[0]),
            title=str(row[1]),
            description=row[2],
            tags=[str(tag) for tag in row[3]] if row[3] is not None else [],
            school=row[4],
            program=row[5],
            course_name=row[6],
            resource_type=row[7],
            year_of_creation=int(row[8]) if row[8] is not None else None,
            course_year=int(row[9]) if row[9] is not None else None,
            file_url=str(row[10]),
            status=ResourceStatus(str(row[11])),
            uploader_id=row[12],
            created_at=row[13],
            embedding=embedding,
        )
