"""Data file ingest and the derived views served from uploaded JSON/CSV files."""

from __future__ import annotations

import base64
import io
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy.orm import Session

from .. import models, schemas, storage
from ..auth import Identity
from ..enrichment import best_effort
from ..errors import Forbidden, NotFound, ServerError, ValidationError
from . import accounts

logger = logging.getLogger(__name__)

# purpose: register uploaded files, derive metadata and re-read them for exports
# status: active
# depends_on: qorscend.storage, pandas

SUPPORTED_TYPES = ("json", "csv")
EXPORT_FORMATS = ("csv", "xlsx", "json", "png")
PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR4nGNgYAAAAAMAASsJTYQAAAAASUVORK5CYII="
)


@dataclass
class FileMetadata:
    record_count: int = 0
    columns: list[str] = field(default_factory=list)
    data_types: dict[str, str] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {"recordCount": self.record_count, "columns": self.columns, "dataTypes": self.data_types}


@dataclass
class ExportPayload:
    content: bytes
    media_type: str
    filename: str


def _js_type(value: Any) -> str:
    """Type names as the dashboard reports them for JSON values."""

    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def file_type_for(name: str) -> str | None:
    ext = os.path.splitext(name or "")[1].lower().lstrip(".")
    return ext if ext in SUPPORTED_TYPES else None


def _read_csv(raw: str) -> pd.DataFrame:
    if not raw.strip():
        return pd.DataFrame()
    # short rows pad with ""; trailing delimiters must not shift values into an index
    frame = pd.read_csv(
        io.StringIO(raw),
        dtype=str,
        index_col=False,
        keep_default_na=False,
        skipinitialspace=True,
        skip_blank_lines=True,
    )
    return frame.fillna("")


def parse_rows(raw: str, file_type: str) -> list[dict[str, Any]]:
    """Parse file content into a list of records. Raises ValueError on malformed input."""

    if file_type == "json":
        parsed = json.loads(raw)
        return parsed if isinstance(parsed, list) else [parsed]
    if file_type == "csv":
        frame = _read_csv(raw)
        frame.columns = [str(c).strip() for c in frame.columns]
        return [{k: str(v).strip() for k, v in row.items()} for row in frame.to_dict(orient="records")]
    return []


def describe_rows(rows: list[Any], file_type: str) -> FileMetadata:
    first = rows[0] if rows and isinstance(rows[0], dict) else {}
    data_types = {k: _js_type(v) for k, v in first.items()} if file_type == "json" else {}
    return FileMetadata(record_count=len(rows), columns=list(first.keys()), data_types=data_types)


def derive_metadata(raw: str, file_type: str) -> FileMetadata:
    if file_type == "csv":
        frame = _read_csv(raw)
        return FileMetadata(record_count=len(frame), columns=[str(c).strip() for c in frame.columns])
    return describe_rows(parse_rows(raw, file_type), file_type)


def _split_tags(tags: Any) -> list[str]:
    if not tags:
        return []
    if isinstance(tags, list):
        return [str(t).strip() for t in tags if str(t).strip()]
    return [t.strip() for t in str(tags).split(",") if t.strip()]


def register_upload(
    db: Session, identity: Optional[Identity], payload: schemas.DataFileRegister
) -> models.DataFile:
    """Record a file previously written by the raw upload endpoint."""

    if not payload.filename or not payload.original_name:
        raise ValidationError("filename and originalName are required")
    file_type = file_type_for(payload.original_name) or file_type_for(payload.filename)
    if file_type is None:
        raise ValidationError("Only JSON and CSV files are supported")
    located = storage.locate_upload(payload.filename)
    if located is None:
        raise NotFound("File not found in uploads directory")
    path, size = located

    parsed = best_effort("metadata parse", lambda: derive_metadata(storage.load_text(path), file_type))
    metadata = parsed.value if parsed.ok else FileMetadata()

    record = models.DataFile(
        user_id=identity.id if identity else None,
        filename=os.path.basename(payload.filename),
        original_name=payload.original_name,
        file_type=file_type,
        file_size=payload.size if payload.size is not None else size,
        file_path=path,
        status="uploaded",
        meta=metadata.as_dict(),
        description=payload.description or "",
        tags=_split_tags(payload.tags),
    )
    db.add(record)
    db.flush()
    logger.info("registered data file %s (%s)", record.id, file_type)
    return record


def record_upload_stats(db: Session, identity: Optional[Identity]) -> None:
    """Bump the uploader's processed-files counter once the record is committed."""

    if identity is not None:
        best_effort(
            "data file stats update", accounts.increment_stat, db, identity.id, "dataFilesProcessed", db=db
        )


def list_files(
    db: Session,
    user_id: UUID,
    *,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    file_type: str | None = None,
) -> tuple[list[models.DataFile], schemas.Pagination]:
    query = db.query(models.DataFile).filter(models.DataFile.user_id == user_id)
    if status:
        query = query.filter(models.DataFile.status == status)
    if file_type:
        query = query.filter(models.DataFile.file_type == file_type)
    total = query.count()
    files = (
        query.order_by(models.DataFile.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return files, schemas.Pagination.of(page, limit, total)


def get_file(db: Session, identity: Optional[Identity], file_id: UUID) -> models.DataFile:
    record = db.get(models.DataFile, file_id)
    if record is None:
        raise NotFound("File not found")
    if record.user_id is not None and (identity is None or not identity.owns(record.user_id)):
        raise Forbidden("Not authorized to access this file")
    return record


def read_content(record: models.DataFile) -> str:
    try:
        return storage.load_text(record.file_path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("failed to read %s: %s", record.file_path, exc)
        raise ServerError("Failed to read file content") from exc


def load_view(record: models.DataFile) -> tuple[list[Any], FileMetadata]:
    """Re-read and re-parse the file; parse failures yield empty data."""

    raw = read_content(record)
    parsed = best_effort("file parse", parse_rows, raw, record.file_type)
    rows = parsed.value if parsed.ok else []
    return rows, describe_rows(rows, record.file_type)


def process(record: models.DataFile, options: list[Any]) -> dict[str, Any]:
    rows, metadata = load_view(record)
    return {
        "processedData": rows,
        "metadata": metadata.as_dict(),
        "processingSteps": len(options),
    }


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _to_csv(rows: list[Any]) -> str:
    records = [row for row in rows if isinstance(row, dict)]
    if not records:
        return ""
    headers = list(dict.fromkeys(key for row in records for key in row))
    cells = [[_cell_text(row.get(key)) for key in headers] for row in records]
    frame = pd.DataFrame(cells, columns=headers, dtype=object)
    return frame.to_csv(index=False, lineterminator="\n").rstrip("\n")


def column_statistics(rows: list[Any]) -> dict[str, dict[str, float]]:
    records = [row for row in rows if isinstance(row, dict)]
    if not records:
        return {}
    frame = pd.DataFrame.from_records(records)
    stats: dict[str, dict[str, float]] = {}
    for key in records[0].keys():
        values = pd.to_numeric(frame[key], errors="coerce").dropna()
        if values.empty:
            continue
        ordered = values.sort_values().reset_index(drop=True)
        stats[key] = {
            "count": int(len(ordered)),
            "mean": float(ordered.mean()),
            "median": float(ordered[len(ordered) // 2]),
            "min": float(ordered.iloc[0]),
            "max": float(ordered.iloc[-1]),
        }
    return stats


def _export_stem(record: models.DataFile) -> str:
    return os.path.splitext(record.original_name or record.filename or "export")[0]


def export(record: models.DataFile, fmt: str | None, options: list[str]) -> ExportPayload:
    fmt = (fmt or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported format: {fmt}")
    stem = _export_stem(record)
    if fmt == "png":
        return ExportPayload(PLACEHOLDER_PNG, "image/png", f"{stem}.png")

    raw = read_content(record)
    try:
        rows = parse_rows(raw, record.file_type)
    except ValueError as exc:
        raise ServerError("Failed to parse file content") from exc

    if fmt in ("csv", "xlsx"):
        return ExportPayload(_to_csv(rows).encode("utf-8"), "text/csv", f"{stem}.{fmt}")

    payload: dict[str, Any] = {"data": rows}
    if "include_metadata" in options:
        meta = describe_rows(rows, record.file_type)
        payload["metadata"] = {"recordCount": meta.record_count, "columns": meta.columns}
    if "include_statistics" in options:
        payload["statistics"] = column_statistics(rows)
    return ExportPayload(json.dumps(payload, indent=2).encode("utf-8"), "application/json", f"{stem}.json")


def chart_descriptor(record: models.DataFile, request: schemas.ChartExportRequest) -> dict[str, Any]:
    return {
        "chartType": request.chart_type,
        "xAxis": request.x_axis,
        "yAxis": request.y_axis,
        "fileId": str(record.id),
        "generatedAt": datetime.now(timezone.utc).isoformat(),
    }
