"""Ingestion - load a transcription JSON into the documents/lines tables."""

import json
import logging
from pathlib import Path
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from docview.config import settings
from docview.models import DocumentTranscription

from .repositories import DocumentRepository, LineRepository

logger = logging.getLogger(__name__)


def build_line_rows(doc: DocumentTranscription, document_id: UUID) -> list[dict]:
    """Flatten pages into line rows, in page order.

    Lines whose bbox is missing, malformed or has a non-finite coordinate
    are skipped. Coordinates are rounded to integers for the integer-array column.
    """
    rows = []
    for page_key in doc.page_keys:
        for line in doc[page_key].iter_lines():
            bbox = line.finite_bbox()
            if bbox is None:
                logger.debug("Skipping line %s/%s with bbox %r", page_key, line.uid, line.bbox)
                continue
            rows.append(
                {
                    "document_id": document_id,
                    "page_key": page_key,
                    "uid": line.uid,
                    "bbox": [round(v) for v in bbox],
                    "original_text": line.transcription or "",
                }
            )
    return rows


async def ingest_document(
    session: AsyncSession,
    json_path: Path,
    pdf_url: str,
    chunk_size: Optional[int] = None,
) -> UUID:
    """Create a document row and insert its lines.

    Nothing is committed here. Any failure propagates, and the caller's
    session scope rolls back the document row together with its lines.

    Args:
        session: Open database session
        json_path: Local transcription JSON
        pdf_url: PDF location in storage; its stem becomes the title
        chunk_size: Lines per insert batch (default from settings)

    Returns:
        The new document id

    Raises:
        ValueError: the JSON contains no insertable lines
    """
    json_path = Path(json_path)
    chunk_size = chunk_size or settings.ingest_chunk_size
    doc = DocumentTranscription.model_validate(json.loads(json_path.read_text(encoding="utf-8")))

    documents = DocumentRepository(session)
    orm_doc = await documents.create(
        title=Path(pdf_url).stem,
        pdf_url=pdf_url,
        json_url=json_path.name,
    )
    document_id = orm_doc.id

    rows = build_line_rows(doc, document_id)
    if not rows:
        raise ValueError("No lines found to insert.")

    lines = LineRepository(session)
    for start in range(0, len(rows), chunk_size):
        chunk = rows[start : start + chunk_size]
        await lines.create_batch(chunk)
        logger.info("Inserted lines %d-%d / %d", start + 1, start + len(chunk), len(rows))

    logger.info("Ingested %s as %s", json_path.name, document_id)
    return document_id
