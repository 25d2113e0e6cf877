"""File-backed document store."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from docview.exceptions import DocumentFetchError
from docview.models import DocumentTranscription

logger = logging.getLogger(__name__)


def load_transcription(json_path: Path) -> DocumentTranscription:
    """Parse a document JSON file into page transcriptions."""
    json_path = Path(json_path)
    if not json_path.exists():
        raise DocumentFetchError(f"Transcription not found: {json_path}")
    try:
        raw = json.loads(json_path.read_text(encoding="utf-8"))
        return DocumentTranscription.model_validate(raw)
    except (json.JSONDecodeError, ValidationError) as e:
        raise DocumentFetchError(f"Invalid transcription JSON {json_path}: {e}") from e


class FileDocumentStore:
    """Serves transcriptions from ``<root>/<document_id>.json``.

    The title defaults to the document id unless a title mapping is given.
    """

    def __init__(self, root: Path, titles: Optional[dict[str, str]] = None):
        self.root = Path(root)
        self.titles = titles or {}

    def path_for(self, document_id: str) -> Path:
        return self.root / f"{document_id}.json"

    async def fetch(self, document_id: str) -> tuple[DocumentTranscription, str]:
        doc = load_transcription(self.path_for(document_id))
        title = self.titles.get(document_id, document_id)
        logger.info("Loaded %s: %d transcribed pages", document_id, len(doc))
        return doc, title
