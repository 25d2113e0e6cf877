"""Page rasterization with PyMuPDF (fitz)."""

import asyncio
from pathlib import Path

import fitz  # PyMuPDF

from docview.exceptions import PageOutOfRangeError, RenderError


class PyMuPDFRasterSource:
    """Renders pages of a PDF to pixmaps.

    Rendering runs on the event loop thread. Each render yields to the loop
    once before rasterizing so a superseding request can cancel it.
    """

    def __init__(self, pdf_path: Path):
        pdf_path = Path(pdf_path)
        if not pdf_path.exists():
            raise FileNotFoundError(f"PDF not found: {pdf_path}")
        self.pdf_path = pdf_path
        self._doc = fitz.open(str(pdf_path))

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def _page(self, page_number: int):
        if page_number < 1 or page_number > self.page_count:
            raise PageOutOfRangeError(page_number, self.page_count)
        return self._doc[page_number - 1]

    def native_size(self, page_number: int) -> tuple[float, float]:
        rect = self._page(page_number).rect
        return rect.width, rect.height

    async def render(self, page_number: int, scale: float, device_pixel_ratio: float = 1.0):
        """Render a page at ``scale`` (CSS) times ``device_pixel_ratio``.

        Returns:
            fitz.Pixmap with the page raster (no alpha)
        """
        await asyncio.sleep(0)
        page = self._page(page_number)

        zoom = scale * device_pixel_ratio
        matrix = fitz.Matrix(zoom, zoom)
        try:
            return page.get_pixmap(matrix=matrix, alpha=False)
        except RuntimeError as e:
            raise RenderError(f"Failed to render page {page_number}: {e}") from e

    def close(self) -> None:
        self._doc.close()
