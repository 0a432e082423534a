"""
rasterizer.py

Turns document bytes into an ordered sequence of page images.

PDFs are rendered page by page with pdf2image (poppler) at a fixed
upscale over the nominal 72 DPI page size. Single raster images are
decoded with Pillow and passed through as a one-page document.

Opening the document happens eagerly so a corrupt file fails at
``rasterize()``; page rendering is lazy and happens on iteration.
"""

import io
import logging
from typing import Callable, Iterator, Optional

from PIL import Image

from . import config
from .errors import RasterizationError
from .schemas import RasterPage

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


class RasterizedDocument:
    """
    A finite, re-iterable sequence of RasterPage objects.

    Each iteration renders the pages again; nothing is cached between
    passes, so page buffers are released once the consumer drops them.
    """

    def __init__(self, page_count: int, render_page: Callable[[int], Image.Image]):
        self.page_count = page_count
        self._render_page = render_page

    def __len__(self) -> int:
        return self.page_count

    def __iter__(self) -> Iterator[RasterPage]:
        for page_index in range(1, self.page_count + 1):
            image = self._render_page(page_index)
            yield RasterPage(page_index=page_index, image=image)


def rasterize(
    file_bytes: bytes,
    media_type: str,
    scale: Optional[float] = None,
) -> RasterizedDocument:
    """
    Open a document and prepare its pages for recognition.

    Args:
        file_bytes: Raw file contents.
        media_type: Declared media type, e.g. "application/pdf" or "image/png".
        scale: Upscale factor over nominal PDF resolution.
            Override config RASTER_SCALE.

    Returns:
        RasterizedDocument yielding pages in document order.

    Raises:
        RasterizationError: If the document cannot be opened, or (during
            iteration) if a page cannot be rendered.
    """
    if scale is None:
        scale = config.RASTER_SCALE
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")

    kind = normalize_media_type(media_type)

    if kind == PDF_MEDIA_TYPE:
        dpi = int(round(config.PDF_POINTS_PER_INCH * scale))
        page_count = _pdf_page_count(file_bytes)
        logger.info("Opened PDF: %d page(s), rendering at %d DPI", page_count, dpi)
        return RasterizedDocument(
            page_count, lambda page_index: _render_pdf_page(file_bytes, page_index, dpi)
        )

    if kind.startswith("image/"):
        image = _decode_image(file_bytes)
        logger.info("Opened image: %dx%d", image.width, image.height)
        return RasterizedDocument(1, lambda page_index: image)

    raise RasterizationError(f"Unsupported media type: '{media_type}'")


def count_pages(file_bytes: bytes, media_type: str) -> int:
    """Return the number of pages without rendering any of them."""
    kind = normalize_media_type(media_type)
    if kind == PDF_MEDIA_TYPE:
        return _pdf_page_count(file_bytes)
    if kind.startswith("image/"):
        return 1
    raise RasterizationError(f"Unsupported media type: '{media_type}'")


def normalize_media_type(media_type: str) -> str:
    """Lower-case a media type and drop any parameters ("; charset=...")."""
    return (media_type or "").split(";", 1)[0].strip().lower()


def _pdf_page_count(file_bytes: bytes) -> int:
    from pdf2image import pdfinfo_from_bytes

    try:
        info = pdfinfo_from_bytes(file_bytes)
        page_count = int(info["Pages"])
    except Exception as e:
        raise RasterizationError(f"Failed to open PDF: {e}") from e

    if page_count < 1:
        raise RasterizationError("PDF has no pages")
    return page_count


def _render_pdf_page(file_bytes: bytes, page_index: int, dpi: int) -> Image.Image:
    from pdf2image import convert_from_bytes

    logger.debug("Rendering PDF page %d at %d DPI", page_index, dpi)
    try:
        images = convert_from_bytes(
            file_bytes, dpi=dpi, first_page=page_index, last_page=page_index
        )
    except Exception as e:
        raise RasterizationError(
            f"Failed to render page {page_index}: {e}", page_index=page_index
        ) from e

    if len(images) != 1:
        raise RasterizationError(
            f"Page {page_index} rendered to {len(images)} images",
            page_index=page_index,
        )
    return images[0].convert("RGB")


def _decode_image(file_bytes: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(file_bytes))
        img.load()
        return img.convert("RGB")
    except Exception as e:
        raise RasterizationError(f"Failed to decode image: {e}") from e
