"""Rasterize PDF pages into PNG backgrounds."""
import logging

import fitz  # PyMuPDF

from studio.errors import PdfImportError

logger = logging.getLogger(__name__)

PDF_RENDER_SCALE = 1.5
MAX_PDF_PAGES = 60


def render_pdf_pages(pdf_bytes: bytes, scale: float = PDF_RENDER_SCALE) -> list[bytes]:
    """Render every page to PNG bytes.

    Either every page renders or ``PdfImportError`` is raised; callers never
    see a partial list.
    """
    if not pdf_bytes:
        raise PdfImportError("The PDF file is empty.")
    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as exc:
        raise PdfImportError(f"Could not open PDF: {exc}") from exc
    try:
        if doc.page_count == 0:
            raise PdfImportError("The PDF has no pages.")
        if doc.page_count > MAX_PDF_PAGES:
            raise PdfImportError(f"The PDF has more than {MAX_PDF_PAGES} pages.")
        images = []
        for page_idx in range(doc.page_count):
            page = doc.load_page(page_idx)
            pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
            images.append(pix.tobytes("png"))
    except PdfImportError:
        raise
    except Exception as exc:
        raise PdfImportError(f"Could not render PDF page: {exc}") from exc
    finally:
        doc.close()
    logger.debug("Rendered %d PDF pages", len(images))
    return images
