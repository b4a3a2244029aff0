import fitz
import pytest


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary school database path for tests."""
    return str(tmp_path / "school-db.json")


@pytest.fixture
def tmp_progress(tmp_path):
    """Provide a temporary quiz progress path for tests."""
    return str(tmp_path / "bible-progress.json")


@pytest.fixture
def make_pdf():
    """Build an in-memory PDF with the requested number of pages."""
    def _make(pages: int = 2) -> bytes:
        doc = fitz.open()
        for i in range(pages):
            page = doc.new_page(width=300, height=200)
            page.insert_text((40, 100), f"Worksheet page {i + 1}")
        data = doc.tobytes()
        doc.close()
        return data
    return _make
