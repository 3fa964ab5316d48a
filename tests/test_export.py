from datetime import datetime

import pytest

from app.features.documents.export import SimplePdfRenderer, export_filename
from app.features.documents.models import A3Document, A3Section, DocumentStatus


AT = datetime(2025, 11, 18, 15, 30, 45)


@pytest.mark.parametrize("title, expected", [
    ("Quarterly Review!", "Quarterly-Review-2025-11-18-153045.pdf"),
    ("  Line 3:   scrap / rework  ", "Line-3-scrap-rework-2025-11-18-153045.pdf"),
    ("Plan\tB", "Plan-B-2025-11-18-153045.pdf"),
    ("!!!", "A3-Document-2025-11-18-153045.pdf"),
    ("", "A3-Document-2025-11-18-153045.pdf"),
])
def test_export_filename(title, expected):
    assert export_filename(title, AT) == expected


def test_renderer_produces_pdf():
    document = A3Document(
        id="doc-1",
        title="Reduce (scrap)",
        description="Café line",
        status=DocumentStatus.IN_PROGRESS,
        sections=[
            A3Section(section_number=1, title="Background", content="Scrap doubled", completed=True),
            A3Section(section_number=2, title="Current Condition", content={"rate": 0.04}, completed=False),
        ],
    )

    pdf = SimplePdfRenderer().render(document)

    assert pdf.startswith(b"%PDF-1.4")
    assert pdf.rstrip().endswith(b"%%EOF")
    assert b"Reduce \\(scrap\\)" in pdf
    assert b"[x] 1. Background" in pdf
    assert b'{"rate": 0.04}' in pdf
