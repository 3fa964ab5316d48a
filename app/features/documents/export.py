"""
PDF export helpers: filename convention and the renderer seam.

Rendering itself is a black box behind `DocumentRenderer`; the gateway only
decides whether the caller may export, audits the export, and names the
file. `SimplePdfRenderer` is the default: one text page per document.
"""
import json
import re
from datetime import datetime
from typing import Protocol, runtime_checkable

from app.features.documents.models import A3Document


_NON_ALNUM = re.compile(r"[^A-Za-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")

FALLBACK_NAME = "A3-Document"


def export_filename(title: str, at: datetime) -> str:
    """
    Build the download name for an export.

    Non-alphanumeric characters are dropped, whitespace runs become a single
    hyphen, and a timestamp is appended:
    "Quarterly Review!" at 2025-11-18 15:30:45 -> "Quarterly-Review-2025-11-18-153045.pdf"
    """
    cleaned = _NON_ALNUM.sub("", title or "").strip()
    base = _WHITESPACE.sub("-", cleaned) or FALLBACK_NAME
    return f"{base}-{at.strftime('%Y-%m-%d-%H%M%S')}.pdf"


@runtime_checkable
class DocumentRenderer(Protocol):
    media_type: str

    def render(self, document: A3Document) -> bytes:
        ...


def _pdf_text(value: str) -> str:
    # Latin-1 only in the base-14 fonts; escape PDF string delimiters
    value = value.encode("latin-1", "replace").decode("latin-1")
    return value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _section_lines(document: A3Document) -> list[str]:
    lines = [document.title, f"Status: {document.status.value}", ""]
    if document.description:
        lines += [document.description, ""]
    for section in document.sections:
        marker = "[x]" if section.completed else "[ ]"
        lines.append(f"{marker} {section.section_number}. {section.title}")
        if section.content is not None:
            text = section.content if isinstance(section.content, str) else json.dumps(section.content)
            lines += ["    " + text[i:i + 90] for i in range(0, len(text), 90)]
    return lines


class SimplePdfRenderer:
    """Minimal single-page PDF 1.4 writer using Helvetica."""

    media_type = "application/pdf"
    max_lines = 60

    def render(self, document: A3Document) -> bytes:
        lines = _section_lines(document)[: self.max_lines]
        stream_parts = ["BT", "/F1 10 Tf", "12 TL", "50 800 Td"]
        for line in lines:
            stream_parts.append(f"({_pdf_text(line)}) Tj T*")
        stream_parts.append("ET")
        stream = "\n".join(stream_parts).encode("latin-1")

        objects = [
            b"<< /Type /Catalog /Pages 2 0 R >>",
            b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 595 842] "
            b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
            b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
            b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
        ]

        out = bytearray(b"%PDF-1.4\n")
        offsets = []
        for number, body in enumerate(objects, start=1):
            offsets.append(len(out))
            out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"
        xref_at = len(out)
        out += f"xref\n0 {len(objects) + 1}\n".encode()
        out += b"0000000000 65535 f \n"
        for offset in offsets:
            out += f"{offset:010d} 00000 n \n".encode()
        out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode()
        return bytes(out)
