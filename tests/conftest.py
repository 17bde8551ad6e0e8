"""
Shared fixtures: a minimal PDF builder, isolated stores and a Flask client.
"""
import json
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from analyzer.cache import TTLCache
from analyzer.services.analysis_store import AnalysisStore, CachedAnalysisReader
from analyzer.services.blob_store import BlobStore


def _escape_pdf_string(text: str) -> str:
    return text.replace('\\', '\\\\').replace('(', '\\(').replace(')', '\\)')


def build_pdf(pages) -> bytes:
    """
    Assemble a small uncompressed PDF.

    Args:
        pages: One entry per page; each entry is a string or a list of strings
            drawn as separate text runs from the top of the page downwards.
    """
    pages = [[p] if isinstance(p, str) else list(p) for p in pages]
    page_ids = [4 + 2 * i for i in range(len(pages))]

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        ("<< /Type /Pages /Kids [%s] /Count %d >>" % (
            " ".join(f"{pid} 0 R" for pid in page_ids), len(pages))).encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    for pid, runs in zip(page_ids, pages):
        ops = []
        y = 720
        for run in runs:
            ops.append(f"BT /F1 12 Tf 72 {y} Td ({_escape_pdf_string(run)}) Tj ET")
            y -= 200
        stream = "\n".join(ops).encode('latin-1')
        objects.append((
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            "/Resources << /Font << /F1 3 0 R >> >> /Contents %d 0 R >>" % (pid + 1)
        ).encode())
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%EOF\n" % (
        len(objects) + 1, xref_offset)
    return bytes(out)


NDA_TEXT = "NDA between X and Y regarding confidential information"


@pytest.fixture
def nda_text():
    return NDA_TEXT


@pytest.fixture
def nda_pdf():
    return build_pdf([NDA_TEXT])


@pytest.fixture
def pdf_builder():
    return build_pdf


def make_findings(count, title_key, level_key, premium=False):
    items = []
    for i in range(count):
        item = {
            title_key: f"{title_key.title()} {i + 1}",
            "explanation": f"Explanation {i + 1}",
            level_key: ("low", "medium", "high")[i % 3],
        }
        if premium:
            item["suggestedAlternative"] = f"Alternative {i + 1}"
        items.append(item)
    return items


@pytest.fixture
def free_response():
    """A well-formed free-tier model response."""
    return json.dumps({
        "risks": make_findings(5, "risk", "severity"),
        "opportunities": make_findings(5, "opportunity", "impact"),
        "summary": "A mutual NDA with a two year term.",
        "overallScore": 72,
    })


@pytest.fixture
def premium_response():
    """A well-formed premium-tier model response."""
    return json.dumps({
        "risks": make_findings(10, "risk", "severity", premium=True),
        "opportunities": make_findings(10, "opportunity", "impact", premium=True),
        "summary": "Paragraph one.\n\nParagraph two.\n\nParagraph three.",
        "recommendations": ["Narrow the definition of confidential information"],
        "keyClauses": ["Confidentiality: each party keeps the other's secrets"],
        "legalCompliance": "Compliant with general contract law.",
        "negotiationPoints": ["Shorten the term - reduces exposure"],
        "contractDuration": "Two years, no automatic renewal",
        "terminationConditions": "Either party with 30 days notice",
        "overallScore": "81",
        "financialTerms": {"description": "No payments", "details": ["None"]},
        "compensationStructure": {
            "baseSalary": "N/A",
            "bonuses": "N/A",
            "equity": "N/A",
            "otherBenefits": "N/A",
        },
        "performanceMetrics": ["None stated"],
        "intellectualPropertyClauses": "No license is granted.",
    })


@pytest.fixture
def blob_store():
    return BlobStore(TTLCache())


@pytest.fixture
def analysis_store(tmp_path):
    return AnalysisStore(tmp_path / "analyses")


@pytest.fixture
def reader(analysis_store, blob_store):
    return CachedAnalysisReader(analysis_store, blob_store)


@pytest.fixture
def app(tmp_path):
    """Create Flask app for testing."""
    from main import create_app

    flask_app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'ANALYSIS_DATA_DIR': str(tmp_path / "app-analyses"),
        'BLOB_CACHE': TTLCache(),
    })
    return flask_app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()


@pytest.fixture
def free_session(client):
    """Signed-in free-tier user."""
    with client.session_transaction() as sess:
        sess['user_id'] = 'user-free'
        sess['is_premium'] = False
    return client


@pytest.fixture
def premium_session(client):
    """Signed-in premium user."""
    with client.session_transaction() as sess:
        sess['user_id'] = 'user-premium'
        sess['is_premium'] = True
    return client
