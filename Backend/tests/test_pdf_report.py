import base64
import struct
import zlib
from datetime import datetime
from io import BytesIO

import pytest
from PIL import Image

from inspectly.reports import pdf_report
from inspectly.reports.pdf_report import generate_pdf
from inspectly.schemas.inspection import (
    CheckboxResponse,
    Inspection,
    InspectionStatus,
    MultipleChoiceResponse,
    PhotoResponse,
    SignatureResponse,
    TextResponse,
)
from inspectly.schemas.template import Question, QuestionType, Template


def _png(width=40, height=20, color=(200, 30, 30)):
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def _png_header(width, height):
    """A PNG that only claims its size; the pixel data is never there."""
    def chunk(kind, data):
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", b"") + chunk(b"IEND", b"")


def _template(*questions, name="Site walk"):
    return Template(id="t1", name=name, organization_id="org-1", questions=list(questions))


def _inspection(responses=None, **overrides):
    data = dict(
        id="i1",
        template_id="t1",
        organization_id="org-1",
        inspector_name="Pat",
        location="Dock 3",
        status=InspectionStatus.COMPLETE,
        date=datetime(2024, 3, 7, 15, 30),
        responses=responses or {},
    )
    data.update(overrides)
    return Inspection(**data)


def _q(id, type, text=None):
    return Question(id=id, type=type, question=text or f"Question {id}?")


def _body_after(report, prompt):
    lines = [line for page in report.pages for line in page]
    return lines[lines.index(prompt) + 1]


def test_missing_text_response_reads_no_response():
    report = generate_pdf(_inspection(), _template(_q("q1", QuestionType.TEXT)))

    assert _body_after(report, "Question q1?") == "No response"
    assert report.filename == "inspection-i1.pdf"
    assert report.content.startswith(b"%PDF")


def test_header_lines_in_order():
    report = generate_pdf(_inspection(), _template())

    assert report.pages[0] == [
        "Inspection Report",
        "Template: Site walk",
        "Inspector: Pat",
        "Location: Dock 3",
        "Date: 03/07/2024",
        "Status: complete",
        "Responses",
    ]


@pytest.mark.parametrize(
    "qtype, placeholder",
    [
        (QuestionType.TEXT, "No response"),
        (QuestionType.MULTIPLE_CHOICE, "No selection"),
        (QuestionType.CHECKBOX, "No selections"),
        (QuestionType.PHOTO, "No photo uploaded"),
        (QuestionType.SIGNATURE, "No signature provided"),
    ],
)
def test_placeholder_for_each_absent_response(qtype, placeholder):
    report = generate_pdf(_inspection(), _template(_q("q1", qtype)))

    assert _body_after(report, "Question q1?") == placeholder


def test_answers_are_rendered():
    template = _template(
        _q("q1", QuestionType.TEXT),
        _q("q2", QuestionType.MULTIPLE_CHOICE),
        _q("q3", QuestionType.CHECKBOX),
    )
    inspection = _inspection({
        "q1": TextResponse(value="All clear"),
        "q2": MultipleChoiceResponse(value="Blue"),
        "q3": CheckboxResponse(value=["Helmet", "Gloves"]),
    })

    report = generate_pdf(inspection, template)
    lines = report.pages[0]

    assert _body_after(report, "Question q1?") == "All clear"
    assert _body_after(report, "Question q2?") == "Blue"
    start = lines.index("Question q3?")
    assert lines[start + 1:start + 3] == ["• Helmet", "• Gloves"]


def test_empty_checkbox_selection_uses_placeholder():
    report = generate_pdf(
        _inspection({"q1": CheckboxResponse(value=[])}),
        _template(_q("q1", QuestionType.CHECKBOX)),
    )

    assert _body_after(report, "Question q1?") == "No selections"


def test_response_of_wrong_type_counts_as_absent():
    report = generate_pdf(
        _inspection({"q1": CheckboxResponse(value=["Red"])}),
        _template(_q("q1", QuestionType.TEXT)),
    )

    assert _body_after(report, "Question q1?") == "No response"


def test_long_text_is_wrapped():
    long_answer = "word " * 120
    report = generate_pdf(
        _inspection({"q1": TextResponse(value=long_answer)}),
        _template(_q("q1", QuestionType.TEXT)),
    )
    lines = [line for page in report.pages for line in page]

    start = lines.index("Question q1?") + 1
    assert len(lines) - start > 1
    assert " ".join(lines[start:]).split() == long_answer.split()


def test_many_questions_paginate_with_title_on_first_page_only():
    questions = [_q(f"q{n}", QuestionType.TEXT) for n in range(1, 31)]

    report = generate_pdf(_inspection(), _template(*questions))

    assert report.page_count > 1
    assert sum(page.count("Inspection Report") for page in report.pages) == 1
    assert report.pages[0][0] == "Inspection Report"
    rendered = [line for page in report.pages for line in page if line.startswith("Question ")]
    assert rendered == [f"Question q{n}?" for n in range(1, 31)]
    assert all(page for page in report.pages)


def test_photo_and_signature_are_embedded():
    signature = "data:image/png;base64," + base64.b64encode(_png(60, 20, (0, 0, 0))).decode()
    report = generate_pdf(
        _inspection({
            "q1": PhotoResponse(value=_png()),
            "q2": SignatureResponse(value=signature),
        }),
        _template(_q("q1", QuestionType.PHOTO), _q("q2", QuestionType.SIGNATURE)),
    )
    lines = [line for page in report.pages for line in page]

    assert "Error loading photo" not in lines
    assert "Error loading signature" not in lines
    assert b"/Subtype /Image" in report.content


def test_tall_photo_block_is_not_split():
    # 1:2 portrait at 170mm wide is 340mm tall, taller than a page
    report = generate_pdf(
        _inspection({"q1": PhotoResponse(value=_png(100, 200))}),
        _template(_q("q1", QuestionType.PHOTO), _q("q2", QuestionType.TEXT)),
    )

    assert report.page_count == 2
    assert report.pages[1] == ["Question q2?", "No response"]


def test_undecodable_photo_reports_error_line():
    report = generate_pdf(
        _inspection({"q1": PhotoResponse(value=b"definitely not an image")}),
        _template(_q("q1", QuestionType.PHOTO)),
    )

    assert _body_after(report, "Question q1?") == "Error loading photo"


def test_undecodable_signature_reports_error_line():
    report = generate_pdf(
        _inspection({"q1": SignatureResponse(value="data:image/png;base64,@@@")}),
        _template(_q("q1", QuestionType.SIGNATURE)),
    )

    assert _body_after(report, "Question q1?") == pdf_report.SIGNATURE_ERROR


def test_signature_data_url_without_payload_reports_error_line():
    report = generate_pdf(
        _inspection({"q1": SignatureResponse(value="data:image/png;base64")}),
        _template(_q("q1", QuestionType.SIGNATURE)),
    )

    assert _body_after(report, "Question q1?") == pdf_report.SIGNATURE_ERROR


def test_oversized_photo_header_reports_error_line():
    report = generate_pdf(
        _inspection({"q1": PhotoResponse(value=_png_header(20000, 20000))}),
        _template(_q("q1", QuestionType.PHOTO)),
    )

    assert _body_after(report, "Question q1?") == pdf_report.PHOTO_ERROR


def test_stale_responses_are_ignored():
    report = generate_pdf(
        _inspection({"removed": TextResponse(value="orphan")}),
        _template(_q("q1", QuestionType.TEXT)),
    )
    lines = [line for page in report.pages for line in page]

    assert "orphan" not in lines
