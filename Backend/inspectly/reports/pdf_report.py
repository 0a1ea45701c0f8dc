"""
Inspection PDF report.

Fixed A4 layout measured in millimetres from the top of the page: a title, the
metadata lines, a "Responses" heading, then every template question with its
response. The page-break check runs once per question, after its block, so a
single tall block (a large photo) may run past the bottom edge of its page.
"""

import base64
import binascii
import logging
from io import BytesIO
from typing import List, Optional

from PIL import Image, UnidentifiedImageError
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from inspectly.schemas.inspection import (
    CheckboxResponse,
    Inspection,
    MultipleChoiceResponse,
    PhotoResponse,
    SignatureResponse,
    TextResponse,
)
from inspectly.schemas.template import Question, QuestionType, Template
from inspectly.utils import format_date

logger = logging.getLogger(__name__)

# Layout constants (mm)
MARGIN_X = 20
TOP_MARGIN = 20
CONTENT_WIDTH = 170
LINE_HEIGHT = 10
BLOCK_GAP = 10
PAGE_BOTTOM = 270
PHOTO_WIDTH = 170
SIGNATURE_WIDTH = 100

TITLE_SIZE = 20
HEADING_SIZE = 16
BODY_SIZE = 12
FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

NO_RESPONSE = "No response"
NO_SELECTION = "No selection"
NO_SELECTIONS = "No selections"
NO_PHOTO = "No photo uploaded"
PHOTO_ERROR = "Error loading photo"
NO_SIGNATURE = "No signature provided"
SIGNATURE_ERROR = "Error loading signature"

# a bad image payload renders an error line instead of failing the report
IMAGE_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, binascii.Error)

_RESPONSE_TYPES = {
    QuestionType.TEXT: TextResponse,
    QuestionType.MULTIPLE_CHOICE: MultipleChoiceResponse,
    QuestionType.CHECKBOX: CheckboxResponse,
    QuestionType.PHOTO: PhotoResponse,
    QuestionType.SIGNATURE: SignatureResponse,
}


def report_filename(inspection: Inspection) -> str:
    return f"inspection-{inspection.id}.pdf"


def _load_image(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    if img.mode not in ("RGB", "RGBA", "L"):
        img = img.convert("RGB")
    return img


def _decode_data_url(value: str) -> bytes:
    encoded = value.split(",", 1)[1] if value.startswith("data:") and "," in value else value
    return base64.b64decode(encoded.strip(), validate=True)


class InspectionReport:
    """
    Writes one inspection onto a ReportLab canvas.

    Every text line drawn is also kept per page in ``pages`` so callers can
    inspect the layout without parsing the PDF.
    """

    def __init__(self, inspection: Inspection, template: Template) -> None:
        self.inspection = inspection
        self.template = template
        self.filename = report_filename(inspection)
        self.pages: List[List[str]] = []
        self.content = b""
        self._buffer = BytesIO()
        self._canvas: Optional[canvas.Canvas] = None
        self._page_height = A4[1]
        self._font = (FONT, BODY_SIZE)
        self.y = TOP_MARGIN

    # ------------------------------------------------------------------
    # primitives
    # ------------------------------------------------------------------
    @property
    def page_count(self) -> int:
        return len(self.pages)

    def _start_document(self) -> None:
        self._canvas = canvas.Canvas(self._buffer, pagesize=A4, pageCompression=0)
        self._canvas.setTitle(f"Inspection Report {self.inspection.id}")
        self.pages = [[]]
        self.y = TOP_MARGIN

    def _new_page(self) -> None:
        self._canvas.showPage()
        self.pages.append([])
        self.y = TOP_MARGIN

    def _set_font(self, name: str, size: int) -> None:
        self._canvas.setFont(name, size)
        self._font = (name, size)

    def _text(self, line: str) -> None:
        self._canvas.drawString(MARGIN_X * mm, self._page_height - self.y * mm, line)
        self.pages[-1].append(line)

    def _wrapped(self, text: str) -> None:
        name, size = self._font
        lines = simpleSplit(text, name, size, CONTENT_WIDTH * mm) or [""]
        for offset, line in enumerate(lines):
            self._canvas.drawString(
                MARGIN_X * mm, self._page_height - (self.y + offset * LINE_HEIGHT) * mm, line
            )
            self.pages[-1].append(line)
        self.y += LINE_HEIGHT * len(lines)

    def _line(self, text: str) -> None:
        self._text(text)
        self.y += LINE_HEIGHT

    def _image(self, img: Image.Image, width_mm: float) -> None:
        height_mm = img.height * width_mm / img.width
        self._canvas.drawImage(
            ImageReader(img),
            MARGIN_X * mm,
            self._page_height - (self.y + height_mm) * mm,
            width=width_mm * mm,
            height=height_mm * mm,
            mask="auto",
        )
        self.y += height_mm + BLOCK_GAP

    # ------------------------------------------------------------------
    # sections
    # ------------------------------------------------------------------
    def _header(self) -> None:
        inspection = self.inspection
        self._set_font(FONT, TITLE_SIZE)
        self._text("Inspection Report")
        self.y += 15

        self._set_font(FONT, BODY_SIZE)
        self._line(f"Template: {self.template.name}")
        self._line(f"Inspector: {inspection.inspector_name}")
        self._line(f"Location: {inspection.location}")
        self._line(f"Date: {format_date(inspection.date)}")
        self._text(f"Status: {inspection.status.value}")
        self.y += 20

        self._set_font(FONT, HEADING_SIZE)
        self._line("Responses")
        self._set_font(FONT, BODY_SIZE)

    def _response_for(self, question: Question):
        response = self.inspection.responses.get(question.id)
        # a response recorded under another question type counts as absent
        if response is None or not isinstance(response, _RESPONSE_TYPES[question.type]):
            return None
        return response

    def _question(self, question: Question) -> None:
        self._set_font(FONT_BOLD, BODY_SIZE)
        self._wrapped(question.question)
        self._set_font(FONT, BODY_SIZE)

        response = self._response_for(question)
        if question.type == QuestionType.TEXT:
            self._wrapped(response.value if response is not None and response.value else NO_RESPONSE)
        elif question.type == QuestionType.MULTIPLE_CHOICE:
            self._line(response.value if response is not None and response.value else NO_SELECTION)
        elif question.type == QuestionType.CHECKBOX:
            if response is not None and response.value:
                for item in response.value:
                    self._line(f"• {item}")
            else:
                self._line(NO_SELECTIONS)
        elif question.type == QuestionType.PHOTO:
            self._photo(response)
        elif question.type == QuestionType.SIGNATURE:
            self._signature(response)

    def _photo(self, response: Optional[PhotoResponse]) -> None:
        if response is None or not response.value:
            self._line(NO_PHOTO)
            return
        try:
            img = _load_image(response.value)
        except IMAGE_ERRORS as exc:
            logger.warning("Could not decode photo for inspection %s: %s", self.inspection.id, exc)
            self._line(PHOTO_ERROR)
            return
        self._image(img.convert("RGB"), PHOTO_WIDTH)

    def _signature(self, response: Optional[SignatureResponse]) -> None:
        if response is None or not response.value:
            self._line(NO_SIGNATURE)
            return
        try:
            img = _load_image(_decode_data_url(response.value))
        except IMAGE_ERRORS as exc:
            logger.warning("Could not decode signature for inspection %s: %s", self.inspection.id, exc)
            self._line(SIGNATURE_ERROR)
            return
        self._image(img, SIGNATURE_WIDTH)

    # ------------------------------------------------------------------
    # entry point
    # ------------------------------------------------------------------
    def build(self) -> bytes:
        self._start_document()
        self._header()
        questions = self.template.questions
        for index, question in enumerate(questions):
            self._question(question)
            self.y += BLOCK_GAP
            # no trailing blank page after the last question
            if self.y > PAGE_BOTTOM and index < len(questions) - 1:
                self._new_page()
        self._canvas.save()
        logger.info(
            "Generated %s (%d page%s)", self.filename, self.page_count, "" if self.page_count == 1 else "s"
        )
        return self._buffer.getvalue()


def generate_pdf(inspection: Inspection, template: Template) -> InspectionReport:
    """Lay out ``inspection`` against ``template``; the PDF bytes are on ``report.content``."""
    report = InspectionReport(inspection, template)
    report.content = report.build()
    return report
