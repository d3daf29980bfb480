"""PDF renderer — Stage D of the Report Compiler Pipeline.

``ReportDocument`` is a stateful page builder over fpdf2. It owns the
vertical cursor and the page-break rule: every block asks ``ensure_space``
before drawing, and a page break always redraws the header band, so the
check lives in one place instead of at every call site.

Page anatomy (A4 portrait, mm):
  - header band (every page): organisation mark, report title, generation date
  - content from ``content_top`` down to ``h - bottom_limit``
  - footer (every page): attribution, "Page N of Total", confidentiality notice

Accepts a ReportViewModel and returns the finished document. No business
logic lives here — only layout.
"""

from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Optional

from fpdf import FPDF
from PIL import Image, UnidentifiedImageError

from ..config import ReportConfig
from ..exceptions import ReportSerializationError
from ..formatting import fmt_day
from ..status import RGB, StatusTone
from .view_model import (
    CONFIDENTIALITY_NOTICE,
    Block,
    Cover,
    KeyValue,
    ReportViewModel,
    Section,
    Spacer,
    Subheading,
    Table,
)

logger = logging.getLogger(__name__)


# ── Palette ──────────────────────────────────────────────────────────────────

_BRAND = (27, 12, 140)
_BRAND_LIGHT = (232, 230, 245)
_HEADER_TEXT = (200, 200, 230)
_TEXT_PRIMARY = (30, 41, 59)
_TEXT_SECONDARY = (100, 116, 139)
_BORDER = (226, 232, 240)
_FOOTER_TEXT = (148, 163, 184)
_ROW_ALT = (248, 250, 252)
_WHITE = (255, 255, 255)

_FONT_FILES = {"": "DejaVuSans.ttf", "B": "DejaVuSans-Bold.ttf", "I": "DejaVuSans-Oblique.ttf"}

# Core PDF fonts only cover Latin-1; common typography is mapped down.
_LATIN1_FALLBACKS = str.maketrans({
    "—": "-", "–": "-", "•": "*", "…": "...",
    "‘": "'", "’": "'", "“": '"', "”": '"',
})


class ReportDocument(FPDF):
    """Paginated verification report with a managed cursor."""

    def __init__(
        self,
        config: Optional[ReportConfig] = None,
        generated_at: Optional[datetime] = None,
        logo_base64: Optional[str] = None,
        client_name: Optional[str] = None,
    ) -> None:
        super().__init__(orientation="P", unit="mm", format="A4")
        self.config = config or ReportConfig()
        self.generated_at = generated_at or datetime.now()
        self.client_name = client_name or self.config.client_name
        self.page_headers: list[tuple[int, str, str, str]] = []
        self._logo = _decode_logo(logo_base64)
        self._family = self._register_fonts(self.config.font_dir)

        margin = self.config.margin
        self.set_margins(margin, self.config.content_top, margin)
        # text() never breaks pages by itself; blocks go through ensure_space.
        # fpdf2 calls header() on every page it adds.
        self.set_auto_page_break(True, self.config.bottom_limit)
        self.alias_nb_pages()
        self.set_title(f"{self.config.org_name} {self.config.report_title.title()}")
        self.add_page()
        self.set_y(self.config.first_page_top)

    # ── geometry ──────────────────────────────────────────────────────────

    @property
    def content_width(self) -> float:
        return self.w - self.l_margin - self.r_margin

    @property
    def page_bottom(self) -> float:
        return self.h - self.config.bottom_limit

    @property
    def page_capacity(self) -> float:
        """Usable height of a continuation page."""
        return self.page_bottom - self.config.content_top

    def ensure_space(self, needed: float) -> bool:
        """Start a new page (header redrawn) if ``needed`` mm do not fit. True if it broke."""
        if self.get_y() + needed > self.page_bottom:
            self.add_page()
            self.set_y(self.config.content_top)
            return True
        return False

    # ── fonts / text ──────────────────────────────────────────────────────

    def _register_fonts(self, font_dir: Optional[Path]) -> str:
        if font_dir is None:
            return "helvetica"
        paths = {style: Path(font_dir) / name for style, name in _FONT_FILES.items()}
        if not (paths[""].is_file() and paths["B"].is_file()):
            logger.warning("DejaVu fonts not found in %s; using core fonts", font_dir)
            return "helvetica"
        for style, path in paths.items():
            if path.is_file():
                self.add_font("DejaVu", style, str(path))
        return "DejaVu"

    @property
    def unicode_fonts(self) -> bool:
        return self._family != "helvetica"

    def clean(self, text: str) -> str:
        """Make text encodable by the active font."""
        if self.unicode_fonts:
            return text
        return text.translate(_LATIN1_FALLBACKS).encode("latin-1", "replace").decode("latin-1")

    def use_font(self, style: str = "", size: float = 9) -> None:
        if style == "I" and self.unicode_fonts and "I" not in self._styles_available():
            style = ""
        self.set_font(self._family, style, size)

    def _styles_available(self) -> set[str]:
        font_dir = self.config.font_dir
        if font_dir is None:
            return {"", "B", "I"}
        return {style for style, name in _FONT_FILES.items() if (Path(font_dir) / name).is_file()}

    def write_text(self, x: float, y: float, text: str) -> None:
        self.text(x, y, self.clean(text))

    def write_right(self, y: float, text: str) -> None:
        text = self.clean(text)
        self.text(self.w - self.r_margin - self.get_string_width(text), y, text)

    # ── header / footer (called by fpdf2 for every page) ─────────────────

    def header(self) -> None:
        cfg = self.config
        band = cfg.header_height
        self.set_fill_color(*_BRAND)
        self.rect(0, 0, self.w, band, "F")

        if self._logo is not None:
            self.image(BytesIO(self._logo), x=cfg.margin, y=4, w=30, h=14)
        else:
            self.set_text_color(*_WHITE)
            self.use_font("B", 16)
            self.write_text(cfg.margin, 14, cfg.org_name)

        generated = f"Generated {fmt_day(self.generated_at)}"
        self.set_text_color(*_HEADER_TEXT)
        self.use_font("", 8)
        self.write_right(10, cfg.report_title)
        self.write_right(15, generated)

        self.page_headers.append((self.page_no(), cfg.org_name, cfg.report_title, generated))
        self.set_text_color(*_TEXT_PRIMARY)

    def footer(self) -> None:
        cfg = self.config
        bottom = self.h
        self.set_draw_color(*_BORDER)
        self.set_line_width(0.2)
        self.line(cfg.margin, bottom - 14, self.w - cfg.margin, bottom - 14)
        self.use_font("", 7)
        self.set_text_color(*_FOOTER_TEXT)
        self.write_text(cfg.margin, bottom - 9, f"Powered by {cfg.org_name} — {self.client_name}")
        self.write_right(bottom - 9, f"Page {self.page_no()} of {{nb}}")
        self.write_text(cfg.margin, bottom - 5, CONFIDENTIALITY_NOTICE)

    # ── blocks ────────────────────────────────────────────────────────────

    def add_cover(self, cover: Cover) -> None:
        x = self.l_margin
        y = self.get_y()
        self.use_font("B", 24)
        self.set_text_color(*_TEXT_PRIMARY)
        self.write_text(x, y, cover.full_name)
        y += 10

        self.use_font("", 10)
        self.set_text_color(*_TEXT_SECONDARY)
        self.write_text(x, y, cover.inspection_line)
        y += 5
        self.write_text(x, y, cover.client_line)
        y += 12

        self.use_font("B", 11)
        self.set_text_color(*_TEXT_PRIMARY)
        self.write_text(x, y, "Verification Status")
        self.add_status_pill(x + 45, y, cover.status_text, cover.status_tone.rgb)
        y += 14

        self.set_draw_color(*_BORDER)
        self.line(x, y, self.w - self.r_margin, y)
        self.set_y(y + 8)

    def add_status_pill(self, x: float, baseline: float, label: str, color: RGB) -> None:
        self.use_font("B", 8)
        width = self.get_string_width(self.clean(label)) + 8
        self.set_fill_color(*color)
        self.rect(x, baseline - 4, width, 6, "F", round_corners=True, corner_radius=2)
        self.set_text_color(*_WHITE)
        self.write_text(x + 4, baseline, label)
        self.set_text_color(*_TEXT_PRIMARY)

    def add_section(self, title: str, min_space: float = 14) -> None:
        """Section heading band; moves to a new page unless ``min_space`` fits."""
        self.ensure_space(max(min_space, 14))
        y = self.get_y()
        self.set_fill_color(*_BRAND_LIGHT)
        self.rect(self.l_margin, y, self.content_width, 9, "F", round_corners=True, corner_radius=1.5)
        self.use_font("B", 10)
        self.set_text_color(*_BRAND)
        self.write_text(self.l_margin + 4, y + 6.5, title)
        self.set_text_color(*_TEXT_PRIMARY)
        self.set_y(y + 13)

    def add_subheading(self, text: str) -> None:
        self.ensure_space(12)
        y = self.get_y()
        self.use_font("B", 10)
        self.set_text_color(*_TEXT_PRIMARY)
        self.write_text(self.l_margin + 2, y, text)
        self.set_y(y + 7)

    def add_key_value(
        self,
        label: str,
        value: str,
        color: Optional[RGB] = None,
        bold: bool = False,
    ) -> None:
        """Label at the left margin, value at a fixed column; long values wrap across pages."""
        value_x = self.l_margin + 60
        value_w = self.w - self.r_margin - value_x
        style = "B" if bold else ""
        lines = self._wrap(value, value_w, style, 9)
        block = 6 * len(lines) + 1
        self.ensure_space(block if block <= self.page_capacity else 7)

        y = self.get_y()
        self.use_font("", 9)
        self.set_text_color(*_TEXT_SECONDARY)
        self.write_text(self.l_margin + 2, y, label)
        for line in lines:
            self.set_y(y)
            if self.ensure_space(6):
                y = self.get_y()
            self.use_font(style, 9)
            self.set_text_color(*(color or _TEXT_PRIMARY))
            self.write_text(value_x, y, line)
            y += 6
        self.set_text_color(*_TEXT_PRIMARY)
        self.set_y(y)

    def add_table(self, table: Table) -> None:
        """Grid table; rows move to a new page whole when they fit one, otherwise
        split line by line. The header row repeats after every break."""
        left = self.l_margin + 2
        available = self.content_width - 4
        widths = [w or max(available - sum(table.widths), 10) for w in table.widths]
        line_h = table.font_size * 0.5
        pad = 1.5
        repeat_header = bool(table.headers) and not table.plain
        header_h = line_h + pad * 2 if repeat_header else 0
        max_lines = max(int((self.page_capacity - header_h - pad * 2) / line_h), 1)

        def draw_row(cells: list[str], header: bool, index: int) -> None:
            style = "B" if header else ""
            wrapped = [self._wrap(cell, widths[i] - 3, style, table.font_size) for i, cell in enumerate(cells)]
            total = max(len(lines) for lines in wrapped)
            start = 0
            while start < total:
                remaining = total - start
                needed = min(remaining, max_lines) * line_h + pad * 2
                if self.ensure_space(needed) and not header and repeat_header:
                    draw_row(table.headers, True, -1)
                fit = int((self.page_bottom - self.get_y() - pad * 2) / line_h)
                count = max(1, min(remaining, fit))
                draw_chunk(wrapped, start, count, header, index)
                start += count

        def draw_chunk(wrapped: list[list[str]], start: int, count: int, header: bool, index: int) -> None:
            height = count * line_h + pad * 2
            y0 = self.get_y()
            if header:
                self.set_fill_color(*_BRAND)
            elif index % 2 == 1:
                self.set_fill_color(*_ROW_ALT)
            else:
                self.set_fill_color(*_WHITE)
            self.rect(left, y0, sum(widths), height, "F")
            if not table.plain:
                self.set_draw_color(*_BORDER)
                self.rect(left, y0, sum(widths), height, "D")

            x = left
            for col, lines in enumerate(wrapped):
                color = self._cell_color(table, header, index, col)
                bold = (header or col == table.status_column) and not (table.plain and col == 0)
                self.use_font("B" if bold else "", table.font_size)
                self.set_text_color(*color)
                ty = y0 + pad + line_h * 0.8
                for line in lines[start:start + count]:
                    self.write_text(x + 1.5, ty, line)
                    ty += line_h
                x += widths[col]
            self.set_y(y0 + height)

        if repeat_header:
            draw_row(table.headers, True, -1)
        for index, row in enumerate(table.rows):
            draw_row(row, False, index)
        self.set_text_color(*_TEXT_PRIMARY)

    def _cell_color(self, table: Table, header: bool, index: int, col: int) -> RGB:
        if header:
            return _WHITE
        if table.plain and col == 0:
            return _TEXT_SECONDARY
        if col == table.status_column and index < len(table.row_tones):
            tone = table.row_tones[index]
            if tone is not None:
                return tone.rgb
        return _TEXT_PRIMARY

    def add_spacer(self, height: float) -> None:
        self.set_y(self.get_y() + height)

    def add_disclaimer(self, text: str) -> None:
        self.ensure_space(30)
        y = self.get_y()
        self.set_draw_color(*_BORDER)
        self.line(self.l_margin, y, self.w - self.r_margin, y)
        y += 6
        for line in self._wrap(text, self.content_width - 4, "I", 7):
            self.set_y(y)
            if self.ensure_space(4):
                y = self.get_y()
            self.use_font("I", 7)
            self.set_text_color(*_TEXT_SECONDARY)
            self.write_text(self.l_margin + 2, y, line)
            y += 3.5
        self.set_y(y)

    def add_block(self, block: Block) -> None:
        if isinstance(block, KeyValue):
            color = block.tone.rgb if isinstance(block.tone, StatusTone) else None
            self.add_key_value(block.label, block.value, color=color, bold=block.bold)
        elif isinstance(block, Table):
            self.add_table(block)
        elif isinstance(block, Subheading):
            self.add_subheading(block.text)
        elif isinstance(block, Spacer):
            self.add_spacer(block.height)
        else:
            raise TypeError(f"Unknown block type: {type(block).__name__}")

    # ── wrapping ──────────────────────────────────────────────────────────

    def _wrap(self, text: str, width: float, style: str, size: float) -> list[str]:
        """Greedy word wrap using the active font metrics."""
        self.use_font(style, size)
        text = self.clean(text)
        if width <= 0:
            return [text]
        lines: list[str] = []
        for paragraph in text.split("\n"):
            current = ""
            for word in paragraph.split(" "):
                candidate = f"{current} {word}" if current else word
                if self.get_string_width(candidate) <= width:
                    current = candidate
                    continue
                if current:
                    lines.append(current)
                # Break words longer than a line
                while self.get_string_width(word) > width and len(word) > 1:
                    cut = len(word)
                    while cut > 1 and self.get_string_width(word[:cut]) > width:
                        cut -= 1
                    lines.append(word[:cut])
                    word = word[cut:]
                current = word
            lines.append(current)
        return lines or [""]

    # ── output ────────────────────────────────────────────────────────────

    @property
    def page_count(self) -> int:
        return self.page_no()

    def to_bytes(self) -> bytes:
        """Encode the document; any encoder failure becomes ReportSerializationError."""
        try:
            return bytes(self.output())
        except Exception as e:
            logger.exception("PDF serialization failed")
            raise ReportSerializationError(
                f"PDF serialization failed: {e}",
                details={"internal_error": type(e).__name__},
            ) from e


def render_pdf(
    view_model: ReportViewModel,
    config: Optional[ReportConfig] = None,
    logo_base64: Optional[str] = None,
) -> ReportDocument:
    """Lay out a view model: cover, sections in order, disclaimer."""
    doc = ReportDocument(
        config=config,
        generated_at=view_model.generated_at,
        logo_base64=logo_base64,
        client_name=view_model.client_name,
    )
    doc.add_cover(view_model.cover)
    for section in view_model.sections:
        _render_section(doc, section)
    doc.add_disclaimer(view_model.disclaimer)
    return doc


def _render_section(doc: ReportDocument, section: Section) -> None:
    doc.add_section(section.title, section.min_space)
    for block in section.blocks:
        doc.add_block(block)


def _decode_logo(logo_base64: Optional[str]) -> Optional[bytes]:
    """Decode and sniff a base64 logo; anything unusable falls back to the text mark."""
    if not logo_base64:
        return None
    payload = logo_base64.split(",", 1)[1] if logo_base64.startswith("data:") else logo_base64
    try:
        data = base64.b64decode(payload, validate=True)
        with Image.open(BytesIO(data)) as image:
            image.verify()
    except (binascii.Error, ValueError, UnidentifiedImageError, OSError) as e:
        logger.warning("Ignoring unusable report logo: %s", e)
        return None
    return data
