"""
Badge, certificate and receipt PDF renderer
Designer templates (elements positioned in 96 DPI pixels) are drawn onto
reportlab pages sized in points
"""

import io
import logging
import re
from datetime import datetime
from typing import Optional

import qrcode
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .placeholders import format_event_dates, registration_values, render_template_text

logger = logging.getLogger(__name__)

# Points (72 per inch)
BADGE_SIZES = {
    "4x3": (288, 216),
    "3x4": (216, 288),
    "4x6": (288, 432),
    "3.5x2": (252, 144),
    "A6": (298, 420),
}

CERTIFICATE_SIZES = {
    "A4-landscape": (842, 595),
    "A4-portrait": (595, 842),
    "Letter-landscape": (792, 612),
    "Letter-portrait": (612, 792),
    "A3-landscape": (1191, 842),
    "A3-portrait": (842, 1191),
}

DEFAULT_BADGE_SIZE = "4x3"
DEFAULT_CERTIFICATE_SIZE = "A4-landscape"

# Designer canvas is in CSS pixels
PIXELS_TO_POINTS = 72 / 96

HEX_COLOR = re.compile(r"^#?([a-fA-F0-9]{2})([a-fA-F0-9]{2})([a-fA-F0-9]{2})$")
CAPITALIZE_PATTERN = re.compile(r"(^|[\s.])([a-z])")


def hex_to_rgb(value: Optional[str]) -> tuple[float, float, float]:
    """'#rrggbb' -> (r, g, b) in 0..1; anything unparseable is black"""
    match = HEX_COLOR.match(value or "")
    if not match:
        return (0.0, 0.0, 0.0)
    return tuple(int(part, 16) / 255 for part in match.groups())


def apply_text_case(text: str, text_case: Optional[str]) -> str:
    if not text:
        return text
    if text_case == "uppercase":
        return text.upper()
    if text_case == "lowercase":
        return text.lower()
    if text_case == "capitalize":
        # Also capitalises after a period, so "dr.jane" -> "Dr.Jane"
        return CAPITALIZE_PATTERN.sub(lambda m: m.group(1) + m.group(2).upper(), text.lower())
    return text


def badge_page_size(size: Optional[str]) -> tuple[int, int]:
    return BADGE_SIZES.get(size or "", BADGE_SIZES[DEFAULT_BADGE_SIZE])


def certificate_page_size(size: Optional[str]) -> tuple[int, int]:
    return CERTIFICATE_SIZES.get(size or "", CERTIFICATE_SIZES[DEFAULT_CERTIFICATE_SIZE])


def default_badge_elements(page_width: float, page_height: float) -> list[dict]:
    """Layout used when a template was saved without any elements"""
    width = page_width / PIXELS_TO_POINTS
    height = page_height / PIXELS_TO_POINTS
    return [
        {"id": "bg", "type": "shape", "x": 0, "y": 0, "width": width, "height": height, "backgroundColor": "#ffffff"},
        {
            "id": "name",
            "type": "text",
            "x": 20,
            "y": 40,
            "width": width - 40,
            "height": 50,
            "content": "{{name}}",
            "fontSize": 28,
            "fontWeight": "bold",
            "align": "center",
            "color": "#1a1a2e",
            "textCase": "uppercase",
            "zIndex": 1,
        },
        {
            "id": "ticket",
            "type": "text",
            "x": 20,
            "y": 95,
            "width": width - 40,
            "height": 30,
            "content": "{{ticket_type}}",
            "fontSize": 16,
            "align": "center",
            "color": "#4a4a68",
            "zIndex": 1,
        },
        {
            "id": "qr",
            "type": "qr_code",
            "x": (width - 80) / 2,
            "y": height - 110,
            "width": 80,
            "height": 80,
            "content": "{{checkin_url}}",
            "zIndex": 1,
        },
        {
            "id": "regnum",
            "type": "text",
            "x": 20,
            "y": height - 25,
            "width": width - 40,
            "height": 20,
            "content": "{{registration_number}}",
            "fontSize": 10,
            "align": "center",
            "color": "#888888",
            "zIndex": 1,
        },
    ]


def qr_image(data: str) -> ImageReader:
    qr = qrcode.QRCode(version=None, error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=10, border=1)
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return ImageReader(buffer)


class TemplateRenderer:
    """Render one page per registration from a badge or certificate template"""

    def __init__(self, elements: list[dict], page_size: tuple[float, float], background_color: Optional[str] = None):
        self.page_width, self.page_height = page_size
        self.background_color = background_color
        self.elements = sorted(
            (e for e in elements if e.get("visible", True) is not False),
            key=lambda e: e.get("zIndex") or 0,
        )

    def _box(self, element: dict) -> tuple[float, float, float, float]:
        """Designer box (top-left origin, pixels) -> PDF box (bottom-left origin, points)"""
        x = float(element.get("x") or 0) * PIXELS_TO_POINTS
        top = float(element.get("y") or 0) * PIXELS_TO_POINTS
        width = float(element.get("width") or 0) * PIXELS_TO_POINTS
        height = float(element.get("height") or 0) * PIXELS_TO_POINTS
        return x, self.page_height - top - height, width, height

    def _alpha(self, element: dict) -> float:
        opacity = element.get("opacity")
        return 1.0 if opacity is None else max(0.0, min(100.0, float(opacity))) / 100

    def _draw_text(self, pdf: canvas.Canvas, element: dict, values: dict) -> None:
        if not element.get("content"):
            return
        text = apply_text_case(render_template_text(element["content"], values), element.get("textCase"))
        x, y, width, height = self._box(element)
        font = "Helvetica-Bold" if element.get("fontWeight") == "bold" else "Helvetica"
        font_size = float(element.get("fontSize") or 14) * PIXELS_TO_POINTS
        text_width = stringWidth(text, font, font_size)

        align = element.get("align")
        if align == "center":
            text_x = x + (width - text_width) / 2
        elif align == "right":
            text_x = x + width - text_width
        else:
            text_x = x

        pdf.setFillColor(colors.Color(*hex_to_rgb(element.get("color") or "#000000")))
        pdf.setFont(font, font_size)
        pdf.drawString(text_x, y + (height - font_size) / 2, text)

    def _draw_shape(self, pdf: canvas.Canvas, element: dict) -> None:
        x, y, width, height = self._box(element)
        fill = element.get("backgroundColor") or element.get("color")
        border_width = float(element.get("borderWidth") or 0) * PIXELS_TO_POINTS
        if not fill and border_width <= 0:
            return

        if fill:
            pdf.setFillColor(colors.Color(*hex_to_rgb(fill), alpha=self._alpha(element)))
        if border_width > 0:
            pdf.setStrokeColor(colors.Color(*hex_to_rgb(element.get("borderColor") or "#000000")))
            pdf.setLineWidth(border_width)
        pdf.rect(x, y, width, height, stroke=1 if border_width > 0 else 0, fill=1 if fill else 0)

    def _draw_line(self, pdf: canvas.Canvas, element: dict) -> None:
        x, y, width, height = self._box(element)
        thickness = max(1.0, height)
        pdf.setFillColor(colors.Color(*hex_to_rgb(element.get("color") or "#000000"), alpha=self._alpha(element)))
        pdf.rect(x, y + (height - thickness) / 2, width, thickness, stroke=0, fill=1)

    def _draw_qr(self, pdf: canvas.Canvas, element: dict, values: dict) -> None:
        data = render_template_text(element.get("content") or "{{checkin_url}}", values)
        if not data:
            return
        x, y, width, height = self._box(element)
        size = min(width, height)
        pdf.drawImage(qr_image(data), x + (width - size) / 2, y + (height - size) / 2, width=size, height=size)

    def _draw_barcode(self, pdf: canvas.Canvas, element: dict, values: dict) -> None:
        content = render_template_text(element.get("content"), values)
        if not content:
            return
        x, y, width, height = self._box(element)
        pdf.setFillColor(colors.white)
        pdf.rect(x, y, width, height, stroke=0, fill=1)

        bars = len(content) * 2 + 10
        bar_width = width / bars
        pdf.setFillColor(colors.black)
        for i in range(bars):
            if i % 2 == 0 or ord(content[i % len(content)]) % 2 == 0:
                pdf.rect(x + i * bar_width, y + height * 0.2, bar_width * 0.8, height * 0.6, stroke=0, fill=1)

        font_size = min(height * 0.3, 12)
        pdf.setFillColor(colors.Color(*hex_to_rgb(element.get("color") or "#000000")))
        pdf.setFont("Helvetica", font_size)
        pdf.drawCentredString(x + width / 2, y + 2, content)

    def _draw_photo(self, pdf: canvas.Canvas, element: dict) -> None:
        x, y, width, height = self._box(element)
        pdf.setFillColor(colors.Color(0.9, 0.9, 0.9))
        pdf.setStrokeColor(colors.Color(0.7, 0.7, 0.7))
        pdf.setLineWidth(1)
        pdf.rect(x, y, width, height, stroke=1, fill=1)

    def _draw_image(self, pdf: canvas.Canvas, element: dict) -> None:
        url = element.get("imageUrl")
        if not url:
            return
        x, y, width, height = self._box(element)
        try:
            image = ImageReader(url)
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Could not load template image {url}: {e}")
            return
        img_width, img_height = image.getSize()
        scale = min(width / img_width, height / img_height)
        draw_w, draw_h = img_width * scale, img_height * scale
        pdf.drawImage(image, x + (width - draw_w) / 2, y + (height - draw_h) / 2, width=draw_w, height=draw_h, mask="auto")

    def draw_page(self, pdf: canvas.Canvas, values: dict, background: Optional[ImageReader] = None) -> None:
        if background is not None:
            pdf.drawImage(background, 0, 0, width=self.page_width, height=self.page_height)
        else:
            pdf.setFillColor(colors.Color(*hex_to_rgb(self.background_color or "#ffffff")))
            pdf.rect(0, 0, self.page_width, self.page_height, stroke=0, fill=1)

        for element in self.elements:
            kind = element.get("type")
            if kind == "text":
                self._draw_text(pdf, element, values)
            elif kind == "shape":
                self._draw_shape(pdf, element)
            elif kind == "line":
                self._draw_line(pdf, element)
            elif kind == "qr_code":
                self._draw_qr(pdf, element, values)
            elif kind == "barcode":
                self._draw_barcode(pdf, element, values)
            elif kind == "photo":
                self._draw_photo(pdf, element)
            elif kind == "image":
                self._draw_image(pdf, element)

    def render(self, pages: list[dict], background_url: Optional[str] = None, title: Optional[str] = None) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(self.page_width, self.page_height))
        if title:
            pdf.setTitle(title)

        background = None
        if background_url:
            try:
                background = ImageReader(background_url)
            except (OSError, ValueError) as e:
                logger.warning(f"⚠️ Could not load background {background_url}: {e}")

        for values in pages:
            self.draw_page(pdf, values, background)
            pdf.showPage()

        pdf.save()
        return buffer.getvalue()


def render_badges(template, registrations: list, event, base_url: Optional[str] = None) -> bytes:
    """One badge per page, at the template's size"""
    page_size = badge_page_size(template.size)
    data = template.template_data if isinstance(template.template_data, dict) else {}
    elements = data.get("elements") or []
    if not elements:
        logger.warning(f"⚠️ Badge template {template.id} has no elements - using default layout")
        elements = default_badge_elements(*page_size)

    renderer = TemplateRenderer(elements, page_size, data.get("backgroundColor"))
    pages = [registration_values(reg, event, base_url) for reg in registrations]
    logger.info(f"🪪 Rendering {len(pages)} badge(s) with template {template.id}")
    return renderer.render(pages, background_url=data.get("backgroundImage"), title=f"Badges - {event.name}")


def render_certificates(template, registrations: list, event, base_url: Optional[str] = None) -> bytes:
    """One certificate per page; the template background image covers the full page"""
    data = template.template_data if isinstance(template.template_data, dict) else {}
    renderer = TemplateRenderer(
        data.get("elements") or [], certificate_page_size(template.size), data.get("backgroundColor")
    )
    pages = [registration_values(reg, event, base_url) for reg in registrations]
    logger.info(f"📜 Rendering {len(pages)} certificate(s) with template {template.id}")
    return renderer.render(pages, background_url=template.background_url, title=f"Certificates - {event.name}")


def format_amount(amount: Optional[float], currency: Optional[str] = "INR") -> str:
    # Helvetica has no rupee glyph
    return f"{currency or 'INR'} {amount or 0:,.2f}"


def render_receipt(registration, event, payment=None) -> bytes:
    """A4 registration receipt with a QR code of the registration number"""
    width, height = CERTIFICATE_SIZES["A4-portrait"]
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(width, height))
    pdf.setTitle(f"Receipt - {registration.registration_number}")

    primary = colors.Color(0.133, 0.545, 0.133)
    text = colors.Color(0.2, 0.2, 0.2)
    muted = colors.Color(0.5, 0.5, 0.5)
    rule = colors.Color(0.9, 0.9, 0.9)

    def heading(label: str, y: float) -> None:
        pdf.setFont("Helvetica-Bold", 12)
        pdf.setFillColor(text)
        pdf.drawString(50, y, label)

    def rows(items: list[tuple[str, str]], y: float, value_x: float) -> float:
        for label, value in items:
            bold = label == "Total Amount"
            pdf.setFont("Helvetica-Bold", 10)
            pdf.setFillColor(muted)
            pdf.drawString(50, y, f"{label}:")
            pdf.setFont("Helvetica-Bold" if bold else "Helvetica", 12 if bold else 10)
            pdf.setFillColor(primary if bold else text)
            pdf.drawString(value_x, y, value or "-")
            y -= 18
        return y

    y = height - 50
    pdf.setFont("Helvetica-Bold", 24)
    pdf.setFillColor(primary)
    pdf.drawString(50, y, event.short_name or event.name)

    y -= 60
    pdf.setFont("Helvetica-Bold", 18)
    pdf.setFillColor(text)
    pdf.drawString(50, y, "REGISTRATION RECEIPT")

    y -= 30
    pdf.setFont("Helvetica-Bold", 12)
    pdf.setFillColor(primary)
    pdf.drawString(50, y, f"Registration No: {registration.registration_number}")
    pdf.drawImage(qr_image(registration.registration_number), width - 150, height - 180, 100, 100)

    y -= 20
    pdf.setStrokeColor(rule)
    pdf.line(50, y, width - 50, y)

    y -= 30
    heading("EVENT DETAILS", y)
    y -= 25
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawString(50, y, event.name or "Event")
    pdf.setFont("Helvetica", 10)
    pdf.setFillColor(muted)
    y -= 20
    pdf.drawString(50, y, f"Date: {format_event_dates(event)}")
    y -= 15
    venue = ", ".join(p for p in [event.venue_name, event.city, event.state] if p)
    pdf.drawString(50, y, f"Venue: {venue}")

    y -= 40
    heading("ATTENDEE DETAILS", y)
    y = rows(
        [
            ("Name", registration.attendee_name),
            ("Email", registration.attendee_email),
            ("Phone", registration.attendee_phone),
            ("Institution", registration.attendee_institution),
            ("Designation", registration.attendee_designation),
        ],
        y - 20,
        150,
    )

    ticket = registration.ticket_type
    currency = ticket.currency if ticket is not None else "INR"
    y -= 20
    heading("PAYMENT DETAILS", y)
    y = rows(
        [
            ("Ticket Type", ticket.name if ticket is not None else "Standard"),
            ("Quantity", str(registration.quantity or 1)),
            ("Base Amount", format_amount((registration.unit_price or 0) * (registration.quantity or 1), currency)),
            ("Discount", format_amount(registration.discount_amount, currency)),
            ("Tax (GST)", format_amount(registration.tax_amount, currency)),
            ("Total Amount", format_amount(registration.total_amount, currency)),
            ("Payment Status", registration.payment_status),
            ("Payment Method", payment.payment_method if payment is not None else None),
            ("Payment Reference", payment.payment_number if payment is not None else None),
        ],
        y - 20,
        200,
    )

    y -= 20
    pdf.setStrokeColor(rule)
    pdf.line(50, y + 10, width - 50, y + 10)
    heading("IMPORTANT INFORMATION", y)
    pdf.setFont("Helvetica", 9)
    pdf.setFillColor(muted)
    y -= 20
    for note in (
        "Please carry this receipt and a valid photo ID to the venue.",
        "Show the QR code at the registration desk for quick check-in.",
        "For any queries, contact the event organizers.",
    ):
        pdf.drawString(50, y, f"- {note}")
        y -= 15

    pdf.setFont("Helvetica", 8)
    pdf.drawString(50, 50, f"Generated on {datetime.utcnow().strftime('%d %B %Y %H:%M')} UTC")

    pdf.showPage()
    pdf.save()
    logger.info(f"🧾 Receipt rendered for registration {registration.registration_number}")
    return buffer.getvalue()
