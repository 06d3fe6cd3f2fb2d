import base64
import math
from xml.sax.saxutils import escape

# --- 1. Design Constants ---
# Colors
BANNER_BLUE = "#4a86e8"
GRADIENT_TOP = "#f0f4ff"
GRADIENT_BOTTOM = "#e0e8ff"
BORDER_GRAY = "#dddddd"
TEXT_COLOR = "#333333"
MUTED_TEXT_COLOR = "#666666"
CARD_FILL = "#f9f9f9"
WHITE = "white"
# Slide Dimensions (4:3)
SLIDE_WIDTH = 800
SLIDE_HEIGHT = 600
# Margins
MARGIN_LEFT = 50
CONTENT_TOP = 150
TEXT_MAX_WIDTH = 700
# Font Sizes
FONT_FAMILY = "Arial"
TITLE_FONT_SIZE = 28
BODY_FONT_SIZE = 16
FOOTER_FONT_SIZE = 14
LINE_HEIGHT_FACTOR = 1.2
CHAR_WIDTH_FACTOR = 0.6
# Embedded images
IMAGE_WIDTH = 200
IMAGE_HEIGHT = 150
IMAGE_COLUMN_STEP = 250
IMAGE_ROW_STEP = 180
IMAGES_PER_ROW = 3

# --- 2. Helper Functions ---

def embedded_image_mime(image_bytes):
    """Picks the data-URI MIME type for an embedded image from its magic number."""
    if image_bytes[:2] == b"\xff\xd8":
        return "image/jpeg"
    if image_bytes[:4] == b"\x89PNG":
        return "image/png"
    if image_bytes[:3] == b"GIF":
        return "image/gif"
    return "image/png"


def slide_content_type(image_bytes):
    """Content type used when serving a stored slide image."""
    head = image_bytes[:256].lstrip()
    if head.startswith(b"<svg") or head.startswith(b"<?xml"):
        return "image/svg+xml"
    return embedded_image_mime(image_bytes)


def encode_svg(svg):
    return base64.b64encode(svg.encode("utf-8")).decode("ascii")


def wrap_text(text, font_size, max_width=TEXT_MAX_WIDTH):
    """Naive word wrap based on an average glyph width estimate."""
    chars_per_line = max(1, math.floor(max_width / (font_size * CHAR_WIDTH_FACTOR)))
    lines = []
    current_line = ""
    for word in text.split(" "):
        if current_line and len(current_line) + len(word) + 1 > chars_per_line:
            lines.append(current_line)
            current_line = word
        else:
            current_line = f"{current_line} {word}" if current_line else word
    if current_line:
        lines.append(current_line)
    return lines


def _svg_document(body):
    return f"""<?xml version="1.0" encoding="UTF-8" standalone="no"?>
<svg width="{SLIDE_WIDTH}" height="{SLIDE_HEIGHT}" xmlns="http://www.w3.org/2000/svg">
  <defs>
    <linearGradient id="slideGradient" x1="0%" y1="0%" x2="0%" y2="100%">
      <stop offset="0%" style="stop-color:{GRADIENT_TOP};stop-opacity:1" />
      <stop offset="100%" style="stop-color:{GRADIENT_BOTTOM};stop-opacity:1" />
    </linearGradient>
  </defs>
  <rect width="{SLIDE_WIDTH}" height="{SLIDE_HEIGHT}" fill="url(#slideGradient)"/>
  <rect width="{SLIDE_WIDTH - 2}" height="{SLIDE_HEIGHT - 2}" x="1" y="1" fill="none" stroke="{BORDER_GRAY}" stroke-width="2"/>
{body}
</svg>
"""


def _banner(title):
    return (
        f'  <rect x="0" y="40" width="{SLIDE_WIDTH}" height="70" fill="{BANNER_BLUE}" opacity="0.8"/>\n'
        f'  <text x="{MARGIN_LEFT}" y="85" font-family="{FONT_FAMILY}" font-size="{TITLE_FONT_SIZE}" '
        f'font-weight="bold" fill="{WHITE}">{escape(title)}</text>'
    )


def _footer(slide_number, total_slides):
    return (
        f'  <text x="{SLIDE_WIDTH - MARGIN_LEFT}" y="{SLIDE_HEIGHT - 20}" font-family="{FONT_FAMILY}" '
        f'font-size="{FOOTER_FONT_SIZE}" text-anchor="end" fill="{MUTED_TEXT_COLOR}">'
        f'{slide_number} / {total_slides}</text>'
    )


def _text_line(text, x, y, font_size, fill=TEXT_COLOR):
    return (
        f'  <text x="{x}" y="{y:g}" font-family="{FONT_FAMILY}" font-size="{font_size}" '
        f'fill="{fill}">{escape(text)}</text>'
    )


# --- 3. Slide Drawing Functions ---

def render_slide_svg(slide_number, total_slides, title, lines, images):
    """
    Draws a schematic slide: banner title, wrapped body text, and the
    slide's images (raw bytes) tiled three per row below the text.
    """
    elements = [_banner(title)]

    line_step = BODY_FONT_SIZE * LINE_HEIGHT_FACTOR
    y = CONTENT_TOP
    for line in lines:
        for wrapped in wrap_text(line, BODY_FONT_SIZE):
            elements.append(_text_line(wrapped, MARGIN_LEFT, y, BODY_FONT_SIZE))
            y += line_step
        y += BODY_FONT_SIZE * 0.5

    if images:
        images_top = y + (20 if lines else 10)
        for index, image_bytes in enumerate(images):
            x = MARGIN_LEFT + (index % IMAGES_PER_ROW) * IMAGE_COLUMN_STEP
            image_y = images_top + (index // IMAGES_PER_ROW) * IMAGE_ROW_STEP
            mime = embedded_image_mime(image_bytes)
            image_base64 = base64.b64encode(image_bytes).decode("ascii")
            elements.append(
                f'  <image x="{x}" y="{image_y:g}" width="{IMAGE_WIDTH}" height="{IMAGE_HEIGHT}" '
                f'href="data:{mime};base64,{image_base64}" />'
            )
    elif not lines:
        elements.append(
            f'  <rect x="100" y="180" width="600" height="300" fill="#f5f5f5" stroke="#cccccc" stroke-width="1" />\n'
            f'  <text x="400" y="330" font-family="{FONT_FAMILY}" font-size="{BODY_FONT_SIZE}" '
            f'text-anchor="middle" fill="{MUTED_TEXT_COLOR}">Slide Content</text>'
        )

    elements.append(_footer(slide_number, total_slides))
    return _svg_document("\n".join(elements))


def render_placeholder_svg(slide_number, total_slides):
    """Draws a content-free slide labelled with its position."""
    body = "\n".join([
        _banner(f"Slide {slide_number}"),
        f'  <rect x="150" y="200" width="500" height="200" rx="8" ry="8" fill="{CARD_FILL}" '
        f'stroke="{BORDER_GRAY}" stroke-width="1"/>',
        f'  <text x="400" y="270" font-family="{FONT_FAMILY}" font-size="22" text-anchor="middle" '
        f'fill="{TEXT_COLOR}" font-weight="bold">Slide {slide_number} of {total_slides}</text>',
        f'  <text x="400" y="310" font-family="{FONT_FAMILY}" font-size="{BODY_FONT_SIZE}" text-anchor="middle" '
        f'fill="{MUTED_TEXT_COLOR}">This slide will display content from your presentation</text>',
        f'  <text x="400" y="340" font-family="{FONT_FAMILY}" font-size="{BODY_FONT_SIZE}" text-anchor="middle" '
        f'fill="{MUTED_TEXT_COLOR}">You can add annotations using the form on the right</text>',
        _footer(slide_number, total_slides),
    ])
    return _svg_document(body)


def create_placeholder_image(slide_number, total_slides):
    """Returns the base64 placeholder for one slide."""
    return encode_svg(render_placeholder_svg(slide_number, total_slides))
