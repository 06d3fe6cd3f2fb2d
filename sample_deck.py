from pptx import Presentation
from pptx.util import Inches, Pt
from pptx.dml.color import RGBColor
from pptx.enum.text import PP_ALIGN



# --- 1. Design Constants ---
# Colors
TEXT_COLOR = RGBColor(32, 33, 36)
# Slide Dimensions (16:9)
SLIDE_WIDTH = Inches(16)
SLIDE_HEIGHT = Inches(9)
# Margins
MARGIN_LEFT = Inches(1.0)
MARGIN_RIGHT = Inches(1.0)
MARGIN_TOP = Inches(0.8)
MARGIN_BOTTOM = Inches(0.8)
# Font Sizes
FONT_HEADLINE = 'Arial'
FONT_BODY = 'Arial'
TITLE_FONT_SIZE = Pt(60)
SLIDE_TITLE_FONT_SIZE = Pt(36)
BODY_FONT_SIZE = Pt(20)
BLANK_LAYOUT_INDEX = 6

# --- 2. Slide Drawing Functions ---

def add_speaker_notes(slide, notes_text):
    if notes_text:
        slide.notes_slide.notes_text_frame.text = notes_text


def _add_title_box(slide, text, top, height, font_size, alignment):
    shape = slide.shapes.add_textbox(MARGIN_LEFT, top, SLIDE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT, height)
    tf = shape.text_frame
    tf.word_wrap = True
    p = tf.paragraphs[0]
    p.alignment = alignment
    p.font.size = font_size
    p.font.name = FONT_HEADLINE
    p.font.color.rgb = TEXT_COLOR
    p.font.bold = True
    p.text = text
    return shape


def draw_title_slide(slide, data):
    """Draws a title slide."""
    _add_title_box(slide, data.get("title", ""), Inches(3.5), Inches(2), TITLE_FONT_SIZE, PP_ALIGN.CENTER)


def draw_content_slide(slide, data):
    """Draws a content slide: title, bullet points and an optional picture."""
    _add_title_box(slide, data.get("title", ""), MARGIN_TOP, Inches(1), SLIDE_TITLE_FONT_SIZE, PP_ALIGN.LEFT)

    body_top = MARGIN_TOP + Inches(1.2)
    body_height = SLIDE_HEIGHT - body_top - MARGIN_BOTTOM
    image_path = data.get("image")
    body_width = SLIDE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT
    if image_path:
        body_width = body_width / 2

    body_tf = slide.shapes.add_textbox(MARGIN_LEFT, body_top, body_width, body_height).text_frame
    body_tf.word_wrap = True
    for index, point_text in enumerate(data.get("points", [])):
        p = body_tf.paragraphs[0] if index == 0 else body_tf.add_paragraph()
        p.font.size = BODY_FONT_SIZE
        p.font.name = FONT_BODY
        p.text = point_text

    if image_path:
        slide.shapes.add_picture(image_path, MARGIN_LEFT + body_width, body_top, width=body_width)


def draw_closing_slide(slide, data):
    """Draws a simple closing slide with 'Thank you'."""
    _add_title_box(slide, "Thank you", Inches(3.5), Inches(2), TITLE_FONT_SIZE, PP_ALIGN.CENTER)


# --- 3. Main Generation Function ---

def create_presentation(slides_data):
    """Creates a new presentation from slide data."""
    prs = Presentation()
    prs.slide_width = SLIDE_WIDTH
    prs.slide_height = SLIDE_HEIGHT

    slide_draw_functions = {
        "title": draw_title_slide,
        "content": draw_content_slide,
        "closing": draw_closing_slide,
    }

    for slide_data in slides_data:
        slide_type = slide_data.get("type")
        slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT_INDEX])
        if slide_type not in slide_draw_functions:
            raise ValueError(f"Unsupported slide type '{slide_type}'")
        slide_draw_functions[slide_type](slide, slide_data)
        add_speaker_notes(slide, slide_data.get("notes"))

    return prs


def save_presentation(slides_data, path):
    create_presentation(slides_data).save(path)
    return path
