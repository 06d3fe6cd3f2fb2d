"""Direct reads of the .pptx zip container.

Covers the slide-count estimate used to size placeholders and the fallback
that turns each slide's text runs and pictures into a schematic SVG when no
external converter produced images. Slide markup is scanned with regular
expressions; no XML object model is built.
"""

import html
import logging
import posixpath
import re
import uuid
import zipfile
from typing import Callable, List, Optional, Tuple

import config
import slide_renderer

SLIDE_XML_PATTERN = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
PRESENTATION_XML = "ppt/presentation.xml"
SLIDE_ID_PATTERN = re.compile(r"<p:sldId\s")
TEXT_RUN_PATTERN = re.compile(r"<a:t(?:\s[^>]*)?>([^<]*)</a:t>")
IMAGE_REF_PATTERN = re.compile(r'r:embed="(rId\d+)"')
RELATIONSHIP_PATTERN = re.compile(r"<Relationship\b([^>]*)/?>")
MEDIA_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif")
DEFAULT_TITLE = "Slide Title"

# (slide_number, slide_id, image_base64) -> None
PersistSlide = Callable[[int, str, str], object]


class PresentationArchive:
    """Read-only view over a presentation zip."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._zip = zipfile.ZipFile(file_path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self._zip.close()

    def names(self) -> List[str]:
        return self._zip.namelist()

    def has(self, name: str) -> bool:
        try:
            self._zip.getinfo(name)
        except KeyError:
            return False
        return True

    def read_bytes(self, name: str) -> bytes:
        return self._zip.read(name)

    def read_text(self, name: str) -> str:
        return self._zip.read(name).decode("utf-8", errors="replace")

    def slide_entries(self) -> List[str]:
        """Slide XML entries in document order (by numeric suffix, stable)."""
        entries = [name for name in self.names() if SLIDE_XML_PATTERN.match(name)]
        return sorted(entries, key=slide_number_from_entry)


def slide_number_from_entry(entry_name: str) -> int:
    match = re.search(r"slide(\d+)\.xml$", entry_name)
    return int(match.group(1)) if match else 0


# --- Slide-count detection ---

def get_slide_count(file_path: str) -> int:
    """Best-effort slide count. Never raises; falls back to DEFAULT_SLIDE_COUNT."""
    if not file_path.lower().endswith(".pptx"):
        return config.DEFAULT_SLIDE_COUNT

    try:
        with PresentationArchive(file_path) as archive:
            slide_entries = archive.slide_entries()
            if slide_entries:
                return len(slide_entries)

            if archive.has(PRESENTATION_XML):
                content = archive.read_text(PRESENTATION_XML)
                slide_ids = len(SLIDE_ID_PATTERN.findall(content))
                if slide_ids > 0:
                    return slide_ids
    except Exception as e:
        logging.error(f"Error getting slide count for {file_path}: {e}", exc_info=True)

    return config.DEFAULT_SLIDE_COUNT


# --- Slide content extraction ---

def extract_text_from_slide_xml(slide_xml: str) -> Tuple[str, List[str]]:
    """Returns (title, remaining text runs). The title is the first run."""
    runs = [html.unescape(run) for run in TEXT_RUN_PATTERN.findall(slide_xml)]
    title = runs[0] if runs and runs[0] else DEFAULT_TITLE
    content = [run.strip() for run in runs if run.strip() and run != title]
    return title, content


def extract_image_references(slide_xml: str) -> List[str]:
    return IMAGE_REF_PATTERN.findall(slide_xml)


def slide_rels_entry(slide_entry: str) -> str:
    directory, filename = posixpath.split(slide_entry)
    return f"{directory}/_rels/{filename}.rels"


def _parse_relationships(rels_xml: str) -> dict:
    targets = {}
    for attributes in RELATIONSHIP_PATTERN.findall(rels_xml):
        rel_id = re.search(r'\bId="([^"]+)"', attributes)
        target = re.search(r'\bTarget="([^"]+)"', attributes)
        if rel_id and target:
            targets[rel_id.group(1)] = target.group(1)
    return targets


def resolve_media_path(target: str) -> str:
    if target.startswith("../"):
        return f"ppt/{target[3:]}"
    return f"ppt/slides/{target}"


def find_slide_images(archive: PresentationArchive, slide_entry: str, image_refs: List[str],
                      media_fallback: Optional[bool] = None) -> List[bytes]:
    """Loads the pictures a slide references through its relationship file."""
    if media_fallback is None:
        media_fallback = config.MEDIA_FOLDER_FALLBACK

    images = []
    rels_name = slide_rels_entry(slide_entry)
    if image_refs and archive.has(rels_name):
        targets = _parse_relationships(archive.read_text(rels_name))
        for rel_id in image_refs:
            target = targets.get(rel_id)
            if not target:
                continue
            media_path = resolve_media_path(target)
            if archive.has(media_path):
                images.append(archive.read_bytes(media_path))
            else:
                logging.warning(f"Relationship {rel_id} of {slide_entry} points at missing {media_path}")

    if not images and media_fallback:
        # Unfiltered: may attach pictures that belong to other slides.
        for name in archive.names():
            if name.startswith("ppt/media/") and name.lower().endswith(MEDIA_EXTENSIONS):
                images.append(archive.read_bytes(name))

    return images


# --- Fallback extraction ---

def persist_placeholders(count: int, persist: PersistSlide) -> int:
    for slide_number in range(1, count + 1):
        image = slide_renderer.create_placeholder_image(slide_number, count)
        persist(slide_number, str(uuid.uuid4()), image)
    return count


def render_archive_slides(file_path: str, total_slides: int) -> List[str]:
    """Renders one base64 SVG per slide XML. Raises on any archive problem."""
    if not file_path.lower().endswith(".pptx"):
        raise ValueError("Only PPTX files are supported")

    rendered = []
    with PresentationArchive(file_path) as archive:
        slide_entries = archive.slide_entries()
        logging.info(f"Found {len(slide_entries)} slide XML entries in {file_path}")
        footer_total = total_slides if total_slides > 0 else len(slide_entries)

        for index, entry in enumerate(slide_entries):
            slide_xml = archive.read_text(entry)
            title, content = extract_text_from_slide_xml(slide_xml)
            images = find_slide_images(archive, entry, extract_image_references(slide_xml))
            svg = slide_renderer.render_slide_svg(index + 1, footer_total, title, content, images)
            rendered.append(slide_renderer.encode_svg(svg))
    return rendered


def extract_slides_from_archive(file_path: str, total_slides: int, persist: PersistSlide) -> int:
    """
    Persists one schematic slide per slide XML and returns how many were saved.

    Rendering happens fully in memory before anything is persisted, so a
    failure part-way leaves no partial set behind; the whole presentation is
    then replaced by uniform placeholders.
    """
    try:
        rendered = render_archive_slides(file_path, total_slides)
    except Exception as e:
        count = total_slides if total_slides > 0 else config.DEFAULT_SLIDE_COUNT
        logging.error(f"Error extracting slides from archive, creating {count} placeholders: {e}", exc_info=True)
        return persist_placeholders(count, persist)

    if not rendered:
        total = total_slides if total_slides > 0 else 1
        logging.info("No slides found in the PPTX file, creating a default placeholder")
        persist(1, str(uuid.uuid4()), slide_renderer.create_placeholder_image(1, total))
        return 1

    for slide_number, image in enumerate(rendered, start=1):
        persist(slide_number, str(uuid.uuid4()), image)
    return len(rendered)
