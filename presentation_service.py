import logging
import os
import shutil
from contextlib import contextmanager
from typing import List, Optional

import config
import pptx_archive
from slide_converter import ConversionChain
from storage import PersistResult, PresentationStore


class PresentationProcessingError(Exception):
    """No extraction path produced a single slide."""


class SlideSink:
    """Persist-slide callable bound to one presentation; records every write."""

    def __init__(self, store: PresentationStore, presentation_id: str):
        self.store = store
        self.presentation_id = presentation_id
        self.results: List[PersistResult] = []

    def __call__(self, slide_number: int, slide_id: str, image_base64: str) -> PersistResult:
        result = self.store.save_slide(self.presentation_id, slide_number, slide_id, image_base64)
        self.results.append(result)
        return result

    @property
    def count(self) -> int:
        return len(self.results)

    @property
    def mirror_failures(self) -> List[PersistResult]:
        return [result for result in self.results if not result.mirror_ok]


@contextmanager
def scratch_directory(presentation_id: str, base_dir: Optional[str] = None):
    """Per-presentation working directory, removed on every exit path."""
    path = os.path.join(base_dir or config.UPLOAD_DIR, presentation_id)
    os.makedirs(path, exist_ok=True)
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError as e:
            logging.error(f"Error cleaning up scratch directory {path}: {e}")


def _remove_upload(file_path: str):
    try:
        if os.path.exists(file_path):
            os.remove(file_path)
    except OSError as e:
        logging.error(f"Error cleaning up uploaded file {file_path}: {e}")


def process_presentation(filename: str, file_path: str, store: PresentationStore,
                         chain: Optional[ConversionChain] = None) -> str:
    """
    Creates a presentation from an uploaded deck and stores one image per slide.

    Tries the external conversion chain first and falls back to rendering the
    slides straight from the archive. The uploaded file is deleted whatever
    happens; errors are re-raised after cleanup.

    Args:
        filename: The original upload name, used as the presentation name.
        file_path: Temporary path of the uploaded file.
        store: Primary store (with its mirror).
        chain: Conversion chain; a default one using the installed tools if omitted.

    Returns:
        The new presentation id.
    """
    chain = chain or ConversionChain()
    try:
        logging.info(f"Processing presentation: {filename}")
        presentation_id = store.create_presentation(filename)
        sink = SlideSink(store, presentation_id)

        with scratch_directory(presentation_id) as workspace:
            total_slides = pptx_archive.get_slide_count(file_path)
            logging.info(f"Detected {total_slides} slides in the presentation")

            chain.run(file_path, workspace, sink)
            if sink.count == 0:
                logging.info("Conversion tools produced nothing, using archive-based extraction...")
                pptx_archive.extract_slides_from_archive(file_path, total_slides, sink)

        if sink.count == 0:
            raise PresentationProcessingError(f"No slides could be extracted from {filename}")

        if sink.mirror_failures:
            logging.warning(
                f"SQLite mirror is missing {len(sink.mirror_failures)} of {sink.count} slides "
                f"for presentation {presentation_id}"
            )
        logging.info(f"Stored {sink.count} slides for presentation {presentation_id}")
        return presentation_id
    except Exception as e:
        logging.error(f"Error processing presentation {filename}: {e}", exc_info=True)
        raise
    finally:
        _remove_upload(file_path)
