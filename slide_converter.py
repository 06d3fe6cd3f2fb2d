"""Raster slide images via external converters.

The deck is exported to PDF once with the office suite, then a fixed list of
rasterization strategies is tried in priority order against that PDF. The
first strategy that yields at least one image wins and its images are
persisted in slide order.
"""

import base64
import logging
import os
import re
import shutil
import subprocess
import uuid
from typing import Callable, List, Optional, Sequence

import config

# (slide_number, slide_id, image_base64) -> None
PersistSlide = Callable[[int, str, str], object]

SLIDE_NUMBER_PATTERNS = (
    re.compile(r"slide-(\d+)\."),
    re.compile(r"slide(\d+)\."),
    re.compile(r"(\d+)"),
)


class ConversionError(Exception):
    """An external tool was missing, failed, timed out or produced nothing."""


def slide_number_from_filename(filename: str) -> int:
    """Slide number embedded in a converter's output name, or 0 if there is none."""
    for pattern in SLIDE_NUMBER_PATTERNS:
        match = pattern.search(filename)
        if match:
            return int(match.group(1))
    return 0


def sort_slide_files(filenames: Sequence[str]) -> List[str]:
    # Stable: names without a number keep their listing order at rank 0.
    return sorted(filenames, key=slide_number_from_filename)


class ToolRunner:
    """Runs one external command, blocking, with a hard timeout."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else config.CONVERTER_TIMEOUT_SECONDS

    def run(self, args: List[str]) -> subprocess.CompletedProcess:
        if shutil.which(args[0]) is None:
            raise ConversionError(f"'{args[0]}' is not installed")
        logging.debug(f"Running: {' '.join(args)}")
        try:
            return subprocess.run(
                args,
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ConversionError(f"'{args[0]}' timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="replace").strip()
            raise ConversionError(f"'{args[0]}' exited with {e.returncode}: {stderr}") from e
        except OSError as e:
            raise ConversionError(f"'{args[0]}' could not be started: {e}") from e


class PdfExporter:
    """Exports a deck to <output_dir>/presentation.pdf with the office suite."""

    PDF_NAME = "presentation.pdf"

    def __init__(self, runner: ToolRunner, binary: Optional[str] = None):
        self.runner = runner
        self.binary = binary or config.SOFFICE_BINARY

    def export(self, source_path: str, output_dir: str) -> str:
        self.runner.run([
            self.binary, "--headless", "--convert-to", "pdf", "--outdir", output_dir, source_path,
        ])
        pdf_path = os.path.join(output_dir, self.PDF_NAME)
        # The office suite keeps the source base name.
        base_name = os.path.splitext(os.path.basename(source_path))[0]
        generated_path = os.path.join(output_dir, f"{base_name}.pdf")
        if os.path.exists(generated_path) and generated_path != pdf_path:
            os.replace(generated_path, pdf_path)
        if not os.path.exists(pdf_path):
            raise ConversionError("PDF export produced no file")
        return pdf_path


class ConversionStrategy:
    """Rasterizes a PDF into one image per page inside images_dir."""

    name = "base"
    extensions = (".png",)

    def __init__(self, runner: ToolRunner):
        self.runner = runner

    def command(self, pdf_path: str, images_dir: str) -> List[str]:
        raise NotImplementedError

    def attempt(self, pdf_path: str, images_dir: str) -> List[str]:
        """Returns produced image paths sorted by slide number. Raises ConversionError."""
        self.runner.run(self.command(pdf_path, images_dir))
        produced = [
            filename for filename in os.listdir(images_dir)
            if filename.lower().endswith(self.extensions)
        ]
        return [os.path.join(images_dir, filename) for filename in sort_slide_files(produced)]


class PdftoppmStrategy(ConversionStrategy):
    def __init__(self, runner: ToolRunner, dpi: int, binary: Optional[str] = None):
        super().__init__(runner)
        self.dpi = dpi
        self.binary = binary or config.PDFTOPPM_BINARY
        self.name = f"pdftoppm@{dpi}dpi"

    def command(self, pdf_path, images_dir):
        return [self.binary, "-png", "-r", str(self.dpi), pdf_path, os.path.join(images_dir, "slide")]


class ImageMagickStrategy(ConversionStrategy):
    name = "imagemagick"
    extensions = (".jpg",)

    def __init__(self, runner: ToolRunner, binary: Optional[str] = None):
        super().__init__(runner)
        self.binary = binary or config.IMAGEMAGICK_BINARY

    def command(self, pdf_path, images_dir):
        return [
            self.binary, "-density", "96", "-quality", "85", "-background", "white", "-alpha", "remove",
            pdf_path, os.path.join(images_dir, "slide-%d.jpg"),
        ]


def default_strategies(runner: ToolRunner) -> List[ConversionStrategy]:
    return [
        PdftoppmStrategy(runner, dpi=150),
        PdftoppmStrategy(runner, dpi=96),
        ImageMagickStrategy(runner),
    ]


def _remove_file(path: str):
    try:
        os.remove(path)
    except OSError as e:
        logging.error(f"Error cleaning up {path}: {e}")


def _reset_directory(path: str):
    if os.path.isdir(path):
        shutil.rmtree(path)
    os.makedirs(path)


class ConversionChain:
    def __init__(self, runner: Optional[ToolRunner] = None,
                 strategies: Optional[List[ConversionStrategy]] = None,
                 exporter: Optional[PdfExporter] = None):
        self.runner = runner or ToolRunner()
        self.exporter = exporter or PdfExporter(self.runner)
        self.strategies = strategies if strategies is not None else default_strategies(self.runner)

    def run(self, source_path: str, workspace: str, persist: PersistSlide) -> int:
        """Returns the number of slides persisted; 0 means every strategy failed."""
        try:
            logging.info("Converting presentation to PDF...")
            pdf_path = self.exporter.export(source_path, workspace)
        except ConversionError as e:
            logging.warning(f"PDF export failed, skipping raster strategies: {e}")
            return 0

        images_dir = os.path.join(workspace, "images")
        try:
            for strategy in self.strategies:
                _reset_directory(images_dir)
                try:
                    image_paths = strategy.attempt(pdf_path, images_dir)
                except ConversionError as e:
                    logging.warning(f"Strategy {strategy.name} failed: {e}")
                    continue

                logging.info(f"Strategy {strategy.name} produced {len(image_paths)} images")
                if image_paths:
                    return self._persist_images(image_paths, persist)
            return 0
        finally:
            _remove_file(pdf_path)

    def _persist_images(self, image_paths: List[str], persist: PersistSlide) -> int:
        for slide_number, image_path in enumerate(image_paths, start=1):
            with open(image_path, "rb") as f:
                image_base64 = base64.b64encode(f.read()).decode("ascii")
            slide_id = str(uuid.uuid4())
            persist(slide_number, slide_id, image_base64)
            logging.info(f"Saved slide {slide_number} of {len(image_paths)} with ID {slide_id}")
            _remove_file(image_path)
        return len(image_paths)
