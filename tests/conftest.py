"""Shared fixtures.

Environment variables are set before any application module is imported so
that ``config`` and ``main`` pick up throwaway locations.
"""

import os
import subprocess
import tempfile
import zipfile

_TEST_ROOT = tempfile.mkdtemp(prefix="slide-annotator-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TEST_ROOT, 'primary.db')}")
os.environ.setdefault("MIRROR_DB_PATH", os.path.join(_TEST_ROOT, "mirror.sqlite"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TEST_ROOT, "uploads"))
os.environ.setdefault("CONVERTER_TIMEOUT_SECONDS", "5")

import pytest

import config
import database
import sample_deck
from slide_converter import ConversionChain, ConversionError, ToolRunner
from sqlite_mirror import SQLiteMirror
from storage import PresentationStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 16
GIF_BYTES = b"GIF89a" + b"\x00" * 16


class FakeRunner(ToolRunner):
    """Stands in for soffice, pdftoppm and ImageMagick.

    ``failing`` holds tool names ("soffice", "pdftoppm", "convert") or
    "pdftoppm@<dpi>" entries that should raise ConversionError.
    """

    def __init__(self, pages=3, failing=(), raster_names=None):
        super().__init__(timeout=1)
        self.pages = pages
        self.failing = set(failing)
        self.raster_names = raster_names
        self.calls = []

    def run(self, args):
        self.calls.append(list(args))
        tool = os.path.basename(args[0])
        key = tool
        if tool == "pdftoppm":
            key = f"pdftoppm@{args[args.index('-r') + 1]}"
        if tool in self.failing or key in self.failing:
            raise ConversionError(f"{key} failed")

        if tool == "soffice":
            outdir = args[args.index("--outdir") + 1]
            base_name = os.path.splitext(os.path.basename(args[-1]))[0]
            with open(os.path.join(outdir, f"{base_name}.pdf"), "wb") as f:
                f.write(b"%PDF-1.4 fake")
        elif tool == "pdftoppm":
            images_dir = os.path.dirname(args[-1])
            names = self.raster_names or [f"slide-{i:02d}.png" for i in range(1, self.pages + 1)]
            for name in names:
                with open(os.path.join(images_dir, name), "wb") as f:
                    f.write(PNG_BYTES + name.encode())
        elif tool == "convert":
            pattern = args[-1]
            for i in range(self.pages):
                name = pattern % i
                with open(name, "wb") as f:
                    f.write(JPEG_BYTES + os.path.basename(name).encode())
        return subprocess.CompletedProcess(args, 0, b"", b"")

    def tools_called(self):
        return [os.path.basename(call[0]) for call in self.calls]


class SlideRecorder:
    """Persist-slide callable that keeps everything in memory."""

    def __init__(self):
        self.slides = []

    def __call__(self, slide_number, slide_id, image_base64):
        self.slides.append((slide_number, slide_id, image_base64))

    @property
    def numbers(self):
        return [slide[0] for slide in self.slides]


@pytest.fixture
def store(tmp_path):
    engine = database.create_db_engine(f"sqlite:///{tmp_path / 'primary.db'}")
    database.init_db(engine)
    return PresentationStore(
        database.create_session_factory(engine),
        SQLiteMirror(str(tmp_path / "mirror.sqlite")),
    )


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(config, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def recorder():
    return SlideRecorder()


@pytest.fixture
def fake_runner_cls():
    return FakeRunner


@pytest.fixture
def make_chain():
    def _make(**kwargs):
        runner = FakeRunner(**kwargs)
        return ConversionChain(runner=runner), runner
    return _make


@pytest.fixture
def offline_chain():
    """A chain whose office suite is missing, so nothing converts."""
    return ConversionChain(runner=FakeRunner(failing={"soffice"}))


@pytest.fixture
def make_deck(tmp_path):
    """Writes a .pptx with one content slide per title using python-pptx."""
    def _make(titles, name="deck.pptx"):
        slides_data = [
            {"type": "content", "title": title, "points": [f"{title} point one", f"{title} point two"]}
            for title in titles
        ]
        return sample_deck.save_presentation(slides_data, str(tmp_path / name))
    return _make


@pytest.fixture
def make_zip(tmp_path):
    """Writes a hand-built archive from a {entry_name: bytes|str} mapping."""
    def _make(entries, name="deck.pptx"):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as archive:
            for entry_name, content in entries.items():
                archive.writestr(entry_name, content)
        return str(path)
    return _make
