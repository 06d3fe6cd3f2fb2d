import os

# --- Storage ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./db/presentations.db")
MIRROR_DB_PATH = os.getenv("MIRROR_DB_PATH", os.path.join("db", "presentation_data.sqlite"))
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads"))

# --- Upload limits ---
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))
ALLOWED_CONTENT_TYPES = (
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
)
ALLOWED_EXTENSIONS = (".ppt", ".pptx")

# --- External converters ---
SOFFICE_BINARY = os.getenv("SOFFICE_BINARY", "soffice")
PDFTOPPM_BINARY = os.getenv("PDFTOPPM_BINARY", "pdftoppm")
IMAGEMAGICK_BINARY = os.getenv("IMAGEMAGICK_BINARY", "convert")
CONVERTER_TIMEOUT_SECONDS = float(os.getenv("CONVERTER_TIMEOUT_SECONDS", "120"))

# --- Fallback extraction ---
DEFAULT_SLIDE_COUNT = 10
MEDIA_FOLDER_FALLBACK = os.getenv("MEDIA_FOLDER_FALLBACK", "true").lower() in ("1", "true", "yes")

# --- Client ---
SERVICE_URL = os.getenv("SERVICE_URL", "http://localhost:8080")
