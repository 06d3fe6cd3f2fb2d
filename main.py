import os
import base64
import binascii
import uuid
from typing import Dict, List, Optional

from fastapi import FastAPI, File, HTTPException, Response, UploadFile
from starlette.concurrency import run_in_threadpool

# Local imports
import config
import database
import presentation_service
import slide_renderer
from models import (
    AnnotationsSaved,
    MessageResponse,
    MirrorTableResponse,
    PresentationOut,
    SlideOut,
    Tag,
    UploadResponse,
)
from slide_converter import ConversionChain
from sqlite_mirror import SQLiteMirror
from storage import PresentationNotFoundError, PresentationStore, SlideNotFoundError


# Logging configuration
import logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

# --- Storage ---
engine = database.create_db_engine(config.DATABASE_URL)
database.init_db(engine)
store = PresentationStore(
    database.create_session_factory(engine),
    SQLiteMirror(config.MIRROR_DB_PATH),
)
conversion_chain = ConversionChain()

IMAGE_CACHE_CONTROL = "public, max-age=86400"
UPLOAD_CHUNK_SIZE = 1024 * 1024

# --- FastAPI App ---
app = FastAPI(
    title="Slide Annotation Service",
    description="Upload PowerPoint decks, render their slides and collect key/value annotations per slide.",
    version="1.0.0"
)


def _is_presentation_upload(upload: UploadFile) -> bool:
    extension = os.path.splitext(upload.filename or "")[1].lower()
    return upload.content_type in config.ALLOWED_CONTENT_TYPES or extension in config.ALLOWED_EXTENSIONS


class UploadTooLargeError(Exception):
    pass


def _save_upload(upload: UploadFile, max_bytes: int) -> str:
    """
    Copies the upload into UPLOAD_DIR under a unique name, keeping its extension.

    Stops as soon as more than max_bytes have been read; the partial file is
    removed and UploadTooLargeError raised.
    """
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    extension = os.path.splitext(upload.filename or "")[1].lower()
    target = os.path.join(config.UPLOAD_DIR, f"{uuid.uuid4().hex}{extension}")
    upload.file.seek(0)
    written = 0
    try:
        with open(target, "wb") as buffer:
            while True:
                chunk = upload.file.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise UploadTooLargeError(f"Upload exceeds {max_bytes} bytes")
                buffer.write(chunk)
    except UploadTooLargeError:
        os.remove(target)
        raise
    return target


# --- Presentations --- #
@app.post("/api/presentations", status_code=201, response_model=UploadResponse,
          summary="Upload a presentation and extract its slides")
async def upload_presentation(presentation: Optional[UploadFile] = File(None)):
    """Stores the uploaded deck, renders every slide and returns the new presentation id."""
    if presentation is None or not presentation.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if not _is_presentation_upload(presentation):
        raise HTTPException(status_code=400, detail="Invalid file type. Please upload a .ppt or .pptx file")

    if presentation.size is not None and presentation.size > config.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    try:
        file_path = await run_in_threadpool(_save_upload, presentation, config.MAX_UPLOAD_BYTES)
    except UploadTooLargeError:
        raise HTTPException(status_code=413, detail="File too large")

    try:
        presentation_id = await run_in_threadpool(
            presentation_service.process_presentation,
            presentation.filename,
            file_path,
            store,
            conversion_chain,
        )
    except Exception as e:
        logging.error(f"Error processing presentation: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e) or "Failed to process presentation")

    return {"message": "Presentation processed successfully", "presentation_id": presentation_id}


@app.get("/api/presentations/{presentation_id}", response_model=PresentationOut)
async def get_presentation(presentation_id: str):
    presentation = store.get_presentation(presentation_id)
    if presentation is None:
        raise HTTPException(status_code=404, detail="Presentation not found")
    return presentation


@app.get("/api/presentations/{presentation_id}/slides", response_model=List[SlideOut])
async def get_slides(presentation_id: str):
    return store.get_slides(presentation_id)


@app.get("/api/presentations/{presentation_id}/annotations", response_model=Dict[str, List[Tag]])
async def get_annotations(presentation_id: str):
    return store.get_annotations(presentation_id)


@app.post("/api/presentations/{presentation_id}/submit", response_model=MessageResponse)
async def submit_presentation(presentation_id: str):
    """Marks the annotation set as submitted."""
    try:
        store.submit_presentation(presentation_id)
    except PresentationNotFoundError:
        raise HTTPException(status_code=404, detail="Presentation not found")
    return {"message": "Annotations submitted successfully"}


# --- Slides --- #
@app.get("/api/slides/{slide_id}/image")
async def get_slide_image(slide_id: str):
    """Serves the stored slide image with a content type sniffed from its bytes."""
    slide = store.get_slide(slide_id)
    if not slide or not slide.get("image"):
        raise HTTPException(status_code=404, detail="Slide image not found")

    try:
        image_bytes = base64.b64decode(slide["image"])
    except (binascii.Error, ValueError) as e:
        logging.error(f"Stored image for slide {slide_id} is not valid base64: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Stored slide image is corrupt")

    content_type = slide_renderer.slide_content_type(image_bytes)
    headers = {"Cache-Control": IMAGE_CACHE_CONTROL}
    if content_type == "image/svg+xml":
        svg = image_bytes.decode("utf-8", errors="replace")
        # XHTML inside foreignObject needs the XML prolog to parse.
        if ("<foreignObject" in svg or "xmlns:xhtml" in svg) and not svg.lstrip().startswith("<?xml"):
            svg = '<?xml version="1.0" encoding="UTF-8" standalone="no"?>\n' + svg
        return Response(content=svg, media_type=content_type, headers=headers)
    return Response(content=image_bytes, media_type=content_type, headers=headers)


@app.post("/api/slides/{slide_id}/annotations", response_model=AnnotationsSaved)
async def save_annotations(slide_id: str, tags: List[Tag]):
    """Replaces the slide's annotations with the posted key/value pairs."""
    try:
        store.save_annotations(slide_id, [tag.dict() for tag in tags])
    except SlideNotFoundError:
        raise HTTPException(status_code=404, detail="Slide not found")
    except Exception as e:
        logging.error(f"Error saving annotations: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    return {"message": "Annotations saved successfully", "slideId": slide_id, "tags": tags}


# --- SQLite mirror --- #
@app.get("/api/sqlite/input/{presentation_id}", response_model=MirrorTableResponse)
async def get_mirror_input(presentation_id: str):
    slides = store.get_mirror_slides(presentation_id)
    return {
        "message": "SQLite input table data retrieved successfully",
        "table": "input",
        "count": len(slides),
        "data": slides,
    }


@app.get("/api/sqlite/output/{presentation_id}", response_model=MirrorTableResponse)
async def get_mirror_output(presentation_id: str):
    annotations = store.get_mirror_annotations(presentation_id)
    return {
        "message": "SQLite output table data retrieved successfully",
        "table": "output",
        "count": len(annotations),
        "data": annotations,
    }


@app.get("/")
async def root():
    return {"message": "Slide Annotation API is running."}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
