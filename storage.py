"""Primary store access plus the best-effort mirror write-through."""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select

from database import Presentation, Slide, SlideAnnotation
from sqlite_mirror import SQLiteMirror


class PresentationNotFoundError(LookupError):
    pass


class SlideNotFoundError(LookupError):
    pass


@dataclass
class PersistResult:
    """Outcome of one slide write. The primary write either succeeds or raises."""

    slide_id: str
    slide_number: int
    mirror_ok: bool = True
    mirror_error: Optional[str] = None


def presentation_to_dict(presentation: Presentation) -> Dict[str, Any]:
    return {
        "presentation_id": presentation.id,
        "name": presentation.name,
        "submitted": bool(presentation.submitted),
        "created_at": presentation.created_at.isoformat() if presentation.created_at else None,
    }


def slide_to_dict(slide: Slide) -> Dict[str, Any]:
    return {
        "id": slide.id,
        "presentation_id": slide.presentation_id,
        "slide_id": slide.slide_id,
        "slide_number": slide.slide_number,
        "image": slide.image,
    }


class PresentationStore:
    def __init__(self, session_factory, mirror: Optional[SQLiteMirror] = None):
        self._session_factory = session_factory
        self.mirror = mirror

    # --- Presentations ---

    def create_presentation(self, name: str) -> str:
        if not name or not name.strip():
            raise ValueError("Presentation name is required")
        presentation_id = str(uuid.uuid4())
        with self._session_factory() as session:
            session.add(Presentation(id=presentation_id, name=name))
            session.commit()
        logging.info(f"Created presentation {presentation_id} ('{name}')")
        return presentation_id

    def get_presentation(self, presentation_id: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            presentation = session.get(Presentation, presentation_id)
            return presentation_to_dict(presentation) if presentation else None

    def get_presentation_name(self, presentation_id: str) -> Optional[str]:
        presentation = self.get_presentation(presentation_id)
        return presentation["name"] if presentation else None

    def count_presentations(self) -> int:
        with self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(Presentation))

    def submit_presentation(self, presentation_id: str):
        with self._session_factory() as session:
            presentation = session.get(Presentation, presentation_id)
            if presentation is None:
                raise PresentationNotFoundError(presentation_id)
            presentation.submitted = True
            session.commit()
        logging.info(f"Presentation {presentation_id} submitted")

    # --- Slides ---

    def save_slide(self, presentation_id: str, slide_number: int, slide_id: str, image_base64: str) -> PersistResult:
        """Stores a slide in the primary store, then copies it to the mirror.

        A mirror failure is reported on the returned result and never undoes
        the primary insert.
        """
        with self._session_factory() as session:
            session.add(Slide(
                presentation_id=presentation_id,
                slide_id=slide_id,
                slide_number=slide_number,
                image=image_base64,
            ))
            session.commit()

        result = PersistResult(slide_id=slide_id, slide_number=slide_number)
        if self.mirror is None:
            return result
        try:
            name = self.get_presentation_name(presentation_id)
            if name is None:
                raise PresentationNotFoundError(presentation_id)
            self.mirror.insert_slide(presentation_id, name, slide_id, slide_number, image_base64)
        except Exception as e:
            logging.error(f"Error saving slide {slide_id} to SQLite mirror: {e}", exc_info=True)
            result.mirror_ok = False
            result.mirror_error = str(e)
        return result

    def get_slides(self, presentation_id: str) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            slides = session.scalars(
                select(Slide)
                .where(Slide.presentation_id == presentation_id)
                .order_by(Slide.slide_number)
            ).all()
            return [slide_to_dict(slide) for slide in slides]

    def get_slide(self, slide_id: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            slide = session.scalars(select(Slide).where(Slide.slide_id == slide_id)).first()
            return slide_to_dict(slide) if slide else None

    # --- Annotations ---

    def save_annotations(self, slide_id: str, tags: List[Dict[str, str]]):
        """Replaces the whole tag set of a slide. An empty list clears it."""
        with self._session_factory() as session:
            slide = session.scalars(select(Slide).where(Slide.slide_id == slide_id)).first()
            if slide is None:
                raise SlideNotFoundError(slide_id)
            presentation_id = slide.presentation_id

            session.execute(delete(SlideAnnotation).where(SlideAnnotation.slide_id == slide_id))
            if tags:
                session.add(SlideAnnotation(
                    slide_id=slide_id,
                    presentation_id=presentation_id,
                    tags=list(tags),
                ))
            session.commit()

        if self.mirror is None:
            return
        try:
            self.mirror.upsert_annotations(presentation_id, slide_id, list(tags))
        except Exception as e:
            logging.error(f"Error saving annotations for slide {slide_id} to SQLite mirror: {e}", exc_info=True)

    def get_annotations(self, presentation_id: str) -> Dict[str, List[Dict[str, str]]]:
        with self._session_factory() as session:
            annotations = session.scalars(
                select(SlideAnnotation).where(SlideAnnotation.presentation_id == presentation_id)
            ).all()
            return {annotation.slide_id: list(annotation.tags) for annotation in annotations}

    # --- Mirror reads ---

    def get_mirror_slides(self, presentation_id: str) -> List[Dict[str, Any]]:
        if self.mirror is None:
            return []
        try:
            return self.mirror.get_slides(presentation_id)
        except Exception as e:
            logging.error(f"Error getting slides from SQLite mirror: {e}", exc_info=True)
            return []

    def get_mirror_annotations(self, presentation_id: str) -> List[Dict[str, Any]]:
        if self.mirror is None:
            return []
        try:
            return self.mirror.get_annotations(presentation_id)
        except Exception as e:
            logging.error(f"Error getting annotations from SQLite mirror: {e}", exc_info=True)
            return []
