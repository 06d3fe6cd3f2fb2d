# models.py
from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class Tag(BaseModel):
    key: str
    value: str


class PresentationOut(BaseModel):
    presentation_id: str
    name: str
    submitted: bool
    created_at: Optional[str] = None


class SlideOut(BaseModel):
    id: int
    presentation_id: str
    slide_id: str
    slide_number: int
    image: Optional[str] = None  # base64


class UploadResponse(BaseModel):
    message: str
    presentation_id: str


class AnnotationsSaved(BaseModel):
    message: str
    slideId: str
    tags: List[Tag]


class MessageResponse(BaseModel):
    message: str


class MirrorTableResponse(BaseModel):
    message: str
    table: str
    count: int
    data: List[Dict[str, Any]]
