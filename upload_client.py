import logging
import os
import requests
from typing import Any, Dict, List, Union

import config

PPTX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


def _url(path: str, base_url: str = None) -> str:
    return f"{(base_url or config.SERVICE_URL).rstrip('/')}{path}"


def _error(e: requests.exceptions.RequestException) -> Dict[str, Any]:
    response = e.response
    detail = response.text if response is not None else str(e)
    status = response.status_code if response is not None else "N/A"
    logging.error(f"The annotation service returned an error. Status: {status}. Detail: {detail}")
    return {"status": "error", "message": f"The annotation service failed to process the request. Detail: {detail}"}


def upload_presentation(file_path: str, base_url: str = None) -> Dict[str, Any]:
    """
    Uploads a .ppt/.pptx file to the annotation service.

    Args:
        file_path: Path of the deck on disk.

    Returns:
        The service response ({"message", "presentation_id"}) or an error dictionary.
    """
    logging.info(f"Uploading {file_path} to {_url('/api/presentations', base_url)}")
    try:
        with open(file_path, "rb") as f:
            files = {"presentation": (os.path.basename(file_path), f, PPTX_CONTENT_TYPE)}
            response = requests.post(_url("/api/presentations", base_url), files=files)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        return _error(e)


def get_slides(presentation_id: str, base_url: str = None) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
    """Lists the slides of a presentation, or returns an error dictionary."""
    try:
        response = requests.get(_url(f"/api/presentations/{presentation_id}/slides", base_url))
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        return _error(e)


def save_annotations(slide_id: str, tags: List[Dict[str, str]], base_url: str = None) -> Dict[str, Any]:
    """Replaces the annotations of one slide with the given key/value pairs."""
    try:
        response = requests.post(_url(f"/api/slides/{slide_id}/annotations", base_url), json=tags)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        return _error(e)


def get_annotations(presentation_id: str, base_url: str = None) -> Dict[str, Any]:
    try:
        response = requests.get(_url(f"/api/presentations/{presentation_id}/annotations", base_url))
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        return _error(e)


def submit_presentation(presentation_id: str, base_url: str = None) -> Dict[str, Any]:
    try:
        response = requests.post(_url(f"/api/presentations/{presentation_id}/submit", base_url))
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        return _error(e)
