import requests

import upload_client


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


def test_upload_presentation_posts_the_deck(monkeypatch, make_deck):
    calls = []

    def fake_post(url, files=None, **kwargs):
        name, handle, content_type = files["presentation"]
        calls.append((url, name, content_type, handle.read()[:2]))
        return FakeResponse(201, {"message": "ok", "presentation_id": "p-1"})

    monkeypatch.setattr(upload_client.requests, "post", fake_post)

    result = upload_client.upload_presentation(make_deck(["A"]), base_url="http://annotator:9000/")

    assert result["presentation_id"] == "p-1"
    url, name, content_type, magic = calls[0]
    assert url == "http://annotator:9000/api/presentations"
    assert name == "deck.pptx"
    assert content_type == upload_client.PPTX_CONTENT_TYPE
    assert magic == b"PK"


def test_upload_error_is_returned_as_dictionary(monkeypatch, make_deck):
    monkeypatch.setattr(
        upload_client.requests, "post",
        lambda url, **kwargs: FakeResponse(400, text='{"detail":"Invalid file type"}'),
    )

    result = upload_client.upload_presentation(make_deck(["A"]), base_url="http://annotator")

    assert result["status"] == "error"
    assert "Invalid file type" in result["message"]


def test_connection_error_is_returned_as_dictionary(monkeypatch):
    def refuse(url, **kwargs):
        raise requests.exceptions.ConnectionError("connection refused")

    monkeypatch.setattr(upload_client.requests, "post", refuse)

    result = upload_client.submit_presentation("p-1", base_url="http://annotator")

    assert result == {
        "status": "error",
        "message": "The annotation service failed to process the request. Detail: connection refused",
    }


def test_read_calls_return_error_dictionaries(monkeypatch):
    def refuse(url, **kwargs):
        raise requests.exceptions.ConnectionError("connection refused")

    monkeypatch.setattr(upload_client.requests, "get", refuse)

    slides = upload_client.get_slides("p-1", base_url="http://annotator")
    annotations = upload_client.get_annotations("p-1", base_url="http://annotator")

    assert slides["status"] == "error"
    assert "connection refused" in slides["message"]
    assert annotations["status"] == "error"


def test_read_call_http_error_carries_detail(monkeypatch):
    monkeypatch.setattr(
        upload_client.requests, "get",
        lambda url, **kwargs: FakeResponse(500, text="database is down"),
    )

    result = upload_client.get_slides("p-1", base_url="http://annotator")

    assert result["status"] == "error"
    assert result["message"].endswith("Detail: database is down")


def test_save_annotations_sends_tag_list(monkeypatch):
    sent = {}

    def fake_post(url, json=None, **kwargs):
        sent["url"] = url
        sent["json"] = json
        return FakeResponse(200, {"message": "saved", "slideId": "s-1", "tags": json})

    monkeypatch.setattr(upload_client.requests, "post", fake_post)

    result = upload_client.save_annotations("s-1", [{"key": "topic", "value": "intro"}], base_url="http://annotator")

    assert sent["url"] == "http://annotator/api/slides/s-1/annotations"
    assert sent["json"] == [{"key": "topic", "value": "intro"}]
    assert result["slideId"] == "s-1"


def test_read_calls_use_the_configured_service(monkeypatch):
    urls = []

    def fake_get(url, **kwargs):
        urls.append(url)
        return FakeResponse(200, [])

    monkeypatch.setattr(upload_client.config, "SERVICE_URL", "http://configured:8080")
    monkeypatch.setattr(upload_client.requests, "get", fake_get)

    assert upload_client.get_slides("p-1") == []
    assert upload_client.get_annotations("p-1") == []
    assert urls == [
        "http://configured:8080/api/presentations/p-1/slides",
        "http://configured:8080/api/presentations/p-1/annotations",
    ]
