import uuid

import pytest
from sqlalchemy.exc import IntegrityError

import seed
from storage import PresentationNotFoundError, SlideNotFoundError


def add_slides(store, presentation_id, count):
    slide_ids = []
    for number in range(1, count + 1):
        slide_id = str(uuid.uuid4())
        store.save_slide(presentation_id, number, slide_id, f"image-{number}")
        slide_ids.append(slide_id)
    return slide_ids


def test_create_and_get_presentation(store):
    presentation_id = store.create_presentation("quarterly.pptx")

    presentation = store.get_presentation(presentation_id)

    assert presentation["presentation_id"] == presentation_id
    assert presentation["name"] == "quarterly.pptx"
    assert presentation["submitted"] is False
    assert presentation["created_at"]


def test_create_presentation_requires_name(store):
    with pytest.raises(ValueError):
        store.create_presentation("  ")


def test_get_unknown_presentation(store):
    assert store.get_presentation("missing") is None
    assert store.get_presentation_name("missing") is None


def test_save_slide_writes_primary_and_mirror(store):
    presentation_id = store.create_presentation("deck.pptx")

    result = store.save_slide(presentation_id, 1, "slide-a", "aW1hZ2U=")

    assert result.mirror_ok is True
    assert store.get_slide("slide-a")["slide_number"] == 1
    mirrored = store.get_mirror_slides(presentation_id)
    assert len(mirrored) == 1
    assert mirrored[0]["name"] == "deck.pptx"
    assert mirrored[0]["slide_id"] == "slide-a"


def test_mirror_failure_is_reported_not_raised(store):
    class BrokenMirror:
        def insert_slide(self, *args):
            raise OSError("disk full")

    presentation_id = store.create_presentation("deck.pptx")
    store.mirror = BrokenMirror()

    result = store.save_slide(presentation_id, 1, "slide-a", "aW1hZ2U=")

    assert result.mirror_ok is False
    assert "disk full" in result.mirror_error
    assert store.get_slide("slide-a") is not None


def test_slide_numbers_are_unique_per_presentation(store):
    presentation_id = store.create_presentation("deck.pptx")
    store.save_slide(presentation_id, 1, "slide-a", "x")

    with pytest.raises(IntegrityError):
        store.save_slide(presentation_id, 1, "slide-b", "y")


def test_get_slides_orders_by_number(store):
    presentation_id = store.create_presentation("deck.pptx")
    store.save_slide(presentation_id, 2, "second", "x")
    store.save_slide(presentation_id, 1, "first", "y")

    assert [slide["slide_id"] for slide in store.get_slides(presentation_id)] == ["first", "second"]


def test_save_annotations_replaces_previous_set(store):
    presentation_id = store.create_presentation("deck.pptx")
    slide_id = add_slides(store, presentation_id, 1)[0]
    store.save_annotations(slide_id, [{"key": "a", "value": "1"}, {"key": "b", "value": "2"}])

    store.save_annotations(slide_id, [{"key": "c", "value": "3"}])

    assert store.get_annotations(presentation_id) == {slide_id: [{"key": "c", "value": "3"}]}
    assert store.get_mirror_annotations(presentation_id) == [
        {"slideId": slide_id, "tags": [{"key": "c", "value": "3"}]}
    ]


def test_save_empty_annotations_clears_slide(store):
    presentation_id = store.create_presentation("deck.pptx")
    slide_id = add_slides(store, presentation_id, 1)[0]
    store.save_annotations(slide_id, [{"key": "a", "value": "1"}])

    store.save_annotations(slide_id, [])

    assert store.get_annotations(presentation_id) == {}


def test_annotations_carry_the_slides_presentation(store):
    first = store.create_presentation("first.pptx")
    second = store.create_presentation("second.pptx")
    first_slide = add_slides(store, first, 1)[0]

    store.save_annotations(first_slide, [{"key": "topic", "value": "intro"}])

    assert first_slide in store.get_annotations(first)
    assert store.get_annotations(second) == {}


def test_save_annotations_for_unknown_slide(store):
    with pytest.raises(SlideNotFoundError):
        store.save_annotations("missing", [{"key": "a", "value": "1"}])


def test_submit_presentation(store):
    presentation_id = store.create_presentation("deck.pptx")

    store.submit_presentation(presentation_id)

    assert store.get_presentation(presentation_id)["submitted"] is True


def test_submit_unknown_presentation(store):
    with pytest.raises(PresentationNotFoundError):
        store.submit_presentation("missing")


def test_annotations_can_still_change_after_submit(store):
    presentation_id = store.create_presentation("deck.pptx")
    slide_id = add_slides(store, presentation_id, 1)[0]
    store.submit_presentation(presentation_id)

    store.save_annotations(slide_id, [{"key": "late", "value": "edit"}])

    assert store.get_annotations(presentation_id) == {slide_id: [{"key": "late", "value": "edit"}]}


def test_mirror_read_errors_yield_empty_lists(store):
    class BrokenMirror:
        def get_slides(self, presentation_id):
            raise OSError("locked")

        def get_annotations(self, presentation_id):
            raise OSError("locked")

    store.mirror = BrokenMirror()

    assert store.get_mirror_slides("any") == []
    assert store.get_mirror_annotations("any") == []


def test_seed_populates_empty_store_once(store):
    presentation_id = seed.seed(store)

    slides = store.get_slides(presentation_id)
    assert [slide["slide_number"] for slide in slides] == list(range(1, seed.SAMPLE_SLIDE_COUNT + 1))
    annotations = store.get_annotations(presentation_id)
    assert annotations[slides[2]["slide_id"]] == [{"key": "attribute", "value": "brands"}]
    assert len(annotations[slides[5]["slide_id"]]) == 2
    assert seed.seed(store) is None
