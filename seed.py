"""Seeds an empty store with a sample presentation and a few annotations."""

import logging
import uuid

import slide_renderer
from storage import PresentationStore

SAMPLE_NAME = "Sample_Product_Overview.pptx"
SAMPLE_SLIDE_COUNT = 17
SAMPLE_ANNOTATIONS = {
    3: [{"key": "attribute", "value": "brands"}],
    6: [{"key": "category", "value": "methodology"}, {"key": "steps", "value": "three"}],
}


def seed(store: PresentationStore):
    """Returns the new presentation id, or None if the store already has data."""
    if store.count_presentations() > 0:
        logging.info("Database already contains presentations. Skipping seed.")
        return None

    logging.info("Seeding database with sample data...")
    presentation_id = store.create_presentation(SAMPLE_NAME)
    slide_ids = {}
    for slide_number in range(1, SAMPLE_SLIDE_COUNT + 1):
        slide_id = str(uuid.uuid4())
        image = slide_renderer.create_placeholder_image(slide_number, SAMPLE_SLIDE_COUNT)
        store.save_slide(presentation_id, slide_number, slide_id, image)
        slide_ids[slide_number] = slide_id

    for slide_number, tags in SAMPLE_ANNOTATIONS.items():
        store.save_annotations(slide_ids[slide_number], tags)

    logging.info("Database seeded successfully!")
    return presentation_id


if __name__ == "__main__":
    import main
    seed(main.store)
