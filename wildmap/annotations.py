# ABOUTME: Annotation submission service behind POST /add.
# ABOUTME: Validates a raw request body and appends the record to the matching collection.

import logging

from pydantic import ValidationError

from wildmap.models import AnnotationSubmission, SubmitResult
from wildmap.store import AnnotationStore

logger = logging.getLogger(__name__)


def describe_validation_error(error: ValidationError) -> str:
    """Flatten pydantic errors into one short human-readable line."""
    parts = []
    for err in error.errors():
        field = ".".join(str(loc) for loc in err["loc"]) or "body"
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)


class AnnotationService:
    """Single mutation operation over the annotation store."""

    def __init__(self, store: AnnotationStore) -> None:
        self.store = store

    def submit(self, raw) -> SubmitResult:
        """Validate a submitted record and append it to its collection.

        Invalid input yields a 400 and leaves both collections untouched.
        On success exactly one collection file is rewritten.
        """
        if not isinstance(raw, dict):
            return SubmitResult(status=400, message="❌ Invalid or missing fields: body must be a JSON object")
        try:
            submission = AnnotationSubmission.model_validate(raw)
        except ValidationError as e:
            reason = describe_validation_error(e)
            logger.info("Rejected annotation submission: %s", reason)
            return SubmitResult(status=400, message=f"❌ Invalid or missing fields: {reason}")

        kind = submission.type
        annotation = submission.to_annotation()
        if not self.store.append_and_save(kind, annotation):
            return SubmitResult(status=500, message=f"⚠️ Could not save {kind.value} entry.")
        return SubmitResult(
            status=200,
            message=f"✅ {kind.value} entry saved successfully!",
            kind=kind,
            annotation=annotation,
        )
