# ABOUTME: Contract tests for Pydantic models used by the store, services, and explorer.
# ABOUTME: Validates submission checks, on-disk field names, and snapshot defaults.

import math

import pytest
from pydantic import ValidationError

from wildmap.models import Annotation, AnnotationSubmission, ForecastSnapshot, Kind, SubmitResult


def _submission(**overrides) -> dict:
    body = {"type": "animal", "species": "Red fox", "note": "", "lat": 52.5, "lon": 13.3}
    body.update(overrides)
    return body


class TestAnnotation:
    def test_parses_wire_names(self):
        """Annotation reads the lat/lon keys used in the collection files.

        Implementation: Validates a dict shaped like a stored record.
        Passing implies: Existing animals.json/trees.json rows load without conversion.
        """
        ann = Annotation.model_validate({"species": "Oak", "note": None, "lat": 1.5, "lon": 2.5})
        assert ann.latitude == 1.5
        assert ann.longitude == 2.5

    def test_dumps_wire_names(self):
        """Annotation dumps coordinates back as lat/lon without a kind field.

        Implementation: Dumps by alias and inspects the keys.
        Passing implies: Written records keep the original file format.
        """
        ann = Annotation(species="Oak", latitude=1.0, longitude=2.0)
        assert ann.model_dump(by_alias=True) == {"species": "Oak", "note": None, "lat": 1.0, "lon": 2.0}


class TestAnnotationSubmission:
    def test_valid_submission_strips_species(self):
        """Species is trimmed during validation.

        Implementation: Submits a species with surrounding whitespace.
        Passing implies: Stored species never carry stray whitespace.
        """
        sub = AnnotationSubmission.model_validate(_submission(species="  Red fox "))
        assert sub.species == "Red fox"
        assert sub.type is Kind.ANIMAL

    def test_integer_coordinates_accepted(self):
        """Whole-number coordinates are valid JSON numbers.

        Implementation: Submits lat/lon as ints.
        Passing implies: Clients do not need to send a decimal point.
        """
        sub = AnnotationSubmission.model_validate(_submission(lat=10, lon=-20))
        assert sub.lat == 10
        assert sub.lon == -20

    @pytest.mark.parametrize(
        "overrides",
        [
            {"species": ""},
            {"species": "   "},
            {"type": "plant"},
            {"lat": "52.5"},
            {"lon": True},
            {"lat": 91},
            {"lon": -181},
            {"lat": math.nan},
            {"lon": math.inf},
            {"note": 5},
        ],
    )
    def test_invalid_submission_rejected(self, overrides):
        """Bad kind, blank species, non-numeric or out-of-range coordinates fail validation.

        Implementation: Validates one broken field at a time.
        Passing implies: Only well-formed records can reach the store.
        """
        with pytest.raises(ValidationError):
            AnnotationSubmission.model_validate(_submission(**overrides))

    def test_missing_fields_rejected(self):
        """A body without coordinates fails validation.

        Implementation: Validates a body containing only type and species.
        Passing implies: Required fields are enforced.
        """
        with pytest.raises(ValidationError):
            AnnotationSubmission.model_validate({"type": "tree", "species": "Oak"})

    def test_to_annotation_drops_kind(self):
        """to_annotation keeps species, note and coordinate only.

        Implementation: Converts a tree submission.
        Passing implies: The kind is implied by the target collection, not stored.
        """
        ann = AnnotationSubmission.model_validate(_submission(type="tree", species="Oak", note="old")).to_annotation()
        assert ann == Annotation(species="Oak", note="old", latitude=52.5, longitude=13.3)


class TestForecastSnapshot:
    def test_defaults(self):
        """A bare snapshot has null readings and N/A sun times.

        Implementation: Constructs ForecastSnapshot with no arguments.
        Passing implies: Missing upstream fields never raise.
        """
        snap = ForecastSnapshot()
        assert snap.temperature is None
        assert snap.pm2_5 is None
        assert snap.sunrise == "N/A"
        assert snap.sunset == "N/A"


class TestSubmitResult:
    def test_ok_reflects_status(self):
        """ok is true only for 2xx statuses.

        Implementation: Compares 200, 400 and 500 results.
        Passing implies: Callers can branch on ok instead of status codes.
        """
        assert SubmitResult(status=200, message="").ok
        assert not SubmitResult(status=400, message="").ok
        assert not SubmitResult(status=500, message="").ok
