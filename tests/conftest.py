# ABOUTME: Shared test fixtures for the map explorer test suite.
# ABOUTME: Provides a temporary annotation store and a sample annotation.

import pytest

from wildmap.models import Annotation
from wildmap.store import AnnotationStore


@pytest.fixture
def store(tmp_path) -> AnnotationStore:
    """An AnnotationStore writing into a fresh temporary directory."""
    return AnnotationStore(tmp_path)


@pytest.fixture
def fox() -> Annotation:
    return Annotation(species="Red fox", note="near the canal", latitude=52.51, longitude=13.33)
