from __future__ import annotations

import pytest

from .fakes import FakeGemini


@pytest.fixture
def gemini() -> FakeGemini:
    return FakeGemini()
