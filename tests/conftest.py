import os
import random
import sys

import pytest

# Ensure the repository root is on sys.path so imports like `import app` and `import main` work
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from app.config import Settings  # noqa: E402
from app.services.mock import MockBackend  # noqa: E402
from app.services.pipeline import PipelineOrchestrator  # noqa: E402
from app.services.session import SessionState  # noqa: E402

SAMPLE_PROMPT = "I want to talk to people working on AI safety policy in Canada about internships."


@pytest.fixture
def settings() -> Settings:
    return Settings(backend="mock", openai_api_key="", mock_delay_ms=0, _env_file=None)


@pytest.fixture
def mock_backend(settings) -> MockBackend:
    return MockBackend(settings, rng=random.Random(1234))


@pytest.fixture
def state(settings) -> SessionState:
    return SessionState(settings)


@pytest.fixture
def orchestrator(mock_backend, settings) -> PipelineOrchestrator:
    return PipelineOrchestrator(mock_backend, settings)
