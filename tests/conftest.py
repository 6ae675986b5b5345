import sys
from pathlib import Path

import fitz
import pytest

# Ensure project root is importable when running without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from papraIngest.config import config  # noqa: E402
from papraIngest import mock_provider  # noqa: E402


def _test_settings():
    return {
        "PAPRA": {
            "url": "https://papra.test",
            "api_key": "papra-key",
            "organization_id": "org_1",
        },
        "OPENROUTER": {
            "endpoint": "https://openrouter.ai/api/v1",
            "api_key": "test-key",
            "model_name": "openai/gpt-5-nano",
        },
    }


@pytest.fixture(autouse=True)
def configure_config(monkeypatch):
    """Give every test a complete config and no secrets from the environment."""
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("PAPRA_API_KEY", raising=False)
    config.clear()
    config.read_dict(_test_settings())
    mock_provider.reset()
    yield
    config.clear()
    mock_provider.reset()


@pytest.fixture
def make_pdf(tmp_path):
    """Factory writing a real PDF with one text block per page."""

    def _builder(filename="sample.pdf", pages=("",), metadata=None, folder=None):
        target_dir = Path(folder) if folder else tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)
        pdf_path = target_dir / filename

        doc = fitz.open()
        for text in pages:
            page = doc.new_page()
            if text:
                page.insert_text((72, 72), text, fontsize=10)
        if metadata:
            doc.set_metadata(metadata)
        doc.save(str(pdf_path))
        doc.close()
        return str(pdf_path)

    return _builder
