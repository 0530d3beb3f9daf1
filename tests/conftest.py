"""
Pytest fixtures for plantdx tests.
"""
import asyncio
import base64
import os
from io import BytesIO

import pytest
from fastapi.testclient import TestClient

# Set test environment variables BEFORE importing app
os.environ['PLANTDX_GEMINI_API_KEY'] = ''
os.environ['PLANTDX_CROP_CATALOG_URL'] = ''
os.environ['PLANTDX_ADVISORY_MODE'] = 'full_advisory'
os.environ['PLANTDX_OUTPUT_FORMAT'] = 'structured'
os.environ['PLANTDX_MAX_IMAGE_MB'] = '5'

from plantdx.core.config import AdvisoryMode, OutputFormat, ServiceConfig, Settings
from plantdx.main import create_app
from plantdx.services.crop_catalog import CropCatalog
from plantdx.services.orchestrator import DiagnosisOrchestrator


class FakeVisionClient:
    """Stands in for GeminiVisionClient; records every call."""

    def __init__(self, reply="Healthy", error=None, configured=True, delay=0.0):
        self.reply = reply
        self.error = error
        self._configured = configured
        self.delay = delay
        self.calls = []

    @property
    def configured(self):
        return self._configured

    async def generate(self, prompt, image, generation, timeout=None):
        self.calls.append({"prompt": prompt, "image": image, "generation": generation, "timeout": timeout})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeResponse:
    def __init__(self, payload=None, status_code=200, bad_json=False):
        self.payload = payload
        self.status_code = status_code
        self.bad_json = bad_json

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    """requests.Session replacement serving canned responses in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def catalog_page(names, page, total_pages, success=True):
    return FakeResponse({
        "success": success,
        "data": [{"name": n, "id": i} for i, n in enumerate(names)],
        "pagination": {"page": page, "totalPages": total_pages, "limit": 50},
    })


def make_image_bytes(fmt="JPEG"):
    from PIL import Image

    img = Image.new('RGB', (64, 64), color='green')
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def data_uri(raw: bytes, subtype="jpeg") -> str:
    return f"data:image/{subtype};base64,{base64.b64encode(raw).decode('ascii')}"


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes("JPEG")


@pytest.fixture
def jpeg_data_uri(jpeg_bytes):
    return data_uri(jpeg_bytes, "jpeg")


@pytest.fixture
def png_data_uri():
    return data_uri(make_image_bytes("PNG"), "png")


@pytest.fixture
def full_config():
    return ServiceConfig(advisory_mode=AdvisoryMode.FULL_ADVISORY, output_format=OutputFormat.STRUCTURED)


@pytest.fixture
def diagnosis_only_config():
    return ServiceConfig(advisory_mode=AdvisoryMode.DIAGNOSIS_ONLY, output_format=OutputFormat.TEXT)


@pytest.fixture
def vision_client():
    return FakeVisionClient()


@pytest.fixture
def catalog():
    """Catalog in its initial state, serving the static fallback list."""
    return CropCatalog()


@pytest.fixture
def orchestrator(full_config, catalog, vision_client):
    return DiagnosisOrchestrator(full_config, catalog, vision_client, timeout_seconds=5)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture(scope="function")
def client(settings, vision_client, catalog):
    """FastAPI test client wired to the fake vision client."""
    app = create_app(settings=settings, vision_client=vision_client, catalog=catalog)
    return TestClient(app)
