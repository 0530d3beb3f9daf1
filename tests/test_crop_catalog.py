"""
Tests for crop catalog acquisition and fallback.
"""
import pytest
import requests

from plantdx.services import crop_catalog as crop_catalog_module
from plantdx.services.crop_catalog import (
    FALLBACK_CROPS,
    PAGE_SIZE,
    CropCatalog,
    normalize_base_url,
    normalize_crop_name,
)

from conftest import FakeResponse, FakeSession, catalog_page


@pytest.mark.parametrize("raw, expected", [
    ("Maize", "maize"),
    ("Sweet Potato", "sweet_potato"),
    ("  Pigeon   Pea ", "pigeon_pea"),
    ("Pepper (Bell)", "pepper_bell"),
    ("Napier\tGrass", "napier_grass"),
])
def test_normalize_crop_name(raw, expected):
    assert normalize_crop_name(raw) == expected


@pytest.mark.parametrize("raw, expected", [
    ("crops.example.com/api", "https://crops.example.com/api"),
    ("http://localhost:8080/", "http://localhost:8080"),
    ("https://crops.example.com", "https://crops.example.com"),
])
def test_normalize_base_url(raw, expected):
    assert normalize_base_url(raw) == expected


def test_initial_snapshot_is_unloaded_fallback():
    catalog = CropCatalog()
    snapshot = catalog.snapshot

    assert snapshot.crops == FALLBACK_CROPS
    assert snapshot.source == "fallback"
    assert snapshot.loaded is False


def test_refresh_without_url_uses_fallback():
    session = FakeSession([])
    catalog = CropCatalog(session=session)

    crops = catalog.refresh()

    assert crops == list(FALLBACK_CROPS)
    assert catalog.snapshot.loaded is True
    assert session.calls == []


def test_unsuccessful_first_page_returns_fallback():
    session = FakeSession([catalog_page(["Maize"], 1, 1, success=False)])
    catalog = CropCatalog(base_url="crops.example.com", session=session)

    crops = catalog.refresh()

    assert crops == list(FALLBACK_CROPS)
    assert len(crops) == 23
    assert catalog.snapshot.source == "fallback"


def test_pagination_collects_all_pages_in_order():
    pages = [
        [f"Crop {i}" for i in range(0, 50)],
        [f"Crop {i}" for i in range(50, 100)],
        [f"Crop {i}" for i in range(100, 110)],
    ]
    session = FakeSession([
        catalog_page(pages[0], 1, 3),
        catalog_page(pages[1], 2, 3),
        catalog_page(pages[2], 3, 3),
    ])
    catalog = CropCatalog(base_url="crops.example.com/api", session=session, timeout_seconds=3)

    crops = catalog.refresh()

    assert len(crops) == 110
    assert crops == [f"crop_{i}" for i in range(110)]
    assert catalog.snapshot.source == "remote"
    assert [c["params"] for c in session.calls] == [
        {"page": 1, "limit": PAGE_SIZE},
        {"page": 2, "limit": PAGE_SIZE},
        {"page": 3, "limit": PAGE_SIZE},
    ]
    assert session.calls[0]["url"] == "https://crops.example.com/api/crops"
    assert session.calls[0]["timeout"] == 3


@pytest.mark.parametrize("second_page", [
    FakeResponse(status_code=500),
    FakeResponse(bad_json=True),
    FakeResponse({"success": True, "data": [{"name": "Beans"}]}),
    FakeResponse({"success": True, "data": [{"id": 7}], "pagination": {"page": 2, "totalPages": 2}}),
    FakeResponse({"success": True, "data": [{"name": "  "}], "pagination": {"page": 2, "totalPages": 2}}),
    FakeResponse(["not", "an", "object"]),
    requests.ConnectionError("connection refused"),
    requests.Timeout("read timed out"),
])
def test_failure_on_later_page_discards_partial_results(second_page):
    session = FakeSession([catalog_page(["Maize", "Beans"], 1, 2), second_page])
    catalog = CropCatalog(base_url="https://crops.example.com", session=session)

    crops = catalog.refresh()

    assert crops == list(FALLBACK_CROPS)
    assert catalog.snapshot.source == "fallback"


def test_runaway_pagination_falls_back(monkeypatch):
    monkeypatch.setattr(crop_catalog_module, "MAX_PAGES", 3)
    session = FakeSession([catalog_page(["Maize"], 1, 99) for _ in range(5)])
    catalog = CropCatalog(base_url="https://crops.example.com", session=session)

    assert catalog.refresh() == list(FALLBACK_CROPS)
    assert len(session.calls) == 3


def test_refresh_replaces_snapshot_wholesale():
    session = FakeSession([
        catalog_page(["Maize"], 1, 1),
        catalog_page(["Tea", "Coffee"], 1, 1),
    ])
    catalog = CropCatalog(base_url="https://crops.example.com", session=session)

    catalog.refresh()
    first = catalog.snapshot
    catalog.refresh()
    second = catalog.snapshot

    assert first.crops == ("maize",)
    assert second.crops == ("tea", "coffee")
    assert first is not second


def test_snapshot_contains():
    catalog = CropCatalog()
    assert catalog.snapshot.contains("sweet_potato")
    assert not catalog.snapshot.contains("Sweet Potato")
    assert catalog.snapshot.size == len(FALLBACK_CROPS)


@pytest.mark.parametrize("base_url", [
    "https://a..b",
    "https://" + "x" * 300 + ".example.com",
])
def test_unparseable_catalog_host_falls_back(base_url):
    catalog = CropCatalog(base_url=base_url, timeout_seconds=1)

    crops = catalog.refresh()

    assert crops == list(FALLBACK_CROPS)
    assert catalog.snapshot.source == "fallback"
    assert catalog.snapshot.loaded is True


def test_unexpected_session_error_falls_back():
    session = FakeSession([RuntimeError("socket exploded")])
    catalog = CropCatalog(base_url="https://crops.example.com", session=session)

    assert catalog.refresh() == list(FALLBACK_CROPS)
    assert catalog.snapshot.source == "fallback"
