"""
Crop catalog acquisition.

Fetches the paginated crop list from the remote catalog API and keeps it
as an immutable snapshot. Any failure during a refresh installs the static
fallback list instead; partially fetched pages are never exposed.
"""
import re
import threading
import logging
from typing import List, Optional, Tuple

import requests
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
MAX_PAGES = 200

FALLBACK_CROPS: Tuple[str, ...] = (
    "maize", "wheat", "rice", "sorghum", "millet",
    "beans", "cowpea", "pigeon_pea", "groundnut",
    "cassava", "sweet_potato", "potato",
    "tomato", "cabbage", "kale", "onion", "vegetables",
    "tea", "coffee", "sugarcane", "banana", "sunflower", "cotton",
)

_WHITESPACE_RE = re.compile(r"\s+")


class CatalogFetchError(Exception):
    """Raised internally when a catalog page cannot be used."""
    pass


class _CropRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str

    @field_validator("name")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("blank crop name")
        return v


class _Pagination(BaseModel):
    model_config = ConfigDict(extra="ignore")

    page: int
    totalPages: int


class _CatalogPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    data: List[_CropRecord] = []
    pagination: _Pagination


class CropCatalogSnapshot(BaseModel):
    """Whole-list view of the catalog handed to readers."""

    model_config = ConfigDict(frozen=True)

    crops: Tuple[str, ...]
    source: str
    loaded: bool

    @property
    def size(self) -> int:
        return len(self.crops)

    def contains(self, crop: str) -> bool:
        return crop in self.crops


def normalize_crop_name(name: str) -> str:
    name = name.strip().lower()
    name = _WHITESPACE_RE.sub("_", name)
    return name.replace("(", "").replace(")", "")


def normalize_base_url(url: str) -> str:
    url = url.strip().rstrip("/")
    if not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", url):
        url = f"https://{url}"
    return url


class CropCatalog:
    """
    Owner of the process-wide crop catalog snapshot.

    Starts in the "not yet loaded" state serving FALLBACK_CROPS until the
    first refresh() completes.

    Usage:
        catalog = CropCatalog(base_url="crops.example.com/api")
        crops = catalog.refresh()
        snapshot = catalog.snapshot
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: float = 10,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = normalize_base_url(base_url) if base_url else None
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self._lock = threading.Lock()
        self._snapshot = CropCatalogSnapshot(crops=FALLBACK_CROPS, source="fallback", loaded=False)

    @property
    def snapshot(self) -> CropCatalogSnapshot:
        return self._snapshot

    def refresh(self) -> List[str]:
        """Fetch the catalog; on any failure install the fallback list. Never raises."""
        if not self.base_url:
            logger.info("No crop catalog URL configured, using fallback list")
            return self._install(FALLBACK_CROPS, "fallback")

        try:
            crops = self._fetch_all()
        except CatalogFetchError as e:
            logger.warning(f"Crop catalog fetch failed, using fallback list: {e}")
            return self._install(FALLBACK_CROPS, "fallback")
        except Exception:
            # URL parsing and other HTTP-stack errors outside requests.RequestException
            logger.warning("Crop catalog fetch failed unexpectedly, using fallback list", exc_info=True)
            return self._install(FALLBACK_CROPS, "fallback")

        logger.info(f"Loaded {len(crops)} crops from catalog {self.base_url}")
        return self._install(tuple(crops), "remote")

    def _install(self, crops: Tuple[str, ...], source: str) -> List[str]:
        snapshot = CropCatalogSnapshot(crops=crops, source=source, loaded=True)
        with self._lock:
            self._snapshot = snapshot
        return list(snapshot.crops)

    def _fetch_all(self) -> List[str]:
        crops: List[str] = []
        page = 1
        while True:
            if page > MAX_PAGES:
                raise CatalogFetchError(f"pagination did not terminate after {MAX_PAGES} pages")

            body = self._fetch_page(page)
            crops.extend(normalize_crop_name(r.name) for r in body.data)

            if body.pagination.page >= body.pagination.totalPages:
                return crops
            page += 1

    def _fetch_page(self, page: int) -> _CatalogPage:
        url = f"{self.base_url}/crops"
        try:
            resp = self._session.get(
                url,
                params={"page": page, "limit": PAGE_SIZE},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise CatalogFetchError(f"page {page}: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise CatalogFetchError(f"page {page}: HTTP {resp.status_code}")

        try:
            body = _CatalogPage.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise CatalogFetchError(f"page {page}: malformed body") from e

        if not body.success:
            raise CatalogFetchError(f"page {page}: success=false")
        return body
