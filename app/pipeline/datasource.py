"""
app/pipeline/datasource.py — Where pipeline boards read and write records.

A DataSource lists, fetches and updates records of one entity type
("deals", "submissions", "jobs", "candidates", "companies"). Two
implementations:

  - InMemoryDataSource : fixture records held in process (demos, tests)
  - HttpDataSource     : the CRM's own JSON API under settings.api_base_url

build_data_source() picks one from settings.data_source ("memory" | "http").
Records are plain dicts keyed by column name with string ids.
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from app.config import settings

logger = logging.getLogger(__name__)

ENTITIES = ("companies", "contacts", "deals", "jobs", "candidates", "submissions")

# Deals and submissions are updated with PATCH /api/<entity> and the id in the
# body; everything else with PUT /api/<entity>/<id>.
PATCH_COLLECTION_ENTITIES = {"deals", "submissions"}


class DataSourceError(Exception):
    """A read or write against a data source failed."""


def _check_entity(entity: str) -> None:
    if entity not in ENTITIES:
        raise DataSourceError(f"Unknown entity: {entity}")


class DataSource(ABC):
    """Read / update capability shared by every pipeline backend."""

    @abstractmethod
    def list(self, entity: str, **filters: Any) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    def fetch(self, entity: str, item_id: str) -> dict[str, Any]:
        ...

    @abstractmethod
    def update(self, entity: str, item_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        """Persist changes and return the record as stored."""


# ── In-memory fixtures ────────────────────────────────────────────────────────

def default_fixtures() -> dict[str, list[dict[str, Any]]]:
    """A small demo board: a few deals across stages and a job pipeline."""
    company_id = str(uuid.uuid4())
    job_id = str(uuid.uuid4())
    deals = [
        {"id": str(uuid.uuid4()), "company_id": company_id, "name": "Platform hiring retainer",
         "stage": "prospect", "value": 45000.0, "probability": 20},
        {"id": str(uuid.uuid4()), "company_id": company_id, "name": "Data team build-out",
         "stage": "discovery", "value": 80000.0, "probability": 40},
        {"id": str(uuid.uuid4()), "company_id": company_id, "name": "Contract-to-hire SREs",
         "stage": "proposal", "value": 30000.0, "probability": 60},
    ]
    submissions = [
        {"id": str(uuid.uuid4()), "job_id": job_id, "candidate_id": str(uuid.uuid4()),
         "status": status, "stage": stage, "match_score": score}
        for status, stage, score in (
            ("draft", "new", 72.0),
            ("sent", "submitted", 81.5),
            ("interview", "interviewed", 88.0),
        )
    ]
    return {"deals": deals, "submissions": submissions}


class InMemoryDataSource(DataSource):
    """Fixture-backed source. Returned records are copies; updates replace stored ones."""

    def __init__(self, fixtures: Optional[dict[str, list[dict[str, Any]]]] = None):
        source = default_fixtures() if fixtures is None else fixtures
        self._records: dict[str, dict[str, dict[str, Any]]] = {
            entity: {str(item["id"]): copy.deepcopy(item) for item in items}
            for entity, items in source.items()
        }

    def _table(self, entity: str) -> dict[str, dict[str, Any]]:
        _check_entity(entity)
        return self._records.setdefault(entity, {})

    def list(self, entity: str, **filters: Any) -> list[dict[str, Any]]:
        rows = [
            item for item in self._table(entity).values()
            if all(item.get(key) == value for key, value in filters.items() if value is not None)
        ]
        return copy.deepcopy(rows)

    def fetch(self, entity: str, item_id: str) -> dict[str, Any]:
        item = self._table(entity).get(str(item_id))
        if item is None:
            raise DataSourceError(f"{entity} {item_id} not found")
        return copy.deepcopy(item)

    def update(self, entity: str, item_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        table = self._table(entity)
        if str(item_id) not in table:
            raise DataSourceError(f"{entity} {item_id} not found")
        updated = {**table[str(item_id)], **copy.deepcopy(changes), "id": str(item_id)}
        table[str(item_id)] = updated
        return copy.deepcopy(updated)


# ── HTTP ──────────────────────────────────────────────────────────────────────

class HttpDataSource(DataSource):
    """
    Talks to the CRM API with requests.

    Every call is a single attempt bounded by `timeout`. Transport errors,
    non-2xx responses and non-JSON bodies raise DataSourceError; for error
    responses it carries the API's error message.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = settings.http_timeout if timeout is None else timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise DataSourceError(f"Request failed: {e}") from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = (body.get("error") if isinstance(body, dict) else None) or f"HTTP {response.status_code}"
            logger.warning("%s %s → %s", method, url, message)
            raise DataSourceError(message)

        try:
            return response.json()
        except ValueError as e:
            logger.error("%s %s returned a non-JSON body", method, url)
            raise DataSourceError("Invalid JSON response") from e

    def list(self, entity: str, **filters: Any) -> list[dict[str, Any]]:
        _check_entity(entity)
        params = {key: value for key, value in filters.items() if value is not None}
        data = self._request("GET", entity, params=params)
        return data if isinstance(data, list) else []

    def fetch(self, entity: str, item_id: str) -> dict[str, Any]:
        _check_entity(entity)
        return self._request("GET", f"{entity}/{item_id}")

    def update(self, entity: str, item_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        _check_entity(entity)
        if entity in PATCH_COLLECTION_ENTITIES:
            return self._request("PATCH", entity, json={**changes, "id": str(item_id)})
        return self._request("PUT", f"{entity}/{item_id}", json=changes)


def build_data_source() -> DataSource:
    """Data source selected by settings.data_source."""
    if settings.data_source == "http":
        logger.info("Pipeline data source: HTTP (%s)", settings.api_base_url)
        return HttpDataSource()
    logger.info("Pipeline data source: in-memory fixtures")
    return InMemoryDataSource()
