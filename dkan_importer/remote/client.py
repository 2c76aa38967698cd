from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..services.dictionary import DataDictionary

"""DKAN HTTP collaborator.

Thin wrapper around the DKAN REST endpoints used by an import run:

- GET   /api/1/metastore/schemas/data-dictionary/items          dictionary list
- GET   /api/1/metastore/schemas/data-dictionary/items/<id>     existence check
- POST  /api/importer/upload                                    CSV upload (multipart "csv")
- GET / PATCH /api/1/metastore/schemas/dataset/items/<id>       distribution update
- POST  /api/importer/delete/<file name>                        replaced file cleanup

Basic auth is only sent over https.
"""

__all__ = [
    "RemoteApiError",
    "DkanClient",
    "create_session",
    "generate_unique_filename",
]

logger = logging.getLogger(__name__)

DICTIONARY_ITEMS_PATH = "/api/1/metastore/schemas/data-dictionary/items"
DATASET_ITEMS_PATH = "/api/1/metastore/schemas/dataset/items"
UPLOAD_PATH = "/api/importer/upload"
DELETE_PATH = "/api/importer/delete"
DESCRIBED_BY_TYPE = "application/vnd.tableschema+json"


class RemoteApiError(Exception):
    """Raised when a DKAN endpoint answers with a non-success status or bad payload."""


def create_session() -> requests.Session:
    """requests session with retry on transient failures."""
    session = requests.Session()
    retry_strategy = Retry(
        total=3,
        backoff_factor=1.0,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["HEAD", "GET", "OPTIONS"],
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def generate_unique_filename(dataset_id: str, data_dictionary_id: str, now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")
    return f"{dataset_id}_{data_dictionary_id}_{stamp}.csv"


class DkanClient:
    def __init__(
        self,
        base_url: str,
        username: str | None = None,
        password: str | None = None,
        *,
        session: requests.Session | None = None,
        timeout: float = 30,
    ) -> None:
        if not base_url.startswith("https://"):
            raise RemoteApiError(f"The URL must be https. The provided URL is: {base_url}")
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.session = session or create_session()
        self.timeout = timeout

    @property
    def _auth(self) -> tuple[str, str] | None:
        if self.username is None:
            return None
        return (self.username, self.password or "")

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteApiError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _json(response: requests.Response, context: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteApiError(f"{context}: response is not JSON") from e

    def dictionary_url(self, identifier: str) -> str:
        return self._url(f"{DICTIONARY_ITEMS_PATH}/{identifier}")

    def fetch_data_dictionary(self, identifier: str) -> DataDictionary:
        """Fetch a data dictionary by identifier and confirm its item URL resolves."""
        response = self._request("GET", self._url(DICTIONARY_ITEMS_PATH), headers={"Accept": "application/json"})
        if not response.ok:
            raise RemoteApiError(f"Failed to list data dictionaries: {response.status_code} {response.text}")
        items = self._json(response, "data dictionary list")
        if not isinstance(items, list):
            raise RemoteApiError("data dictionary list: expected a JSON array")

        match = next(
            (item for item in items if isinstance(item, dict) and item.get("identifier") == identifier),
            None,
        )
        if match is None:
            raise RemoteApiError(f"Data dictionary with identifier '{identifier}' not found")
        data = match.get("data")
        if not isinstance(data, dict):
            raise RemoteApiError("Data dictionary data not found")

        url = self.dictionary_url(identifier)
        check = self._request("GET", url)
        if not check.ok:
            raise RemoteApiError(
                f"Failed to validate the existence of the data dictionary {identifier}. "
                f"Please check if the data dictionary exists and is accessible at {url}"
            )
        logger.info(f"data dictionary fetched: {identifier}")
        return DataDictionary.from_data(identifier, data, url=url)

    def upload_csv(self, csv_path: Path) -> str:
        """Upload a CSV file; returns the stored file URL."""
        with csv_path.open("rb") as f:
            files = {"csv": (csv_path.name, f, "text/csv")}
            response = self._request("POST", self._url(UPLOAD_PATH), auth=self._auth, files=files)
        if not response.ok:
            raise RemoteApiError(f"Custom importer upload failed: {response.text}")
        payload = self._json(response, "upload")
        file_url = payload.get("data", {}).get("file_url") if isinstance(payload, dict) else None
        if not isinstance(file_url, str):
            raise RemoteApiError("File URL not found in upload response")
        return file_url

    def add_distribution(self, dataset_id: str, file_name: str, file_url: str, dictionary_url: str) -> str | None:
        """Add (or replace) the CSV distribution described by ``dictionary_url``.

        Returns:
            The file name of the replaced distribution, or None when nothing was replaced
        """
        endpoint = self._url(f"{DATASET_ITEMS_PATH}/{dataset_id}")
        response = self._request("GET", endpoint, auth=self._auth)
        if not response.ok:
            raise RemoteApiError(f"Failed to get dataset {dataset_id}: {response.text}")
        dataset = self._json(response, f"dataset {dataset_id}")
        if not isinstance(dataset, dict):
            raise RemoteApiError(f"dataset {dataset_id}: expected a JSON object")
        title = dataset.get("title")
        if not isinstance(title, str):
            raise RemoteApiError("Dataset title not found")

        new_distribution = {
            "title": file_name,
            "description": f"Data file: {file_name}",
            "format": "csv",
            "mediaType": "text/csv",
            "downloadURL": file_url,
            "describedBy": dictionary_url,
            "describedByType": DESCRIBED_BY_TYPE,
        }

        previous: str | None = None
        kept: list[Any] = []
        for dist in dataset.get("distribution") or []:
            if isinstance(dist, dict) and dist.get("describedBy") == dictionary_url:
                if isinstance(dist.get("title"), str):
                    previous = dist["title"]
                elif isinstance(dist.get("downloadURL"), str):
                    previous = dist["downloadURL"].rsplit("/", 1)[-1]
                continue
            kept.append(dist)
        kept.append(new_distribution)
        dataset["distribution"] = kept

        patch = self._request("PATCH", endpoint, auth=self._auth, json=dataset)
        if not patch.ok:
            raise RemoteApiError(
                f'Failed to add CSV distribution to dataset "{title}" with id "{dataset_id}" with error: {patch.text}'
            )
        if previous is not None:
            logger.info(f"replaced CSV distribution '{previous}' with '{file_name}' in dataset \"{title}\"")
        else:
            logger.info(f"added CSV distribution '{file_name}' to dataset \"{title}\"")
        return previous

    def delete_remote_file(self, file_name: str) -> None:
        # DELETE は非対応のため POST
        response = self._request("POST", self._url(f"{DELETE_PATH}/{file_name}"), auth=self._auth)
        if not response.ok:
            raise RemoteApiError(f"Failed to delete file {file_name}: {response.text}")
        logger.info(f"previous CSV file deleted: {file_name}")
