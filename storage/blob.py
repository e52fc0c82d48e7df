"""
Blob Backend — stores snapshot documents in a hosted blob store over HTTP.

Speaks the Vercel Blob REST API: PUT to create/overwrite a pathname,
GET with ?prefix= to list, POST /delete to remove, and a plain GET of the
returned blob URL to read.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

import requests

import config
from storage import SnapshotBackend, StoredObject, StoreUnavailable
from trend_radar.models import parse_ts

logger = logging.getLogger(__name__)

API_VERSION = "7"
LIST_PAGE_SIZE = 1000


class BlobBackend(SnapshotBackend):
    """Primary store backed by a public-access blob bucket."""

    name = "blob"

    def __init__(self, token: str, api_url: str = None):
        self.token = token
        self.api_url = (api_url or config.BLOB_API_URL).rstrip("/")

    def _headers(self, **extra) -> dict:
        if not self.token:
            raise StoreUnavailable("BLOB_READ_WRITE_TOKEN is not set")
        headers = {
            "authorization": f"Bearer {self.token}",
            "x-api-version": API_VERSION,
        }
        headers.update(extra)
        return headers

    def put(self, key: str, body: str) -> StoredObject:
        headers = self._headers(**{
            "x-content-type": "application/json",
            "x-add-random-suffix": "0",
            "x-allow-overwrite": "1",
        })
        try:
            response = requests.put(
                f"{self.api_url}/{key}",
                data=body.encode("utf-8"),
                headers=headers,
                timeout=config.REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise StoreUnavailable(f"Blob upload of {key} failed: {e}") from e

        if response.status_code != 200:
            raise StoreUnavailable(
                f"Blob upload of {key} failed: HTTP {response.status_code}"
            )

        try:
            data = response.json() or {}
        except ValueError as e:
            raise StoreUnavailable(f"Blob upload of {key} returned a bad response: {e}") from e
        if not isinstance(data, dict):
            raise StoreUnavailable(f"Blob upload of {key} returned a bad response: {data!r}")

        logger.info(f"Uploaded {key} to {data.get('url', self.api_url)}")
        return StoredObject(
            key=data.get("pathname", key),
            uploaded_at=datetime.now(timezone.utc),
            url=data.get("url"),
        )

    def list(self, prefix: str) -> List[StoredObject]:
        headers = self._headers()
        objects = []
        cursor = None

        while True:
            params = {"prefix": prefix, "limit": LIST_PAGE_SIZE}
            if cursor:
                params["cursor"] = cursor
            try:
                response = requests.get(
                    self.api_url, params=params, headers=headers,
                    timeout=config.REQUEST_TIMEOUT_SECONDS,
                )
            except requests.RequestException as e:
                raise StoreUnavailable(f"Blob listing failed: {e}") from e

            if response.status_code != 200:
                raise StoreUnavailable(f"Blob listing failed: HTTP {response.status_code}")

            try:
                data = response.json() or {}
                for blob in data.get("blobs", []):
                    objects.append(StoredObject(
                        key=blob["pathname"],
                        uploaded_at=parse_ts(blob["uploadedAt"]),
                        url=blob.get("url"),
                    ))
                cursor = data.get("cursor")
                has_more = data.get("hasMore")
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                raise StoreUnavailable(f"Blob listing returned a bad response: {e!r}") from e

            if not has_more or not cursor:
                break

        return objects

    def get(self, key: str) -> Optional[str]:
        match = next((o for o in self.list(key) if o.key == key), None)
        if match is None or not match.url:
            return None

        try:
            response = requests.get(match.url, timeout=config.REQUEST_TIMEOUT_SECONDS)
        except requests.RequestException as e:
            raise StoreUnavailable(f"Blob fetch of {key} failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise StoreUnavailable(
                f"Blob fetch of {key} failed: HTTP {response.status_code}"
            )
        return response.text

    def delete(self, obj: StoredObject) -> None:
        if not obj.url:
            raise StoreUnavailable(f"Blob {obj.key} has no URL to delete")
        try:
            response = requests.post(
                f"{self.api_url}/delete",
                json={"urls": [obj.url]},
                headers=self._headers(),
                timeout=config.REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise StoreUnavailable(f"Blob delete of {obj.key} failed: {e}") from e

        if response.status_code != 200:
            raise StoreUnavailable(
                f"Blob delete of {obj.key} failed: HTTP {response.status_code}"
            )
