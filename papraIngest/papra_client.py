import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional

import httpx
import tenacity

from papraIngest.errors import PapraRequestError

DEFAULT_TAG_COLOR = "#000000"


class PapraClient:
    """Minimal client for the Papra REST API (tags and document upload)."""

    def __init__(self, url: str, api_key: str, organization_id: str, transport: Optional[httpx.BaseTransport] = None):
        self.url = url.rstrip("/")
        self.organization_id = organization_id
        self._client = httpx.Client(
            base_url=self.url,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
            timeout=None,
        )

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _org_path(self, suffix: str) -> str:
        return f"/api/organizations/{self.organization_id}/{suffix}"

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self._client.request(method, path, **kwargs)
        if not response.is_success:
            raise PapraRequestError(response.status_code, response.text)
        try:
            return response.json()
        except ValueError:
            return response.text

    # Tags

    def list_tags(self) -> List[Dict[str, Any]]:
        data = self._request("GET", self._org_path("tags"))
        if isinstance(data, dict):
            return data.get("tags") or []
        return []

    def existing_tag_names(self) -> List[str]:
        return [tag["name"] for tag in self.list_tags() if tag.get("name")]

    def create_tag(self, name: str, color: str = DEFAULT_TAG_COLOR) -> Dict[str, Any]:
        data = self._request("POST", self._org_path("tags"), json={"name": name, "color": color})
        tag = data.get("tag") if isinstance(data, dict) else None
        if not isinstance(tag, dict) or not tag.get("id"):
            raise PapraRequestError(None, f"Tag creation for '{name}' returned no tag: {data}")
        logging.info(f"Tag created: {name}")
        return tag

    def attach_tag_to_document(self, document_id: str, tag_id: str) -> None:
        self._request("POST", self._org_path(f"documents/{document_id}/tags"), json={"tagId": tag_id})

    def ensure_tags_exist(self, tag_names: Iterable[str]) -> List[Dict[str, Any]]:
        """Return tag objects for `tag_names` (input order), creating missing ones.

        Names are matched case-insensitively against the existing tags.
        """
        tag_names = list(tag_names or [])
        if not tag_names:
            return []
        existing = {tag["name"].lower(): tag for tag in self.list_tags() if tag.get("name")}
        for name in tag_names:
            if name.lower() not in existing:
                existing[name.lower()] = self.create_tag(name)
        return [existing[name.lower()] for name in tag_names]

    def attach_tags_to_document(self, document_id: str, tag_names: Iterable[str]) -> int:
        tags = self.ensure_tags_exist(tag_names)
        for tag in tags:
            self.attach_tag_to_document(document_id, tag["id"])
        return len(tags)

    # Documents

    @tenacity.retry(
        retry=tenacity.retry_if_exception_type(httpx.TransportError),
        wait=tenacity.wait_random_exponential(min=1, max=20),
        stop=tenacity.stop_after_attempt(3),
        reraise=True,
    )
    def upload_document(self, file_path: str, ocr_languages: Iterable[str] = ()) -> Dict[str, Any]:
        """Upload a PDF. Transport errors are retried, HTTP error statuses are not."""
        with open(file_path, "rb") as handle:
            content = handle.read()
        data = {}
        ocr_languages = list(ocr_languages or [])
        if ocr_languages:
            data["ocrLanguages"] = json.dumps(ocr_languages)
        files = {"file": (os.path.basename(file_path), content, "application/pdf")}
        result = self._request("POST", self._org_path("documents"), files=files, data=data)
        if isinstance(result, dict):
            return result.get("document") or {}
        logging.debug("Upload returned a non-JSON body: %s", str(result)[:200])
        return {}
