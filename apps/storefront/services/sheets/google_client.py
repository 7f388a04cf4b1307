# apps/storefront/services/sheets/google_client.py

from __future__ import annotations

import json as jsonlib
import time
import uuid
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests


class GoogleAPIError(RuntimeError):
    pass


def _retry_delay(retry_after: Optional[str], default: float) -> float:
    try:
        return max(0.0, float(retry_after))
    except (TypeError, ValueError):
        return default


class GoogleSheetsClient:
    """
    Plain REST client for Google Sheets v4 values and Drive v3 uploads.

    - Bearer token auth (token minted outside this service)
    - Centralized retry + 429 handling
    """

    SHEETS_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
    DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
    TIMEOUT_SECONDS = 20
    MAX_RETRIES = 3
    RETRY_BACKOFF_SECONDS = 1.5

    def __init__(self, access_token: str):
        if not access_token:
            raise ValueError("GoogleSheetsClient requires an access token")
        self.access_token = access_token.strip()
        self.headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

    # ---------------------------------------------------------
    # Low-level request handler
    # ---------------------------------------------------------
    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.MAX_RETRIES + 1):
            try:
                response = requests.request(
                    method=method,
                    url=url,
                    headers={**self.headers, **(headers or {})},
                    params=params,
                    json=json,
                    data=data,
                    timeout=self.TIMEOUT_SECONDS,
                )

                if response.status_code == 429:
                    time.sleep(_retry_delay(response.headers.get("Retry-After"), self.RETRY_BACKOFF_SECONDS))
                    continue

                response.raise_for_status()
                return response.json() if response.content else {}

            except Exception as e:
                last_error = e
                if attempt < self.MAX_RETRIES:
                    time.sleep(self.RETRY_BACKOFF_SECONDS * attempt)
                    continue
                break

        raise GoogleAPIError(f"Google API request failed after retries: {last_error}")

    def _values_url(self, sheet_id: str, range_: str, suffix: str = "") -> str:
        return f"{self.SHEETS_BASE}/{sheet_id}/values/{quote(range_, safe='!:')}{suffix}"

    # ---------------------------------------------------------
    # Sheets values
    # ---------------------------------------------------------
    def get_values(self, sheet_id: str, range_: str) -> List[List[str]]:
        payload = self._request("GET", self._values_url(sheet_id, range_))
        return payload.get("values") or []

    def update_values(self, sheet_id: str, range_: str, rows: List[List[Any]]) -> Dict[str, Any]:
        return self._request(
            "PUT",
            self._values_url(sheet_id, range_),
            params={"valueInputOption": "RAW"},
            json={"range": range_, "values": rows},
        )

    def append_values(self, sheet_id: str, range_: str, rows: List[List[Any]]) -> Dict[str, Any]:
        return self._request(
            "POST",
            self._values_url(sheet_id, range_, ":append"),
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"values": rows},
        )

    # ---------------------------------------------------------
    # Drive
    # ---------------------------------------------------------
    def upload_json(self, name: str, payload: Any, *, parent_id: Optional[str] = None) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {"name": name, "mimeType": "application/json"}
        if parent_id:
            metadata["parents"] = [parent_id]

        boundary = uuid.uuid4().hex
        body = (
            f"--{boundary}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{jsonlib.dumps(metadata)}\r\n"
            f"--{boundary}\r\n"
            "Content-Type: application/json\r\n\r\n"
            f"{jsonlib.dumps(payload, indent=2, default=str)}\r\n"
            f"--{boundary}--"
        ).encode("utf-8")

        return self._request(
            "POST",
            self.DRIVE_UPLOAD_URL,
            params={"uploadType": "multipart"},
            data=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )
