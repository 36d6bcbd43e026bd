"""Utilities for interacting with the hosted backend's REST (PostgREST) API."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

DEFAULT_TIMEOUT = 10


def filter_expression(value: Any) -> str:
    """Return the PostgREST filter for ``value``.

    Sequences become ``in.(a,b)``; everything else is an ``eq.`` match.
    """

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        joined = ",".join(str(item) for item in value)
        return f"in.({joined})"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


@dataclass
class RestBackend:
    """Table-level wrapper for reading and writing rows over REST."""

    url: str
    api_key: str
    access_token: Optional[str] = None
    schema: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        """Build request headers for the REST API."""

        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.schema:
            headers["Accept-Profile"] = self.schema
            headers["Content-Profile"] = self.schema
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _url(self, table: str) -> str:
        return f"{self.url.rstrip('/')}/rest/v1/{table}"

    @staticmethod
    def _params(
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        columns: str = "*",
    ) -> Dict[str, str]:
        params = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = filter_expression(value)
        if order:
            params["order"] = order
        return params

    @staticmethod
    def _rows(response: requests.Response) -> List[Dict[str, Any]]:
        if response.status_code == 204 or not response.content:
            return []
        payload = response.json()
        if isinstance(payload, list):
            return payload
        return [payload] if payload else []

    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        columns: str = "*",
    ) -> List[Dict[str, Any]]:
        """Return rows of ``table`` matching ``filters``.

        ``order`` uses the PostgREST form, e.g. ``"created_at.desc"``.
        """

        response = requests.get(
            self._url(table),
            headers=self._headers(),
            params=self._params(filters, order, columns),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return self._rows(response)

    def select_one(
        self,
        table: str,
        filters: Mapping[str, Any],
        columns: str = "*",
    ) -> Optional[Dict[str, Any]]:
        rows = self.select(table, filters, columns=columns)
        return rows[0] if rows else None

    def insert(self, table: str, rows: Sequence[Mapping[str, Any]] | Mapping[str, Any]) -> List[Dict[str, Any]]:
        payload = [dict(rows)] if isinstance(rows, Mapping) else [dict(row) for row in rows]
        if not payload:
            return []
        response = requests.post(
            self._url(table),
            headers=self._headers("return=representation"),
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return self._rows(response)

    def upsert(self, table: str, row: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """Insert ``row`` or merge it into the existing row with the same key."""

        response = requests.post(
            self._url(table),
            headers=self._headers("resolution=merge-duplicates,return=representation"),
            json=[dict(row)],
            timeout=self.timeout,
        )
        response.raise_for_status()
        return self._rows(response)

    def update(
        self,
        table: str,
        values: Mapping[str, Any],
        filters: Mapping[str, Any],
    ) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError("Refusing to update every row of a table.")
        response = requests.patch(
            self._url(table),
            headers=self._headers("return=representation"),
            params={column: filter_expression(value) for column, value in filters.items()},
            json=dict(values),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return self._rows(response)

    def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        if not filters:
            raise ValueError("Refusing to delete every row of a table.")
        response = requests.delete(
            self._url(table),
            headers=self._headers(),
            params={column: filter_expression(value) for column, value in filters.items()},
            timeout=self.timeout,
        )
        response.raise_for_status()


def backend_from_secrets(secrets: Mapping[str, Any]) -> Optional[RestBackend]:
    """Build a backend from Streamlit secrets, or ``None`` when unconfigured.

    Reads the ``[backend]`` table and falls back to the flat
    ``backend_url`` / ``backend_api_key`` keys.
    """

    section = secrets.get("backend") if hasattr(secrets, "get") else None
    if not isinstance(section, Mapping):
        section = {}

    url = section.get("url") or secrets.get("backend_url")
    api_key = section.get("api_key") or secrets.get("backend_api_key")
    if not url or not api_key:
        return None
    return RestBackend(
        url=str(url),
        api_key=str(api_key),
        access_token=section.get("access_token"),
        schema=section.get("schema"),
    )


__all__ = ["RestBackend", "backend_from_secrets", "filter_expression"]
