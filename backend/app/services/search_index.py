from __future__ import annotations

import logging

import httpx

from app.core.config import get_settings
from app.core.exceptions import SearchIndexError
from app.models.timetable import Timetable
from app.schemas.timetable import TimetableOut

logger = logging.getLogger(__name__)


def build_index_snapshot(timetable: Timetable) -> dict:
    return TimetableOut.model_validate(timetable).model_dump(mode="json", by_alias=True)


class SearchIndexClient:
    """HTTP client for the external timetable search service.

    With no base URL configured every call is a logged no-op.
    """

    def __init__(
        self,
        base_url: str | None,
        *,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self._base_url is not None

    def add_timetable(self, snapshot: dict) -> None:
        self._send("POST", "/timetable/add", snapshot, action="adding timetable to")

    def remove_timetable(self, timetable_id: int) -> None:
        # An index that never held the timetable answers 404; the goal state is reached either way.
        self._send(
            "DELETE",
            "/timetable/remove",
            {"id": str(timetable_id)},
            action="removing timetable from",
            tolerate_missing=True,
        )

    def _send(
        self,
        method: str,
        path: str,
        payload: dict,
        *,
        action: str,
        tolerate_missing: bool = False,
    ) -> None:
        if not self.enabled:
            logger.debug("Search service not configured; skipped %s %s", method, path)
            return

        url = f"{self._base_url}{path}"
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.request(method, url, json=payload)
        except httpx.HTTPError as exc:
            logger.exception("Error while %s search service", action)
            raise SearchIndexError(f"Error while {action} search service") from exc

        if tolerate_missing and response.status_code == httpx.codes.NOT_FOUND:
            return
        if response.is_error:
            logger.error(
                "Search service rejected request | method=%s | url=%s | status=%s | body=%s",
                method,
                url,
                response.status_code,
                response.text[:500],
            )
            raise SearchIndexError(
                f"Error while {action} search service",
                details={"status_code": response.status_code},
            )


def get_search_index_client() -> SearchIndexClient:
    settings = get_settings()
    return SearchIndexClient(settings.search_service_url, timeout=settings.search_service_timeout_seconds)
