from __future__ import annotations

from typing import Any

from disaster_api.clients.http import ClientFactory, default_client_factory, request_json

RELIEFWEB_REPORTS_URL = "https://api.reliefweb.int/v1/reports"
SUMMARY_LENGTH = 280


class ReliefWebClient:
    source_name = "ReliefWeb"

    def __init__(
        self,
        app_name: str,
        timeout_seconds: float = 5.0,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._app_name = app_name
        self._client_factory = client_factory or default_client_factory(timeout_seconds)

    async def fetch_updates(self, keywords: list[str], limit: int = 10) -> list[dict[str, Any]]:
        body: dict[str, Any] = {
            "limit": limit,
            "sort": ["date.created:desc"],
            "fields": {"include": ["title", "url", "date.created", "source.name", "body"]},
        }
        if keywords:
            body["query"] = {"value": " OR ".join(keywords), "operator": "OR"}
        payload = await request_json(
            self._client_factory,
            "POST",
            RELIEFWEB_REPORTS_URL,
            params={"appname": self._app_name},
            json=body,
        )
        return [self._to_update(item) for item in payload.get("data") or []][:limit]

    def _to_update(self, item: dict[str, Any]) -> dict[str, Any]:
        fields = item.get("fields") or {}
        sources = fields.get("source") or []
        body = (fields.get("body") or "").strip()
        if len(body) > SUMMARY_LENGTH:
            body = body[: SUMMARY_LENGTH - 3].rstrip() + "..."
        return {
            "id": str(item.get("id", "")),
            "source": sources[0].get("name", self.source_name) if sources else self.source_name,
            "title": fields.get("title", ""),
            "date": (fields.get("date") or {}).get("created"),
            "summary": body,
            "link": fields.get("url"),
        }
