from __future__ import annotations

from typing import Any

from disaster_api.clients.http import ClientFactory, default_client_factory, request_json

TWITTER_SEARCH_URL = "https://api.twitter.com/2/tweets/search/recent"


def build_search_query(keywords: list[str]) -> str:
    terms = " OR ".join(f'"{keyword}"' for keyword in keywords if keyword.strip())
    return f"({terms}) -is:retweet -is:reply -is:quote lang:en"


class TwitterSearchClient:
    platform = "twitter"

    def __init__(
        self,
        bearer_token: str,
        timeout_seconds: float = 5.0,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._headers = {"Authorization": f"Bearer {bearer_token}"}
        self._client_factory = client_factory or default_client_factory(timeout_seconds)

    async def search_recent(self, keywords: list[str], limit: int = 20) -> list[dict[str, Any]]:
        if not keywords:
            return []
        payload = await request_json(
            self._client_factory,
            "GET",
            TWITTER_SEARCH_URL,
            headers=self._headers,
            params={
                "query": build_search_query(keywords),
                "tweet.fields": "created_at,author_id,public_metrics",
                "user.fields": "name,username,profile_image_url",
                "expansions": "author_id",
                # API bounds: 10..100
                "max_results": min(max(limit, 10), 100),
            },
        )
        users = {user["id"]: user for user in (payload.get("includes") or {}).get("users", [])}
        posts = []
        for tweet in payload.get("data") or []:
            author = users.get(tweet.get("author_id"), {})
            posts.append(
                {
                    "id": str(tweet["id"]),
                    "text": tweet.get("text", ""),
                    "created_at": tweet.get("created_at"),
                    "user": {
                        "id": tweet.get("author_id"),
                        "name": author.get("name", "Unknown"),
                        "username": author.get("username", "unknown"),
                        "profile_image": author.get("profile_image_url"),
                    },
                    "metrics": tweet.get("public_metrics") or {},
                    "platform": self.platform,
                    "url": f"https://twitter.com/{tweet.get('author_id')}/status/{tweet['id']}",
                }
            )
        return posts[:limit]
