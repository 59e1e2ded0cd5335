import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from devkit.redis import AsyncRedisManager, RetryPolicy, create_redis_client


class FakeClient:
    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.closed = False
        self.values: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        if self.failures:
            self.failures -= 1
            raise RedisConnectionError("connection reset")
        return self.values.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        if key == "bad":
            raise ResponseError("WRONGTYPE")
        self.values[key] = value
        return True

    async def aclose(self) -> None:
        self.closed = True


def manager_with(clients: list[FakeClient], attempts: int = 3) -> AsyncRedisManager:
    pending = iter(clients)
    return AsyncRedisManager(
        "redis://example:6379/0",
        retry=RetryPolicy(attempts=attempts, base_delay_seconds=0.0),
        client_factory=lambda _url: next(pending),
    )


def test_create_redis_client_none() -> None:
    assert create_redis_client(None) is None
    assert create_redis_client("") is None


def test_create_redis_client_returns_manager() -> None:
    assert isinstance(create_redis_client("redis://example:6379/0"), AsyncRedisManager)


def test_retry_delay_doubles() -> None:
    policy = RetryPolicy(attempts=4, base_delay_seconds=0.5)

    assert [policy.delay(attempt) for attempt in (1, 2, 3)] == [0.5, 1.0, 2.0]


@pytest.mark.asyncio
async def test_connection_error_rebuilds_client() -> None:
    broken = FakeClient(failures=1)
    healthy = FakeClient()
    healthy.values["geocode:paris"] = "cached"
    manager = manager_with([broken, healthy])

    assert await manager.get("geocode:paris") == "cached"
    assert broken.closed is True


@pytest.mark.asyncio
async def test_gives_up_after_policy_attempts() -> None:
    manager = manager_with([FakeClient(failures=5), FakeClient(failures=5)], attempts=2)

    with pytest.raises(RedisConnectionError):
        await manager.get("geocode:paris")


@pytest.mark.asyncio
async def test_command_errors_are_not_retried() -> None:
    client = FakeClient()
    manager = manager_with([client])

    with pytest.raises(ResponseError):
        await manager.setex("bad", 60, "x")
    assert await manager.setex("good", 60, "x") is True
    assert client.values == {"good": "x"}


@pytest.mark.asyncio
async def test_close_releases_connection() -> None:
    client = FakeClient()
    manager = manager_with([client])
    await manager.get("k")

    await manager.close()

    assert client.closed is True
