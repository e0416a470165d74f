from typing import Iterator

import pytest

from keyenv import KeyEnv

BASE_URL = "https://api.test.keyenv.dev"
API = f"{BASE_URL}/api/v1"


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client() -> Iterator[KeyEnv]:
    client = KeyEnv("test-token", base_url=BASE_URL)
    yield client
    client.close()


@pytest.fixture
def cached_client(clock: FakeClock) -> Iterator[KeyEnv]:
    client = KeyEnv("test-token", base_url=BASE_URL, cache_ttl=60, clock=clock)
    yield client
    client.close()
