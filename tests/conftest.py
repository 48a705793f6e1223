"""Shared fixtures for bpxc tests."""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Iterator
from dataclasses import dataclass

import pytest

from bpxc.auth.keys import generate_keypair
from bpxc.config import reset_settings

# RFC 8032 section 7.1, test 1
RFC8032_SEED_HEX = "9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60"
RFC8032_PUBLIC_HEX = "d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a"
RFC8032_EMPTY_SIG_HEX = (
    "e5564300c360ac729086e2cc806e828a84877f1eb8e5d974d873e065224901555"
    "fb8821590a33bacc61e39701cf9b46bd25bf5f0595bbe24655141438e7a100b"
)


def b64(hex_value: str) -> str:
    return base64.b64encode(bytes.fromhex(hex_value)).decode()


class FakeSleep:
    """Fake async sleep that records requested delays."""

    def __init__(self) -> None:
        self.sleep_durations: list[float] = []

    @property
    def call_count(self) -> int:
        return len(self.sleep_durations)

    async def __call__(self, seconds: float) -> None:
        self.sleep_durations.append(seconds)
        await asyncio.sleep(0)  # Yield to event loop


class FakeClock:
    """Millisecond clock that advances on every read."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1) -> None:
        self.now = start
        self.step = step
        self.reads: list[int] = []

    def __call__(self) -> int:
        value = self.now
        self.reads.append(value)
        self.now += self.step
        return value


@dataclass(frozen=True)
class RfcVector:
    """RFC 8032 test vector as raw bytes."""

    seed: bytes
    public: bytes
    empty_signature: bytes


@pytest.fixture
def rfc_vector() -> RfcVector:
    return RfcVector(
        seed=bytes.fromhex(RFC8032_SEED_HEX),
        public=bytes.fromhex(RFC8032_PUBLIC_HEX),
        empty_signature=bytes.fromhex(RFC8032_EMPTY_SIG_HEX),
    )


@pytest.fixture
def rfc_private_b64() -> str:
    return b64(RFC8032_SEED_HEX)


@pytest.fixture
def rfc_public_b64() -> str:
    return b64(RFC8032_PUBLIC_HEX)


@pytest.fixture
def keypair_b64() -> tuple[str, str]:
    """A freshly generated (private, public) base64 pair."""
    return generate_keypair()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep BPX/BPXC environment variables and cached settings out of tests."""
    for name in (
        "BPX_PRIVATE_KEY",
        "BPX_PUBLIC_KEY",
        "BPX_WINDOW",
        "BPXC_BASE_URL",
        "BPXC_WINDOW_MS",
        "BPXC_MAX_RETRIES",
        "BPXC_RETRY_POLICY",
        "BPXC_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()
