"""
Test configuration and fixtures for Palette Sniffer tests.
"""
import io
import struct
import zlib
from concurrent.futures import Executor, Future, ThreadPoolExecutor

import httpx
import pytest
from PIL import Image

from palettesniffer.config import ExtractorConfig
from palettesniffer.services.colors.palette import ColorRecord, Palette


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class ManualExecutor(Executor):
    """Executor that records jobs and lets the test decide when they finish."""

    def __init__(self):
        self.jobs = []
        self.shutdown_called = False

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        self.jobs.append((future, fn, args))
        return future

    def complete(self, index: int):
        future, fn, args = self.jobs[index]
        future.set_result(fn(*args))

    def shutdown(self, wait=True, *, cancel_futures=False):
        self.shutdown_called = True


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


def make_png(color=(255, 0, 0, 255), size=(32, 32)) -> bytes:
    """Encode a solid-color RGBA PNG."""
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    """PNG whose header declares far more pixels than Pillow will open."""
    def chunk(kind: bytes, data: bytes) -> bytes:
        return (struct.pack(">I", len(data)) + kind + data
                + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF))

    header = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return (b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header)
            + chunk(b"IDAT", zlib.compress(b"")) + chunk(b"IEND", b""))


def rgba_buffer(color=(255, 0, 0, 255), pixels: int = 64) -> bytearray:
    return bytearray(bytes(color) * pixels)


def sample_palette(hex_color: str = "#336699") -> Palette:
    record = ColorRecord.from_hex(hex_color, 0.6)
    return Palette(dominant=[record], all=[record])


def thread_executor_factory():
    return ThreadPoolExecutor(max_workers=2)


def unreachable_transport() -> httpx.MockTransport:
    """Transport that fails any request it receives."""
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError(f"unexpected request to {request.url}", request=request)
    return httpx.MockTransport(handler)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def config():
    """Configuration with network strategies limited to metadata."""
    return ExtractorConfig(enable_cors_proxies=False)


@pytest.fixture
def red_png():
    return make_png()
