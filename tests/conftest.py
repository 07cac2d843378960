"""Shared pytest fixtures and configuration for all tests."""

import asyncio
import inspect
import logging
import socket
from pathlib import Path

import pytest

from tontoo.config import Settings
from tontoo.runtime.context import RuntimeContext


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Run async test functions without requiring external plugins."""
    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            sig = inspect.signature(test_function)
            filtered_args = {k: v for k, v in pyfuncitem.funcargs.items() if k in sig.parameters}
            loop.run_until_complete(test_function(**filtered_args))
        finally:
            loop.close()
            asyncio.set_event_loop(None)
        return True
    return None


def pytest_configure(config):
    """Register markers for pytest."""
    config.addinivalue_line("markers", "asyncio: mark async tests")
    config.addinivalue_line("markers", "integration: mark test as binding real sockets")


@pytest.fixture(autouse=True)
def _tontoo_logs_reach_caplog():
    """``configure_logging`` stops propagation; restore it so caplog sees records."""
    yield
    logger = logging.getLogger("tontoo")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def settings():
    return Settings(idle_grace_seconds=0.0, secret_key="test-secret")


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def make_ctx(workspace, settings):
    """Build a RuntimeContext over ``workspace`` with optional bundle sources."""

    def factory(sources=None, **kwargs):
        return RuntimeContext(workspace, sources, settings=settings, **kwargs)

    return factory


@pytest.fixture
def ctx(make_ctx):
    return make_ctx()


@pytest.fixture
def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class FakeCertificateGenerator:
    """Records calls and writes placeholder files instead of real key material."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = []

    def generate(self, key_path: Path, cert_path: Path, bits: int, days: int) -> None:
        self.calls.append((Path(key_path), Path(cert_path), bits, days))
        if self.fail:
            raise OSError("certificate tool not available")
        Path(key_path).write_text("key")
        Path(cert_path).write_text("cert")


@pytest.fixture
def cert_generator():
    return FakeCertificateGenerator()


@pytest.fixture
def failing_cert_generator():
    return FakeCertificateGenerator(fail=True)
