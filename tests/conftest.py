"""Shared test fixtures for wagate.

Provides tenant stores, a fake session engine, isolated config
directories, and a CLI runner. Test doubles live in ``support.py``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from support import FakeEngine
from wagate.auth.store import FileTenantStore, MemoryTenantStore
from wagate.models import Tenant
from wagate.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    CliRunner swaps sys.stdout/sys.stderr; a manager created during one
    test would keep references to closed streams.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Tenant stores
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store() -> MemoryTenantStore:
    return MemoryTenantStore()


@pytest.fixture
def file_store(tmp_path: Path) -> FileTenantStore:
    return FileTenantStore(tmp_path / "tenants.json")


@pytest.fixture
def tenant(memory_store: MemoryTenantStore) -> Tenant:
    """A plain tenant with no webhook auth."""
    return memory_store.create_tenant("alice", callback_url="https://hooks.example.com/alice")


# ---------------------------------------------------------------------------
# Session engine
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear WAGATE_* variables."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["WAGATE_STORE_PATH", "WAGATE_WEBHOOK_BASE_URL", "WAGATE_ADMIN_USER"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output and CLI fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
