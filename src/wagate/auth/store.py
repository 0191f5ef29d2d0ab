"""Persistent tenant store.

The store exclusively owns every persisted tenant field, including the
cached OAuth2 tokens. Other components never keep their own copy of that
state: the token broker and the header resolver read the tenant fresh on
each use and write back through :meth:`TenantStore.update_webhook_auth`.

Two implementations are provided:

- :class:`FileTenantStore` -- one JSON document on disk, written
  atomically with ``0o600`` permissions.
- :class:`MemoryTenantStore` -- a process-local store for embedding and
  tests.

Every mutation is one read-modify-write performed under an in-process lock,
so an update is either fully applied or not applied at all.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from wagate.config import atomic_write
from wagate.exceptions import ConfigError, ConfigurationError, TenantNotFoundError
from wagate.models import Tenant, WebhookAuthType, WebhookAuthUpdate


class StoreDocument(BaseModel):
    """Serialised form of the whole store."""

    next_id: int = 1
    tenants: list[Tenant] = Field(default_factory=list)


class TenantStore(ABC):
    """Key-value record store for tenants, keyed by id and username.

    Subclasses only implement :meth:`_read` and :meth:`_write`; lookups and
    partial updates are shared.

    Args:
        admin_username: The reserved virtual admin identity. It can never be
            created as a tenant.
    """

    def __init__(self, admin_username: str = "admin") -> None:
        self._admin_username = admin_username
        self._lock = threading.Lock()

    @abstractmethod
    def _read(self) -> StoreDocument:
        """Load a fresh copy of the whole document."""
        ...

    @abstractmethod
    def _write(self, document: StoreDocument) -> None:
        """Replace the whole document in one atomic write."""
        ...

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def get_by_id(self, tenant_id: int) -> Optional[Tenant]:
        for tenant in self._read().tenants:
            if tenant.id == tenant_id:
                return tenant
        return None

    def get_by_username(self, username: str) -> Optional[Tenant]:
        for tenant in self._read().tenants:
            if tenant.username == username:
                return tenant
        return None

    def get_by_session_name(self, session_name: str) -> Optional[Tenant]:
        """Find the tenant whose effective session name is *session_name*."""
        for tenant in self._read().tenants:
            if tenant.effective_session_name == session_name:
                return tenant
        return None

    def list_tenants(self) -> list[Tenant]:
        return sorted(self._read().tenants, key=lambda t: t.id)

    def require(self, tenant_id: int) -> Tenant:
        """Like :meth:`get_by_id` but raises :class:`TenantNotFoundError`."""
        tenant = self.get_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(f"Tenant {tenant_id} not found")
        return tenant

    def require_username(self, username: str) -> Tenant:
        tenant = self.get_by_username(username)
        if tenant is None:
            raise TenantNotFoundError(f"Tenant '{username}' not found")
        return tenant

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def create_tenant(
        self,
        username: str,
        session_name: Optional[str] = None,
        callback_url: Optional[str] = None,
    ) -> Tenant:
        """Create a tenant and assign it the next id.

        Raises:
            ConfigurationError: If *username* is empty, reserved for the
                admin, or already taken.
        """
        if not username:
            raise ConfigurationError("Username is required")
        if username == self._admin_username:
            raise ConfigurationError(
                f"'{username}' is reserved for the admin and cannot own a session"
            )
        with self._lock:
            document = self._read()
            if any(t.username == username for t in document.tenants):
                raise ConfigurationError(f"Tenant '{username}' already exists")
            tenant = Tenant(
                id=document.next_id,
                username=username,
                session_name=session_name,
                callback_url=callback_url,
            )
            document.tenants.append(tenant)
            document.next_id += 1
            self._write(document)
        return tenant

    def delete_tenant(self, tenant_id: int) -> None:
        with self._lock:
            document = self._read()
            remaining = [t for t in document.tenants if t.id != tenant_id]
            if len(remaining) == len(document.tenants):
                raise TenantNotFoundError(f"Tenant {tenant_id} not found")
            document.tenants = remaining
            self._write(document)

    def update_session_name(self, tenant_id: int, session_name: Optional[str]) -> Tenant:
        return self._update(tenant_id, {"session_name": session_name})

    def update_callback_url(self, tenant_id: int, callback_url: Optional[str]) -> Tenant:
        return self._update(tenant_id, {"callback_url": callback_url})

    def update_webhook_auth(self, tenant_id: int, update: WebhookAuthUpdate) -> Tenant:
        """Write only the fields explicitly set on *update*.

        Fields left unset keep their stored value. An update with no set
        fields is a no-op that still verifies the tenant exists.

        Returns:
            The tenant as stored after the write.

        Raises:
            TenantNotFoundError: If no tenant has *tenant_id*.
        """
        changes = update.changes()
        if "webhook_auth_type" in changes and changes["webhook_auth_type"] is None:
            changes["webhook_auth_type"] = WebhookAuthType.NONE
        return self._update(tenant_id, changes)

    def _update(self, tenant_id: int, changes: dict[str, Any]) -> Tenant:
        with self._lock:
            document = self._read()
            for index, tenant in enumerate(document.tenants):
                if tenant.id == tenant_id:
                    break
            else:
                raise TenantNotFoundError(f"Tenant {tenant_id} not found")
            if not changes:
                return tenant
            updated = tenant.model_copy(update=changes)
            document.tenants[index] = updated
            self._write(document)
        return updated


class FileTenantStore(TenantStore):
    """Tenant store backed by a single JSON file.

    The file is re-read on every call so that separate processes (the
    gateway and the operator CLI) observe each other's writes. Writes are
    atomic: content goes to a temporary file in the same directory, is
    fsynced, then renamed into place.

    Example::

        store = FileTenantStore(Path("/var/lib/wagate/tenants.json"))
        alice = store.create_tenant("alice")
        assert store.get_by_username("alice").id == alice.id
    """

    def __init__(self, path: Path, admin_username: str = "admin") -> None:
        super().__init__(admin_username)
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> StoreDocument:
        if not self._path.is_file():
            return StoreDocument()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return StoreDocument.model_validate(data)
        except (json.JSONDecodeError, ValueError) as exc:
            raise ConfigError(f"Invalid tenant store at {self._path}: {exc}") from exc

    def _write(self, document: StoreDocument) -> None:
        text = json.dumps(document.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self._path, text, mode=0o600)


class MemoryTenantStore(TenantStore):
    """Process-local tenant store. Reads return copies, never shared objects."""

    def __init__(self, admin_username: str = "admin") -> None:
        super().__init__(admin_username)
        self._document = StoreDocument()

    def _read(self) -> StoreDocument:
        return self._document.model_copy(deep=True)

    def _write(self, document: StoreDocument) -> None:
        self._document = document.model_copy(deep=True)
