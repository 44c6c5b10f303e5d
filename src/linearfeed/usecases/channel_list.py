from __future__ import annotations

from typing import Any

from ..infra.exceptions import ValidationError
from ..stores.interfaces import ChannelStore
from .channel_add import channel_to_dict


def tenant_from_host(host: str | None) -> str | None:
    """Tenant addressed by an HTTP ``Host`` header.

    ``localhost`` (any port) is the operator view and addresses every tenant,
    signalled by ``None``. A missing host never widens the scope.

    Raises:
        ValidationError: If ``host`` is missing or blank
    """
    host = (host or "").strip()
    if not host:
        raise ValidationError("Missing Host header")
    if host.startswith("localhost"):
        return None
    return host


def list_channels(store: ChannelStore, tenant: str | None = None) -> list[dict[str, Any]]:
    """List channels of ``tenant``, or of every tenant when it is None."""
    channels = store.list_all() if tenant is None else store.list_by_tenant(tenant)
    return [channel_to_dict(c) for c in channels]
