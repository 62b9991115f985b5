"""
fallback.py — Tenant-column schema fallback shared by ingestion and publish.

Stores that were never migrated to multi-tenancy have no festival_id
column. Both the feed query and the row insert are therefore attempted
with the tenant discriminator first and, if and only if the store reports
that exact column as unknown, retried once without it:

    rows = await call_with_tenant_fallback(
        lambda fid: store.select_recent(since, festival_id=fid, limit=250),
        config.tenant_id,
    )

A failure of the retry propagates unchanged; there is never a second retry.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from festmap.core.errors import StoreError

logger = logging.getLogger(__name__)

TENANT_COLUMN = "festival_id"

T = TypeVar("T")


async def call_with_tenant_fallback(
    operation: Callable[[Optional[str]], Awaitable[T]],
    tenant_id: Optional[str],
    *,
    action: str = "store call",
) -> T:
    """Run `operation(tenant_id)`, retrying once with `None` on a missing tenant column."""
    try:
        return await operation(tenant_id)
    except StoreError as exc:
        if tenant_id is None or not exc.is_unknown_column(TENANT_COLUMN):
            raise
        logger.info("%s: posts has no %s column, retrying without it", action, TENANT_COLUMN)

    return await operation(None)
