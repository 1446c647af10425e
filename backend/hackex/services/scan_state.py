"""
Scan State Store

Dual identity of a scan: the durable record lives in MongoDB under its internal
id, public callers only hold short lived tokens. Every token is a Redis view
`scan:view:{token}` -> {"scan_id", "status"} and is registered in the reverse
index `scan:tokens:{scan_id}` so status changes can be fanned out to all views.
"""

import logging
import uuid
from typing import Any, Dict, Optional, Set

from hackex.core.cache import CacheKeys, CacheService, CacheTTL, cache_service

logger = logging.getLogger(__name__)


class ScanStateStore:
    """Issue, resolve, mirror and revoke public-token views."""

    def __init__(self, cache: Optional[CacheService] = None, ttl_seconds: Optional[int] = None):
        self.cache = cache if cache is not None else cache_service
        self.ttl_seconds = ttl_seconds or CacheTTL.SCAN_VIEW

    async def issue_token(self, scan_id: str, status: str, token: Optional[str] = None) -> str:
        """Create a view for scan_id and register it in the reverse index."""
        token = token or str(uuid.uuid4())
        written = await self.cache.set_and_index(
            CacheKeys.scan_view(token),
            {"scan_id": scan_id, "status": status},
            CacheKeys.scan_tokens(scan_id),
            token,
            ttl_seconds=self.ttl_seconds,
        )
        if not written:
            logger.warning(f"Token view for scan {scan_id} could not be stored")
        return token

    async def resolve(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the view of a token, or None once it expired."""
        view = await self.cache.get(CacheKeys.scan_view(token))
        if not isinstance(view, dict) or "scan_id" not in view:
            return None
        return view

    async def tokens_for(self, scan_id: str) -> Set[str]:
        return await self.cache.members(CacheKeys.scan_tokens(scan_id))

    async def mirror_status(self, scan_id: str, status: str) -> int:
        """
        Propagate a status to every live token of a scan.

        Live views are overwritten with a fresh TTL, an expired view is never
        recreated and its token is dropped from the index. The index TTL is
        refreshed along with the views.
        Returns the number of views updated.
        """
        tokens = await self.tokens_for(scan_id)
        if not tokens:
            return 0

        updated = 0
        stale = []
        for token in sorted(tokens):
            written = await self.cache.set(
                CacheKeys.scan_view(token),
                {"scan_id": scan_id, "status": status},
                ttl_seconds=self.ttl_seconds,
                only_if_exists=True,
            )
            if written:
                updated += 1
            else:
                stale.append(token)

        if stale:
            await self.cache.remove_from_index(CacheKeys.scan_tokens(scan_id), stale)
            logger.debug(f"Dropped {len(stale)} expired tokens of scan {scan_id}")
        if updated:
            await self.cache.refresh_ttl(CacheKeys.scan_tokens(scan_id), self.ttl_seconds)
        return updated

    async def revoke(self, scan_id: str) -> int:
        """Delete all views of a scan and its reverse index."""
        tokens = await self.tokens_for(scan_id)
        keys = [CacheKeys.scan_view(t) for t in tokens]
        keys.append(CacheKeys.scan_tokens(scan_id))
        await self.cache.delete(*keys)
        return len(tokens)


scan_state = ScanStateStore()
