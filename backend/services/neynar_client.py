"""
NeynarClient - Farcaster social graph access via the Neynar v2 API.

Every payload is parsed at this boundary. Callers get EngagementRecords,
cast hashes, cast display rows and user dicts, never raw JSON:
- A malformed individual reaction is dropped (fail closed) and counted.
- A malformed or non-2xx response raises NeynarAPIError.

Usage:
    client = NeynarClient(NeynarConfig.from_settings(settings))
    records = await client.fetch_cast_reactions("0xabc...")
    await client.close()
"""
import logging
from typing import Optional, List, Dict, Any, Sequence

import httpx

from config.database import NeynarConfig
from models.domain.engagement import EngagementRecord, ReactionKind
from services.errors import NeynarAPIError

logger = logging.getLogger(__name__)


def _parse_fid(user: Any) -> Optional[str]:
    """Extract a fid from a Neynar user object as a decimal string."""
    if not isinstance(user, dict):
        return None
    fid = user.get('fid')
    # bool is an int subclass; a True fid is garbage, not fid 1
    if isinstance(fid, bool):
        return None
    if isinstance(fid, int) and fid > 0:
        return str(fid)
    if isinstance(fid, str) and fid.isdigit() and int(fid) > 0:
        return str(int(fid))
    return None


def parse_reactions(cast_hash: str, payload: Any) -> List[EngagementRecord]:
    """
    Convert a /reactions/cast response into EngagementRecords.

    Reactions with an unknown reaction_type are ignored; reactions with a
    missing or invalid user fid are dropped.

    Raises:
        NeynarAPIError: if the payload has no reactions list at all
    """
    if not isinstance(payload, dict) or not isinstance(payload.get('reactions'), list):
        raise NeynarAPIError(f"Malformed reactions payload for cast {cast_hash}")

    records = []
    dropped = 0
    for reaction in payload['reactions']:
        if not isinstance(reaction, dict):
            dropped += 1
            continue

        try:
            kind = ReactionKind(reaction.get('reaction_type'))
        except ValueError:
            continue

        fid = _parse_fid(reaction.get('user'))
        if fid is None:
            dropped += 1
            continue

        records.append(EngagementRecord(post_id=cast_hash, identity_id=fid, kind=kind))

    if dropped:
        logger.debug(f"Dropped {dropped} malformed reactions for cast {cast_hash}")
    return records


def parse_cast_hashes(payload: Any) -> List[str]:
    """Extract cast hashes from a /cast/search response."""
    casts = _result_casts(payload)
    return [c['hash'] for c in casts if isinstance(c, dict) and isinstance(c.get('hash'), str) and c['hash']]


def summarize_cast(cast: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shape a Neynar cast for timeline display.

    Only image/video embeds are kept as media; timestamps are cut to the date.
    """
    media = []
    for embed in cast.get('embeds') or []:
        if not isinstance(embed, dict) or not embed.get('url'):
            continue
        content_type = (embed.get('metadata') or {}).get('content_type') or ''
        if content_type.startswith('image'):
            media.append({'type': 'image', 'url': embed['url']})
        elif content_type.startswith('video'):
            media.append({'type': 'video', 'url': embed['url']})

    reactions = cast.get('reactions') or {}
    replies = cast.get('replies') or {}
    timestamp = cast.get('timestamp') or ''

    return {
        'hash': cast.get('hash', ''),
        'text': cast.get('text', ''),
        'timestamp': timestamp.split('T')[0] if timestamp else '',
        'media': media,
        'stats': {
            'likes': reactions.get('likes_count') or 0,
            'recasts': reactions.get('recasts_count') or 0,
            'replies': replies.get('count') or 0,
        },
    }


def _result_casts(payload: Any) -> List[Any]:
    if not isinstance(payload, dict):
        raise NeynarAPIError("Malformed casts payload")
    result = payload.get('result')
    if not isinstance(result, dict) or not isinstance(result.get('casts'), list):
        raise NeynarAPIError("Malformed casts payload: missing result.casts")
    return result['casts']


def build_search_query(keywords: Sequence[str]) -> str:
    """Neynar search syntax: each keyword quoted, OR-ed together."""
    return ' | '.join(f'"{k}"' for k in keywords if k and k.strip())


class NeynarClient:
    """
    Async Neynar API client.

    One httpx.AsyncClient per instance, created lazily; pass `client` to
    inject a preconfigured one (tests use httpx.MockTransport).
    """

    def __init__(self, config: NeynarConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.client = client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None or self.client.is_closed:
            self.client = httpx.AsyncClient(
                base_url=self.config.endpoint,
                headers=self.config.headers,
                timeout=self.config.timeout,
            )
        return self.client

    async def close(self):
        """Close the HTTP client."""
        if self.client and not self.client.is_closed:
            await self.client.aclose()

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        client = self._ensure_client()
        try:
            response = await client.get(path, params=params)
        except httpx.HTTPError as e:
            raise NeynarAPIError(f"Neynar request {path} failed: {e}") from e

        if response.status_code >= 400:
            raise NeynarAPIError(
                f"Neynar {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise NeynarAPIError(f"Neynar {path} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise NeynarAPIError(f"Neynar {path} returned a non-object payload")
        return data

    # =========================================================================
    # REACTIONS
    # =========================================================================

    async def fetch_cast_reactions(self, cast_hash: str) -> List[EngagementRecord]:
        """
        Fetch likes and recasts on one cast (single page of `reaction_limit`).

        Raises:
            NeynarAPIError: on transport, status or payload failure
        """
        data = await self._get('/reactions/cast', {
            'hash': cast_hash,
            'types': 'all',
            'limit': self.config.reaction_limit,
        })
        return parse_reactions(cast_hash, data)

    # =========================================================================
    # CASTS
    # =========================================================================

    async def search_casts(self, keywords: Sequence[str], author_fid: str) -> List[str]:
        """
        Search an author's casts by keywords.

        Returns:
            Cast hashes in Neynar's result order
        """
        query = build_search_query(keywords)
        if not query:
            return []

        data = await self._get('/cast/search', {
            'q': query,
            'author_fid': author_fid,
            'limit': self.config.search_limit,
        })
        hashes = parse_cast_hashes(data)
        logger.info(f"Cast search {query!r} for fid {author_fid}: {len(hashes)} casts")
        return hashes

    async def fetch_casts(self, cast_hashes: Sequence[str]) -> List[Dict[str, Any]]:
        """Bulk-fetch casts and shape them for display."""
        if not cast_hashes:
            return []

        data = await self._get('/casts', {'casts': ','.join(cast_hashes)})
        return [summarize_cast(c) for c in _result_casts(data) if isinstance(c, dict)]

    # =========================================================================
    # USERS
    # =========================================================================

    async def fetch_users(self, fids: Sequence[str]) -> List[Dict[str, Any]]:
        """Bulk user lookup (/user/bulk)."""
        if not fids:
            return []

        data = await self._get('/user/bulk', {'fids': ','.join(str(f) for f in fids)})
        users = data.get('users')
        if not isinstance(users, list):
            raise NeynarAPIError("Malformed user payload: missing users")
        return [u for u in users if isinstance(u, dict)]

    async def fetch_user(self, fid: str) -> Optional[Dict[str, Any]]:
        users = await self.fetch_users([fid])
        return users[0] if users else None
