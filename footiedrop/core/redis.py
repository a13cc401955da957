import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from redis.asyncio import Redis
from footiedrop.core.config import settings

log = logging.getLogger(__name__)

_redis: Optional[Redis] = None

def redis_client() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis(host=settings.REDIS_HOST, port=settings.REDIS_PORT, db=settings.REDIS_DB, decode_responses=True)
    return _redis

SESSION_PREFIX = "session:"
USER_SESSIONS_PREFIX = "user_sessions:"

def session_key(sid: str) -> str:
    return f"{SESSION_PREFIX}{sid}"

def user_sessions_key(uid: int) -> str:
    return f"{USER_SESSIONS_PREFIX}{uid}"

def _session_ttl() -> int:
    return int(timedelta(days=settings.SESSION_TTL_DAYS).total_seconds())

async def create_session(user_id: int) -> str:
    r = redis_client()
    sid = str(uuid.uuid4())
    payload = json.dumps({"user_id": user_id, "created_at": datetime.now(timezone.utc).isoformat()})
    await r.set(session_key(sid), payload, ex=_session_ttl())
    await r.sadd(user_sessions_key(user_id), sid)
    return sid

async def get_session_user_id(sid: str) -> Optional[int]:
    r = redis_client()
    raw = await r.get(session_key(sid))
    if not raw:
        return None
    try:
        return int(json.loads(raw)["user_id"])
    except (ValueError, KeyError, TypeError):
        log.warning("Corrupt session payload under %s", session_key(sid))
        return None

async def extend_session(sid: str) -> None:
    await redis_client().expire(session_key(sid), _session_ttl())

async def delete_session(sid: str) -> None:
    r = redis_client()
    user_id = await get_session_user_id(sid)
    if user_id is not None:
        await r.srem(user_sessions_key(user_id), sid)
    await r.delete(session_key(sid))

async def delete_all_sessions(user_id: int) -> None:
    """Drop every session of the user, e.g. after a password change."""
    r = redis_client()
    key = user_sessions_key(user_id)
    sids = await r.smembers(key)
    if sids:
        await r.delete(*(session_key(s) for s in sids))
    await r.delete(key)
    log.info("Revoked %d session(s) for user %s", len(sids or ()), user_id)
