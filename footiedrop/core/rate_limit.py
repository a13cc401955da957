from typing import Optional
import logging
from redis.exceptions import RedisError
from footiedrop.core.redis import redis_client

log = logging.getLogger(__name__)

# Throttling is a collaborator of the credential services: routes consult it
# before calling into them, the services themselves never do.

LOGIN = "login"
OTP = "otp"

def cooldown_key(prefix: str, key: str) -> str:
    return f"{prefix}:cooldown:{key.lower()}"

async def set_cooldown(prefix: str, key: str, seconds: int) -> bool:
    """Claim a cooldown slot; False means the previous one has not elapsed."""
    r = redis_client()
    try:
        # NX = only set if not exists
        return bool(await r.set(cooldown_key(prefix, key), "1", ex=seconds, nx=True))
    except RedisError as exc:
        log.warning("set_cooldown failed for %s: %s", key, exc)
        return True

async def clear_cooldown(prefix: str, key: str) -> None:
    try:
        await redis_client().delete(cooldown_key(prefix, key))
    except RedisError as exc:
        log.warning("clear_cooldown failed for %s: %s", key, exc)

def _fail_key(prefix: str, key: str) -> str:
    return f"{prefix}:fail:{key.lower()}"

def _block_key(prefix: str, key: str) -> str:
    return f"{prefix}:block:{key.lower()}"

async def incr_failure(prefix: str, key: str, window_seconds: int) -> int:
    r = redis_client()
    fk = _fail_key(prefix, key)
    try:
        # increment and ensure TTL set (only when first created)
        count = await r.incr(fk)
        if count == 1:
            await r.expire(fk, window_seconds)
        return count
    except RedisError as exc:
        log.warning("incr_failure failed for %s: %s", key, exc)
        # Degrade gracefully: don't crash the auth flow; treat as first failure
        return 1

async def reset_failures(prefix: str, key: str) -> None:
    try:
        await redis_client().delete(_fail_key(prefix, key))
    except RedisError as exc:
        log.warning("reset_failures failed for %s: %s", key, exc)

async def is_blocked(prefix: str, key: str) -> bool:
    try:
        return bool(await redis_client().exists(_block_key(prefix, key)))
    except RedisError as exc:
        log.warning("is_blocked failed for %s: %s", key, exc)
        return False

async def set_block(prefix: str, key: str, block_seconds: int) -> None:
    try:
        await redis_client().set(_block_key(prefix, key), "1", ex=block_seconds)
    except RedisError as exc:
        log.warning("set_block failed for %s: %s", key, exc)

async def block_ttl(prefix: str, key: str) -> Optional[int]:
    try:
        ttl = await redis_client().ttl(_block_key(prefix, key))
    except RedisError:
        return None
    return ttl if ttl and ttl > 0 else None

async def register_failure(prefix: str, key: str, window_seconds: int, max_attempts: int, block_seconds: int) -> None:
    count = await incr_failure(prefix, key, window_seconds)
    if count >= max_attempts:
        await set_block(prefix, key, block_seconds)
        log.info("Blocking %s attempts for %s after %d failures", prefix, key, count)
