"""Global and portal modifier set loading with a Redis read-through cache"""
import json
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import settings
from app.core.errors import MissingGlobalModifierSetError
from app.core.metrics import cache_hits, cache_misses
from app.core.redis import get_redis
from app.models.modifier_set import ModifierSet
from app.schemas.modifier_set import ModifierSetConfig

logger = logging.getLogger(__name__)

GLOBAL_CACHE_KEY = "modifiers:global"
# JSON null marks "portal has no override set" so misses are cached too
_NO_SET = b"null"


class ModifierSetStore(Protocol):
    async def find_global(self) -> Optional[ModifierSetConfig]:
        ...

    async def find_for_tenant(self, tenant_id: int) -> Optional[ModifierSetConfig]:
        ...


@dataclass(frozen=True)
class ModifierSnapshot:
    global_set: ModifierSetConfig
    tenant_set: Optional[ModifierSetConfig] = None


class SqlModifierSetStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_global(self) -> Optional[ModifierSetConfig]:
        res = await self.db.execute(select(ModifierSet).where(ModifierSet.is_global.is_(True)))
        return _to_config(res.scalars().first())

    async def find_for_tenant(self, tenant_id: int) -> Optional[ModifierSetConfig]:
        res = await self.db.execute(
            select(ModifierSet).where(
                ModifierSet.portal_id == tenant_id,
                ModifierSet.is_global.is_(False),
            )
        )
        return _to_config(res.scalars().first())


def _to_config(row: Optional[ModifierSet]) -> Optional[ModifierSetConfig]:
    if row is None:
        return None
    return ModifierSetConfig.model_validate(row.document or {})


def tenant_cache_key(tenant_id: int) -> str:
    return f"modifiers:portal:{tenant_id}"


class CachedModifierSetStore:
    """Wraps a store with Redis; cache errors degrade to the inner store."""

    def __init__(self, inner: ModifierSetStore, ttl: int | None = None):
        self.inner = inner
        self.ttl = ttl if ttl is not None else settings.MODIFIER_CACHE_TTL

    async def find_global(self) -> Optional[ModifierSetConfig]:
        return await self._cached(GLOBAL_CACHE_KEY, self.inner.find_global)

    async def find_for_tenant(self, tenant_id: int) -> Optional[ModifierSetConfig]:
        return await self._cached(
            tenant_cache_key(tenant_id), lambda: self.inner.find_for_tenant(tenant_id)
        )

    async def invalidate(self, tenant_id: int | None = None) -> None:
        """Drop the cached set for a portal, or the global set when tenant_id is None."""
        redis = get_redis()
        if redis is None:
            return
        key = GLOBAL_CACHE_KEY if tenant_id is None else tenant_cache_key(tenant_id)
        try:
            await redis.delete(key)
        except Exception as e:
            logger.warning(f"Cache invalidation failed for {key}: {e}")

    async def _cached(self, key: str, load) -> Optional[ModifierSetConfig]:
        redis = get_redis()

        if redis is not None:
            try:
                cached = await redis.get(key)
                if cached is not None:
                    cache_hits.labels(cache_key=key.split(":")[1]).inc()
                    if cached == _NO_SET:
                        return None
                    return ModifierSetConfig.model_validate(json.loads(cached))
            except Exception as e:
                logger.warning(f"Cache retrieval failed: {e}")

        cache_misses.labels(cache_key=key.split(":")[1]).inc()
        config = await load()

        if redis is not None:
            # the global set is required, so its absence is never cached
            if config is not None or key != GLOBAL_CACHE_KEY:
                try:
                    payload = _NO_SET if config is None else json.dumps(config.model_dump(mode="json"))
                    await redis.set(key, payload, ex=self.ttl)
                except Exception as e:
                    logger.warning(f"Cache write failed: {e}")

        return config


async def load_modifier_snapshot(store: ModifierSetStore, tenant_id: int | None) -> ModifierSnapshot:
    global_set = await store.find_global()
    if global_set is None:
        logger.error("Global modifier set missing; pricing cannot proceed")
        raise MissingGlobalModifierSetError()

    tenant_set = None
    if tenant_id is not None:
        tenant_set = await store.find_for_tenant(tenant_id)
        if tenant_set is None:
            logger.debug(f"Portal {tenant_id} has no modifier overrides")

    return ModifierSnapshot(global_set=global_set, tenant_set=tenant_set)
