import redis
from marketplace.utils.retry import redis_retry
from marketplace.utils.settings import REDIS_URL
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo - nikt nie wcisnie sie miedzy GET a DEL,
#wiec lock zwalnia tylko ten, kto go zalozyl


class LockService:
    """
    -lock na zamowienie na czas przypisywania kuriera
    -zwalnianie locka tylko przez wlasciciela
    -atomowosc przy pomocy lua
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _order_key(order_id: int) -> str:
        return f"order:{order_id}:assign:lock"

    @redis_retry()
    def acquire_order_lock(self, order_id: int, owner: str, ttl: int) -> bool:
        key = self._order_key(order_id)
        logger.info(f"Acquire lock {key} for {owner}")
        #SET order:1:assign:lock "<owner>" NX EX 10
        return bool(self.redis.set(name=key, value=owner, nx=True, ex=ttl))

    @redis_retry()
    def release_order_lock(self, order_id: int, owner: str) -> bool:
        key = self._order_key(order_id)
        logger.info(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)
