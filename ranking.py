from typing import List, Optional, Tuple

from backend import RedisBackend
from errors import RankOutOfRange
from logging_config import get_logger
from redis_keys import RANKED_POOL_KEY, strip_prefix

logger = get_logger(__name__)


class RankingIndex:
    """Score + rank over one sorted set.

    Callers work with bare identifiers (a username, a room number); the index
    stores them under `prefix` so the persisted members keep their
    `User:` / `Room:` / `Server:` form. Ranks are 1-based, highest score
    first. Scores are whole counts and come back as ints.
    """

    def __init__(self, backend: RedisBackend, key: str, prefix: str):
        self.backend = backend
        self.key = key
        self.prefix = prefix

    def member(self, identifier) -> str:
        return f"{self.prefix}{identifier}"

    def identifier(self, member: str) -> str:
        return strip_prefix(member, self.prefix)

    def add(self, identifier, score: int = 0):
        self.backend.zset_add(self.key, self.member(identifier), score)

    def set_score(self, identifier, score: int):
        self.backend.zset_add(self.key, self.member(identifier), score)

    def increment(self, identifier, by: int = 1) -> int:
        return int(self.backend.zset_increment(self.key, self.member(identifier), by))

    def decrement(self, identifier, by: int = 1) -> int:
        return int(self.backend.zset_increment(self.key, self.member(identifier), -by))

    def remove(self, identifier) -> bool:
        return self.backend.zset_remove(self.key, self.member(identifier))

    def score(self, identifier) -> Optional[int]:
        score = self.backend.zset_score(self.key, self.member(identifier))
        return None if score is None else int(score)

    def rank(self, identifier) -> Optional[int]:
        position = self.backend.zset_rank_descending(self.key, self.member(identifier))
        return None if position is None else position + 1

    def size(self) -> int:
        return self.backend.zset_length(self.key)

    def members(self) -> List[str]:
        return [self.identifier(m) for m in self.backend.zset_range_descending(self.key, 0, -1)]

    def range_top(self, n: int) -> List[Tuple[str, int]]:
        if n <= 0:
            return []
        entries = self.backend.zset_range_descending_with_scores(self.key, 0, n - 1)
        return [(self.identifier(m), int(s)) for m, s in entries]

    def _entry_at_rank(self, rank: int) -> Tuple[str, int]:
        size = self.size()
        if rank < 1 or rank > size:
            raise RankOutOfRange(self.key, rank, size)
        entries = self.backend.zset_range_descending_with_scores(self.key, rank - 1, rank - 1)
        if not entries:
            # index shrank between the length check and the range read
            raise RankOutOfRange(self.key, rank, self.size())
        member, score = entries[0]
        return self.identifier(member), int(score)

    def key_at_rank(self, rank: int) -> str:
        return self._entry_at_rank(rank)[0]

    def score_at_rank(self, rank: int) -> int:
        return self._entry_at_rank(rank)[1]

    def intersect_top(self, n: int, pool_key: str, ttl: int) -> List[Tuple[str, int]]:
        """Top-n of this index restricted to the members of an unsorted set.

        The set takes weight 0 in the intersection, so the stored scores are
        the true scores. The result lives in a temporary `<pool>Ranked` key
        that expires after `ttl` seconds.
        """
        destination = RANKED_POOL_KEY.format(pool=pool_key)
        self.backend.zset_intersect_store(destination, {self.key: 1, pool_key: 0})
        self.backend.expire(destination, ttl)
        if n <= 0:
            return []
        entries = self.backend.zset_range_descending_with_scores(destination, 0, n - 1)
        logger.debug(f"Intersected {self.key} with {pool_key}: {len(entries)} entries returned")
        return [(self.identifier(m), int(s)) for m, s in entries]
