import pytest

from errors import RankOutOfRange
from ranking import RankingIndex


@pytest.fixture
def index(engine):
    return RankingIndex(engine.backend, "ScorePool", "User:")


@pytest.fixture
def scored(index):
    for name, score in [("alice", 30), ("bob", 10), ("carol", 20), ("dave", 40)]:
        index.add(name, score)
    return index


def test_members_are_stored_with_prefix(index, redis_client):
    index.add("alice", 3)
    assert redis_client.zscore("ScorePool", "User:alice") == 3
    assert index.members() == ["alice"]


def test_rank_is_one_for_highest_and_n_for_lowest(scored):
    assert scored.rank("dave") == 1
    assert scored.rank("alice") == 2
    assert scored.rank("carol") == 3
    assert scored.rank("bob") == 4


def test_rank_agrees_with_range_top(scored):
    top = scored.range_top(4)
    assert [name for name, _ in top] == ["dave", "alice", "carol", "bob"]
    for position, (name, score) in enumerate(top, start=1):
        assert scored.rank(name) == position
        assert scored.score(name) == score


def test_range_top_returns_exactly_n(scored):
    assert scored.range_top(2) == [("dave", 40), ("alice", 30)]
    assert scored.range_top(0) == []
    assert len(scored.range_top(10)) == 4


def test_missing_member_has_no_score_or_rank(scored):
    assert scored.score("nobody") is None
    assert scored.rank("nobody") is None


def test_increment_and_decrement(index):
    index.add("room", 0)
    assert index.increment("room") == 1
    assert index.increment("room", 3) == 4
    assert index.decrement("room") == 3
    assert index.score("room") == 3


def test_entry_at_rank(scored):
    assert scored.key_at_rank(1) == "dave"
    assert scored.score_at_rank(1) == 40
    assert scored.key_at_rank(4) == "bob"
    assert scored.score_at_rank(3) == 20


@pytest.mark.parametrize("rank", [0, -1, 5])
def test_rank_outside_cardinality_is_refused(scored, rank):
    with pytest.raises(RankOutOfRange):
        scored.key_at_rank(rank)
    with pytest.raises(RankOutOfRange):
        scored.score_at_rank(rank)


def test_remove(scored):
    assert scored.remove("dave")
    assert not scored.remove("dave")
    assert scored.size() == 3
    assert scored.rank("alice") == 1


def test_intersect_top_reports_true_scores(scored, redis_client):
    redis_client.sadd("LoginPool", "User:alice", "User:bob")
    top = scored.intersect_top(10, "LoginPool", ttl=60)
    assert top == [("alice", 30), ("bob", 10)]
    assert 0 < redis_client.ttl("LoginPoolRanked") <= 60


def test_intersect_top_limits_results(scored, redis_client):
    redis_client.sadd("LoginPool", "User:alice", "User:bob", "User:dave")
    assert scored.intersect_top(1, "LoginPool", ttl=60) == [("dave", 40)]


def test_intersect_with_empty_pool(scored):
    assert scored.intersect_top(5, "LoginPool", ttl=60) == []
