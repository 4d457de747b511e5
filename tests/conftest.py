import fakeredis
import pytest
import redis

from engine import DirectoryEngine

START = 1_700_000_000


class FakeClock:
    """Stands in for time.time so suspensions can be expired on demand."""

    def __init__(self, start: float = START):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def redis_client():
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(redis_client, clock):
    engine = DirectoryEngine(redis_client, clock=clock)
    yield engine
    engine.close()


@pytest.fixture
def users(engine):
    return engine.users


@pytest.fixture
def rooms(engine):
    return engine.rooms


@pytest.fixture
def servers(engine):
    return engine.servers


@pytest.fixture
def break_command(redis_client, monkeypatch):
    """Make one redis command fail like a dropped connection."""

    def _break(command: str, error: Exception = None):
        def failing(*args, **kwargs):
            raise error or redis.ConnectionError("Connection refused")

        monkeypatch.setattr(redis_client, command, failing)

    return _break


@pytest.fixture
def online(users):
    """Register and log in a user."""

    def _online(name: str, connection_id: int = 1, is_dummy: bool = False):
        assert users.create(name, "pw-" + name).ok
        assert users.login(name, "pw-" + name, connection_id, is_dummy).ok
        return name

    return _online
