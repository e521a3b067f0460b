import json
import time

import pytest

from errors import SourceUnavailable
from models.statement import SourceContent
from source import RedditSource, StaticSource, parse_listing


class FakeResponse:
    def __init__(self, status, payload=None):
        self.status = status
        self.payload = payload

    async def json(self, content_type=None):
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def get(self, url, params=None, ssl=None):
        self.requests.append((url, dict(params or {})))
        return self.responses.pop(0)

    async def close(self):
        self.closed = True


def _listing(children, after=None):
    return {"data": {"children": [{"data": c} for c in children], "after": after}}


def _comment(body, created, subreddit="pizza", score=1):
    return {"body": body, "created_utc": created, "subreddit": subreddit, "score": score, "permalink": "/r/x/1"}


@pytest.fixture
def reddit_config(config):
    config.retry_base_delay = 0.0
    config.max_retries = 2
    return config


def test_parse_listing_comments_and_posts():
    now = int(time.time())
    payload = _listing(
        [_comment("first body", now), {"body": "no timestamp", "subreddit": "pizza"}],
        after="t1_abc",
    )

    items, after = parse_listing(payload, "comments")

    assert after == "t1_abc"
    assert len(items) == 1
    assert items[0].text == "first body"
    assert items[0].venue == "pizza"

    posts, after = parse_listing(
        _listing([{"selftext": "body", "title": "Title", "created_utc": now, "subreddit": "food", "score": None}]),
        "submitted",
    )
    assert after is None
    assert posts[0].title == "Title"
    assert posts[0].weight == 0


@pytest.mark.asyncio
async def test_reddit_fetch_paginates(reddit_config):
    now = int(time.time())
    session = FakeSession([
        FakeResponse(200, _listing([_comment("c1", now), _comment("c2", now - 10)], after="t1_next")),
        FakeResponse(200, _listing([_comment("c3", now - 20)])),
        FakeResponse(200, _listing([])),
    ])
    source = RedditSource(reddit_config)
    source._session = session

    comments = await source._fetch_listing("pizza_fan", "comments")

    assert [c.text for c in comments] == ["c1", "c2", "c3"]
    assert session.requests[1][1]["after"] == "t1_next"
    assert session.requests[0][0].endswith("/user/pizza_fan/comments.json")


@pytest.mark.asyncio
async def test_reddit_stops_at_age_cutoff(reddit_config):
    now = int(time.time())
    ancient = now - (reddit_config.source_max_age_days + 10) * 86400
    session = FakeSession([
        FakeResponse(200, _listing([_comment("fresh", now), _comment("old", ancient)], after="t1_more")),
    ])
    source = RedditSource(reddit_config)
    source._session = session

    comments = await source._fetch_listing("pizza_fan", "comments")

    assert [c.text for c in comments] == ["fresh"]
    assert len(session.requests) == 1


@pytest.mark.asyncio
async def test_reddit_missing_user_is_not_retried(reddit_config):
    session = FakeSession([FakeResponse(404)])
    source = RedditSource(reddit_config)
    source._session = session

    with pytest.raises(SourceUnavailable, match="not found"):
        await source._get_json("https://example/user/x/comments.json", {})
    assert len(session.requests) == 1


@pytest.mark.asyncio
async def test_reddit_retries_server_errors(reddit_config):
    session = FakeSession([FakeResponse(503), FakeResponse(429), FakeResponse(200, {"ok": True})])
    source = RedditSource(reddit_config)
    source._session = session

    assert await source._get_json("https://example", {}) == {"ok": True}
    assert len(session.requests) == 3


@pytest.mark.asyncio
async def test_reddit_gives_up_after_retries(reddit_config):
    session = FakeSession([FakeResponse(500), FakeResponse(502), FakeResponse(503)])
    source = RedditSource(reddit_config)
    source._session = session

    with pytest.raises(SourceUnavailable, match="HTTP 503"):
        await source._get_json("https://example", {})


@pytest.mark.asyncio
async def test_reddit_close_closes_session(reddit_config):
    session = FakeSession([])
    async with RedditSource(reddit_config) as source:
        source._session = session
    assert session.closed


@pytest.mark.asyncio
async def test_static_source_from_file(tmp_path):
    path = tmp_path / "dump.json"
    path.write_text(json.dumps({
        "comments": [
            {"text": "I love pineapple pizza", "timestamp": 100, "venue": "pizza"},
            {"text": "broken record"},
        ],
        "posts": [{"text": "body", "title": "t", "timestamp": 200, "venue": "food", "weight": 3}],
    }))

    source = StaticSource.from_file(path)
    content = await source.fetch("Anyone")

    assert content.subject == "Anyone"
    assert len(content.comments) == 1
    assert content.posts[0].weight == 3


def test_static_source_bad_file(tmp_path):
    path = tmp_path / "dump.json"
    path.write_text("[1, 2, 3]")

    with pytest.raises(SourceUnavailable):
        StaticSource.from_file(path)
    with pytest.raises(SourceUnavailable):
        StaticSource.from_file(tmp_path / "missing.json")


@pytest.mark.asyncio
async def test_static_source_lookup_by_subject():
    alice = SourceContent(subject="alice")
    source = StaticSource({"Alice": alice})

    assert (await source.fetch("ALICE")).subject == "ALICE"
    with pytest.raises(SourceUnavailable):
        await source.fetch("bob")
