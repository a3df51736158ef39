import pytest

from divinebridge.feed_skeleton import (
    FEED_DID,
    LATEST_URI,
    TRENDING_URI,
    FeedItem,
    FeedSkeletonResponse,
    FeedStore,
    UnknownFeedError,
    describe_feed_generator,
    feed_skeleton,
)

POST_A = "at://did:plc:ebt5msdpfavoklkap6gl54bm/app.bsky.feed.post/MA6mjTWZKEB"
POST_B = "at://did:plc:ebt5msdpfavoklkap6gl54bm/app.bsky.feed.post/hFxlUuKIIqU"


class FakeStore(FeedStore):
    def __init__(self, latest=(), trending=()):
        self.latest = list(latest)
        self.trending = list(trending)
        self.calls = []

    async def latest_posts(self, limit):
        self.calls.append(("latest", limit))
        return list(self.latest)

    async def trending_posts(self, limit):
        self.calls.append(("trending", limit))
        return list(self.trending)


class BrokenStore(FeedStore):
    async def latest_posts(self, limit):
        raise RuntimeError("database unavailable")

    async def trending_posts(self, limit):
        raise RuntimeError("database unavailable")


def test_describe_lists_latest_and_trending():
    response = describe_feed_generator()
    assert response.did == FEED_DID
    assert [feed.uri for feed in response.feeds] == [LATEST_URI, TRENDING_URI]


def test_describe_serializes_camel_case():
    data = describe_feed_generator().to_dict()
    assert data["did"] == "did:plc:divine.feed"
    assert data["feeds"][0] == {
        "uri": "at://did:plc:divine.feed/app.bsky.feed.generator/latest",
        "displayName": "DiVine Latest",
        "description": "Latest DiVine-owned mirrored videos.",
    }
    assert data["feeds"][1]["displayName"] == "DiVine Trending"


@pytest.mark.asyncio
async def test_latest_feed_reads_latest_posts():
    store = FakeStore(latest=[POST_A, POST_B], trending=[POST_B])
    response = await feed_skeleton(store, LATEST_URI, 10)
    assert [item.post for item in response.feed] == [POST_A, POST_B]
    assert store.calls == [("latest", 10)]


@pytest.mark.asyncio
async def test_trending_feed_reads_trending_posts():
    store = FakeStore(latest=[POST_A], trending=[POST_B, POST_A])
    response = await feed_skeleton(store, TRENDING_URI, 5)
    assert [item.post for item in response.feed] == [POST_B, POST_A]
    assert store.calls == [("trending", 5)]


@pytest.mark.asyncio
async def test_unknown_feed_raises():
    store = FakeStore()
    with pytest.raises(UnknownFeedError) as excinfo:
        await feed_skeleton(store, "at://did:plc:other/app.bsky.feed.generator/x", 5)
    assert "unknown feed URI" in str(excinfo.value)
    assert store.calls == []


@pytest.mark.asyncio
async def test_store_errors_propagate():
    with pytest.raises(RuntimeError):
        await feed_skeleton(BrokenStore(), LATEST_URI, 5)


@pytest.mark.asyncio
async def test_skeleton_has_no_cursor():
    response = await feed_skeleton(FakeStore(latest=[POST_A]), LATEST_URI, 1)
    assert response.cursor is None
    assert response.to_dict() == {"feed": [{"post": POST_A}]}


def test_skeleton_serializes_cursor_when_set():
    response = FeedSkeletonResponse(feed=[FeedItem(POST_B)], cursor="abc")
    assert response.to_dict() == {"feed": [{"post": POST_B}], "cursor": "abc"}


def test_feed_store_is_abstract():
    with pytest.raises(TypeError):
        FeedStore()