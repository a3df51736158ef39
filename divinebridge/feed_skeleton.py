"""Feed generator descriptions and feed skeletons for the DiVine feeds."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any

FEED_DID = "did:plc:divine.feed"
LATEST_URI = "at://did:plc:divine.feed/app.bsky.feed.generator/latest"
TRENDING_URI = "at://did:plc:divine.feed/app.bsky.feed.generator/trending"


class UnknownFeedError(LookupError):
    """Raised when a feed skeleton is requested for a feed URI this generator does not serve."""

    def __init__(self, feed: str) -> None:
        super().__init__(f"unknown feed URI: {feed}")
        self.feed = feed


class FeedStore(abc.ABC):
    """Source of post URIs for the generator's feeds."""

    @abc.abstractmethod
    async def latest_posts(self, limit: int) -> list[str]:
        """Return up to ``limit`` post URIs, newest first."""

    @abc.abstractmethod
    async def trending_posts(self, limit: int) -> list[str]:
        """Return up to ``limit`` post URIs, highest ranked first."""


@dataclass(frozen=True)
class FeedDescriptor:
    """One feed offered by the generator."""

    uri: str
    display_name: str
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "uri": self.uri,
            "displayName": self.display_name,
            "description": self.description,
        }


@dataclass(frozen=True)
class DescribeFeedGeneratorResponse:
    """Response body of ``app.bsky.feed.describeFeedGenerator``."""

    did: str
    feeds: list[FeedDescriptor] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"did": self.did, "feeds": [feed.to_dict() for feed in self.feeds]}


@dataclass(frozen=True)
class FeedItem:
    """A single entry of a feed skeleton."""

    post: str


@dataclass(frozen=True)
class FeedSkeletonResponse:
    """Response body of ``app.bsky.feed.getFeedSkeleton``."""

    feed: list[FeedItem] = field(default_factory=list)
    cursor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"feed": [{"post": item.post} for item in self.feed]}
        if self.cursor is not None:
            result["cursor"] = self.cursor
        return result


def describe_feed_generator() -> DescribeFeedGeneratorResponse:
    """Describe the feeds this generator serves."""
    return DescribeFeedGeneratorResponse(
        did=FEED_DID,
        feeds=[
            FeedDescriptor(
                uri=LATEST_URI,
                display_name="DiVine Latest",
                description="Latest DiVine-owned mirrored videos.",
            ),
            FeedDescriptor(
                uri=TRENDING_URI,
                display_name="DiVine Trending",
                description="Ranked DiVine-owned mirrored videos.",
            ),
        ],
    )


async def feed_skeleton(store: FeedStore, feed: str, limit: int) -> FeedSkeletonResponse:
    """Build the skeleton of ``feed`` from ``store``; unknown feeds raise UnknownFeedError."""
    if feed == LATEST_URI:
        posts = await store.latest_posts(limit)
    elif feed == TRENDING_URI:
        posts = await store.trending_posts(limit)
    else:
        raise UnknownFeedError(feed)
    return FeedSkeletonResponse(feed=[FeedItem(post=post) for post in posts])