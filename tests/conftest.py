"""Shared pytest fixtures for halo-sync tests."""

from __future__ import annotations

import itertools
from typing import Any
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

from halo_sync.config import Config
from halo_sync.errors import PostNotFoundError
from halo_sync.sync.models import (
    DocumentMetadata,
    LocalDocument,
    Post,
    PostContent,
    PostMetadata,
    PostSpec,
    ReferenceEntity,
    RemotePost,
)

load_dotenv()

SITE_URL = "https://blog.example.com"

WRITE_METHODS = frozenset(
    {
        "create_post",
        "update_post",
        "update_content",
        "publish_post",
        "unpublish_post",
        "create_category",
        "create_tag",
    }
)


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live Halo site",
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


def make_remote_post(
    name: str,
    title: str = "",
    raw: str = "",
    **spec: Any,
) -> RemotePost:
    """Build a RemotePost as the server would return it."""
    return RemotePost(
        post=Post(
            metadata=PostMetadata(name=name),
            spec=PostSpec.model_validate({"title": title, **spec}),
        ),
        content=PostContent(raw=raw, content=f"<p>{raw}</p>" if raw else ""),
    )


class FakeHaloClient:
    """In-memory stand-in for HaloClient.

    Every call is recorded in ``calls`` as ``(method, *args)``.  Setting
    ``fail_on[method]`` to an exception makes that method raise it.
    """

    def __init__(self, site_url: str = SITE_URL) -> None:
        self.site_url = site_url
        self.config = Config(site_url=site_url, token="test-token")
        self.posts: dict[str, RemotePost] = {}
        self.categories: list[ReferenceEntity] = []
        self.tags: list[ReferenceEntity] = []
        self.calls: list[tuple] = []
        self.fail_on: dict[str, Exception] = {}
        self._ids = itertools.count(1)

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, *args))
        if method in self.fail_on:
            raise self.fail_on[method]

    def calls_to(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]

    @property
    def write_calls(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in WRITE_METHODS]

    def add_post(self, remote: RemotePost) -> None:
        self.posts[remote.identifier] = remote

    def _set_spec(self, name: str, **changes: Any) -> None:
        remote = self.posts[name]
        spec = remote.spec.model_copy(update=changes)
        post = remote.post.model_copy(update={"spec": spec})
        self.posts[name] = remote.model_copy(update={"post": post})

    # -- posts -------------------------------------------------------------

    def validate_connection(self) -> str:
        self._record("validate_connection")
        return "admin"

    def get_post(self, name: str) -> RemotePost:
        self._record("get_post", name)
        if name not in self.posts:
            raise PostNotFoundError(name)
        return self.posts[name]

    def list_posts(
        self, keyword: str | None = None, page: int = 1, size: int = 20
    ) -> list[Post]:
        self._record("list_posts", keyword, page, size)
        posts = [r.post for r in self.posts.values()]
        if keyword:
            posts = [p for p in posts if keyword in p.spec.title]
        return posts[(page - 1) * size : page * size]

    def create_post(self, remote: RemotePost) -> Post:
        self._record("create_post", remote)
        name = remote.identifier or f"post-{next(self._ids)}"
        metadata = remote.post.metadata.model_copy(update={"name": name})
        post = remote.post.model_copy(update={"metadata": metadata})
        self.posts[name] = RemotePost(post=post, content=remote.content)
        return post

    def update_post(self, name: str, post: Post) -> Post:
        self._record("update_post", name, post)
        self.posts[name] = self.posts[name].model_copy(update={"post": post})
        return post

    def update_content(self, name: str, content: PostContent) -> None:
        self._record("update_content", name, content)
        self.posts[name] = self.posts[name].model_copy(
            update={"content": content}
        )

    def publish_post(self, name: str) -> None:
        self._record("publish_post", name)
        self._set_spec(name, publish=True)

    def unpublish_post(self, name: str) -> None:
        self._record("unpublish_post", name)
        self._set_spec(name, publish=False)

    # -- references --------------------------------------------------------

    def list_categories(self) -> list[ReferenceEntity]:
        self._record("list_categories")
        return list(self.categories)

    def create_category(
        self, display_name: str, slug: str, priority: int = 0
    ) -> str:
        self._record("create_category", display_name, slug, priority)
        identifier = f"category-{next(self._ids)}"
        self.categories.append(
            ReferenceEntity(
                identifier=identifier, display_name=display_name, slug=slug
            )
        )
        return identifier

    def list_tags(self) -> list[ReferenceEntity]:
        self._record("list_tags")
        return list(self.tags)

    def create_tag(
        self, display_name: str, slug: str, color: str = "#ffffff"
    ) -> str:
        self._record("create_tag", display_name, slug, color)
        identifier = f"tag-{next(self._ids)}"
        self.tags.append(
            ReferenceEntity(
                identifier=identifier, display_name=display_name, slug=slug
            )
        )
        return identifier


class InMemoryEnvironment:
    """Editing environment holding documents in a dict."""

    def __init__(
        self,
        name: str | None = "Hello World",
        body: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.active: str | None = None
        self.metadata_writes = 0
        self.replacements = 0
        if name is not None:
            self.documents[name] = {
                "body": body,
                "metadata": DocumentMetadata.model_validate(metadata or {}),
            }
            self.active = name

    @property
    def metadata(self) -> DocumentMetadata:
        return self.documents[self.active]["metadata"]

    @property
    def body(self) -> str:
        return self.documents[self.active]["body"]

    def read_active_document(self) -> LocalDocument | None:
        if self.active is None:
            return None
        doc = self.documents[self.active]
        return LocalDocument(
            name=self.active, raw_body=doc["body"], metadata=doc["metadata"]
        )

    def write_metadata(self, mutator) -> None:
        doc = self.documents[self.active]
        doc["metadata"] = mutator(doc["metadata"])
        self.metadata_writes += 1

    def replace_document(self, raw_body: str) -> None:
        self.documents[self.active]["body"] = raw_body
        self.replacements += 1

    def create_document(self, name: str, raw_body: str) -> str:
        self.documents[name] = {
            "body": raw_body,
            "metadata": DocumentMetadata(),
        }
        return name

    def open_document(self, handle: str) -> None:
        self.active = handle


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        site_url=SITE_URL,
        token="test-token",
        insecure=False,
    )


@pytest.fixture
def mock_halo_client(mock_config):
    """Create a mock HaloClient instance for testing."""
    from halo_sync.core.client import HaloClient

    client = MagicMock(spec=HaloClient)
    client.config = mock_config
    client.site_url = mock_config.site_url
    return client


@pytest.fixture
def fake_client():
    return FakeHaloClient()


@pytest.fixture
def make_environment():
    """Factory for InMemoryEnvironment instances."""
    return InMemoryEnvironment


@pytest.fixture
def remote_post():
    """Factory for RemotePost instances."""
    return make_remote_post
