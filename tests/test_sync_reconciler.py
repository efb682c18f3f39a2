"""Tests for the reconciler's field rules."""

from __future__ import annotations

import pytest
from conftest import FakeHaloClient, make_remote_post

from halo_sync.errors import SiteMismatchError
from halo_sync.sync.models import (
    DocumentMetadata,
    LocalDocument,
    ReferenceEntity,
    ReferenceKind,
)
from halo_sync.sync.reconciler import Reconciler, normalize_site
from halo_sync.sync.resolver import ReferenceResolver

SITE = "https://blog.example.com"


def _reconciler(client=None, **kwargs):
    client = client or FakeHaloClient()
    reconciler = Reconciler(
        SITE,
        ReferenceResolver(client, ReferenceKind.CATEGORY),
        ReferenceResolver(client, ReferenceKind.TAG),
        renderer=lambda raw: f"<rendered>{raw}</rendered>",
        **kwargs,
    )
    return reconciler, client


def _document(name="Doc", body="body", **metadata) -> LocalDocument:
    return LocalDocument(
        name=name,
        raw_body=body,
        metadata=DocumentMetadata.model_validate(metadata),
    )


class TestNormalizeSite:
    def test_strips_whitespace_and_trailing_slash(self) -> None:
        assert normalize_site("  https://x.example/ ") == "https://x.example"

    def test_keeps_path(self) -> None:
        assert normalize_site("https://x.example/blog/") == (
            "https://x.example/blog"
        )


class TestEnsureSameSite:
    """Site check for linked documents."""

    def test_other_site_raises(self) -> None:
        reconciler, _ = _reconciler()
        meta = DocumentMetadata.model_validate(
            {"halo": {"site": "https://other.example", "name": "p"}}
        )

        with pytest.raises(SiteMismatchError) as exc_info:
            reconciler.ensure_same_site(meta)

        assert exc_info.value.linked_site == "https://other.example"
        assert exc_info.value.configured_site == SITE

    def test_unlinked_document_passes(self) -> None:
        reconciler, _ = _reconciler()
        reconciler.ensure_same_site(DocumentMetadata())

    def test_link_without_site_passes(self) -> None:
        reconciler, _ = _reconciler()
        meta = DocumentMetadata.model_validate({"halo": {"name": "p"}})
        reconciler.ensure_same_site(meta)


class TestReconcileNewPost:
    """Documents without an existing post."""

    async def test_identifier_is_preserved(self) -> None:
        reconciler, _ = _reconciler()

        result = await reconciler.reconcile(
            _document(title="T"), identifier="prepared"
        )

        assert result.is_new
        assert result.post.identifier == "prepared"
        assert result.link.name == "prepared"
        assert result.link.site == SITE

    async def test_fresh_identifier_when_none_given(self) -> None:
        reconciler, _ = _reconciler()

        first = await reconciler.reconcile(_document(title="T"))
        second = await reconciler.reconcile(_document(title="T"))

        assert first.post.identifier
        assert first.post.identifier != second.post.identifier

    async def test_field_rules(self) -> None:
        reconciler, _ = _reconciler()

        result = await reconciler.reconcile(
            _document(
                body="# Hi",
                title="Hello World",
                date="2024-05-01 08:30:00",
                cover="/img/c.png",
            )
        )

        spec = result.post.spec
        assert spec.title == "Hello World"
        assert spec.slug == "hello-world"
        assert spec.publish is True
        assert spec.publish_time == "2024-05-01T08:30:00.000Z"
        assert spec.cover == "/img/c.png"
        assert result.post.content.raw == "# Hi"
        assert result.post.content.content == "<rendered># Hi</rendered>"

    async def test_document_name_is_last_title_fallback(self) -> None:
        reconciler, _ = _reconciler()

        result = await reconciler.reconcile(_document(name="notes"))

        assert result.post.spec.title == "notes"
        assert result.post.spec.cover == ""

    async def test_metadata_slug_strategy_wins(self) -> None:
        reconciler, _ = _reconciler(default_slug_strategy="full-id")

        document = _document(
            title="Hello",
            date="2024-01-01T00:00:00Z",
            **{"slug-strategy": "timestamp"},
        )

        result = await reconciler.reconcile(document)

        assert result.post.spec.slug == "1704067200000"

    async def test_default_slug_strategy(self) -> None:
        reconciler, _ = _reconciler(default_slug_strategy="short-id")

        result = await reconciler.reconcile(_document(title="Hello"))

        assert len(result.post.spec.slug) == 8

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, True),
            (True, True),
            (False, True),
            ("true", True),
            ("false", False),
        ],
    )
    async def test_publish_truth_table(self, value, expected) -> None:
        reconciler, _ = _reconciler()
        metadata = {"title": "T"}
        if value is not None:
            metadata["publish"] = value

        result = await reconciler.reconcile(_document(**metadata))

        assert result.post.spec.publish is expected
        assert result.link.publish is expected

    async def test_resolves_categories_and_tags(self) -> None:
        client = FakeHaloClient()
        client.categories = [
            ReferenceEntity(identifier="c1", display_name="News")
        ]
        client.tags = [ReferenceEntity(identifier="t1", display_name="py")]
        reconciler, client = _reconciler(client)

        result = await reconciler.reconcile(
            _document(title="T", categories=["News"], tags=["py"])
        )

        assert result.post.spec.categories == ["c1"]
        assert result.post.spec.tags == ["t1"]
        assert client.write_calls == []

    async def test_site_mismatch_raises_before_resolution(self) -> None:
        reconciler, client = _reconciler()

        with pytest.raises(SiteMismatchError):
            await reconciler.reconcile(
                _document(
                    title="T",
                    categories=["New"],
                    halo={"site": "https://elsewhere.example"},
                )
            )

        assert client.calls == []


class TestReconcileExistingPost:
    """Documents linked to an existing post."""

    async def test_unset_fields_keep_remote_values(self) -> None:
        reconciler, client = _reconciler()
        existing = make_remote_post(
            "abc",
            title="Remote",
            raw="old",
            slug="remote-slug",
            categories=["c9"],
            tags=["t9"],
            pinned=True,
        )

        result = await reconciler.reconcile(_document(body="new"), existing)

        spec = result.post.spec
        assert not result.is_new
        assert result.post.identifier == "abc"
        assert spec.title == "Remote"
        assert spec.slug == "remote-slug"
        assert spec.categories == ["c9"]
        assert spec.tags == ["t9"]
        assert spec.pinned is True
        assert result.post.content.raw == "new"
        assert client.calls == []

    async def test_empty_local_list_clears_remote(self) -> None:
        reconciler, _ = _reconciler()
        existing = make_remote_post("abc", title="R", categories=["c9"])

        result = await reconciler.reconcile(
            _document(categories=[]), existing
        )

        assert result.post.spec.categories == []

    async def test_identifier_argument_ignored_for_existing(self) -> None:
        reconciler, _ = _reconciler()
        existing = make_remote_post("abc", title="R")

        result = await reconciler.reconcile(
            _document(title="T"), existing, identifier="other"
        )

        assert result.post.identifier == "abc"
        assert result.link.name == "abc"

    async def test_local_title_overrides(self) -> None:
        reconciler, _ = _reconciler()
        existing = make_remote_post("abc", title="Remote")

        result = await reconciler.reconcile(
            _document(title="Local"), existing
        )

        assert result.post.spec.title == "Local"
