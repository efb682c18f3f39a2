"""Compute the target state of a post from a local document.

The reconciler is the only place that decides what a post's fields
become.  Given a ``LocalDocument`` and, when the document is already
linked, the ``RemotePost`` it is linked to, it produces a
``ReconcileResult``: the post to write and the ``SyncLink`` the document
should carry afterwards.

Field rules (a present local field overrides the remote one):

=============  ===================  =====================================
Local          Remote               Rule
=============  ===================  =====================================
``title``      ``spec.title``       local, else existing, else doc name
``categories`` ``spec.categories``  resolved to identifiers
``tags``       ``spec.tags``        resolved to identifiers
``date``       ``spec.publishTime`` parsed; now when absent
``publish``    ``spec.publish``     only the string ``"false"`` is false
``cover``      ``spec.cover``       local, else ``""``
body           ``content``          raw plus rendered HTML
=============  ===================  =====================================

The reconciler never writes to Halo itself; only the reference resolver
it delegates to may create categories and tags.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from halo_sync.converters import markdown_to_html
from halo_sync.errors import SiteMismatchError
from halo_sync.sync.metadata import (
    linked_site,
    publish_flag,
    publish_time,
)
from halo_sync.sync.models import (
    DocumentMetadata,
    LocalDocument,
    Post,
    PostContent,
    PostMetadata,
    PostSpec,
    ReconcileResult,
    RemotePost,
    SyncLink,
)
from halo_sync.sync.resolver import ReferenceResolver
from halo_sync.sync.slug import SlugStrategy, generate_slug

logger = logging.getLogger(__name__)


def normalize_site(url: str) -> str:
    return url.strip().rstrip("/")


class Reconciler:
    """Turn a local document into the post it should become.

    Args:
        site_url: URL of the configured site.
        categories: Resolver for category names.
        tags: Resolver for tag names.
        renderer: Markdown to HTML renderer.
        default_slug_strategy: Slug strategy for new posts whose front
            matter does not name one.
    """

    def __init__(
        self,
        site_url: str,
        categories: ReferenceResolver,
        tags: ReferenceResolver,
        renderer: Callable[[str], str] | None = None,
        default_slug_strategy: SlugStrategy | str = SlugStrategy.TITLE,
    ) -> None:
        self.site_url = normalize_site(site_url)
        self.categories = categories
        self.tags = tags
        self.renderer = renderer or markdown_to_html
        self.default_slug_strategy = default_slug_strategy

    def ensure_same_site(self, metadata: DocumentMetadata) -> None:
        """Raise ``SiteMismatchError`` if the document links another site.

        Documents without a recorded site pass.
        """
        site = linked_site(metadata)
        if site is not None and normalize_site(site) != self.site_url:
            raise SiteMismatchError(site, self.site_url)

    async def reconcile(
        self,
        document: LocalDocument,
        existing: RemotePost | None = None,
        *,
        identifier: str | None = None,
    ) -> ReconcileResult:
        """Compute the post and link for *document*.

        Args:
            document: The local document.
            existing: The post the document is linked to, or ``None`` to
                create a new post.
            identifier: Identifier for a new post.  A fresh UUID is used
                when omitted.  Ignored when *existing* is given.

        Raises:
            SiteMismatchError: If the document is linked to another site.
            ReferenceResolutionError: If a category or tag could not be
                created.
        """
        metadata = document.metadata
        self.ensure_same_site(metadata)

        base = existing.spec if existing is not None else PostSpec()
        title = metadata.title or base.title or document.name

        if metadata.categories is not None:
            category_ids = await self.categories.resolve_names(
                metadata.categories, reference_date=metadata.date
            )
        else:
            category_ids = list(base.categories)

        if metadata.tags is not None:
            tag_ids = await self.tags.resolve_names(
                metadata.tags, reference_date=metadata.date
            )
        else:
            tag_ids = list(base.tags)

        changes = {
            "title": title,
            "categories": category_ids,
            "tags": tag_ids,
            "publish_time": publish_time(metadata.date),
            "publish": publish_flag(metadata.publish),
            "cover": metadata.cover or "",
        }

        raw = document.raw_body
        rendered = self.renderer(raw)

        if existing is not None:
            spec = base.model_copy(update=changes)
            post = existing.post.model_copy(update={"spec": spec})
            content = existing.content.model_copy(
                update={"raw": raw, "content": rendered}
            )
            name = existing.identifier
        else:
            name = identifier or str(uuid.uuid4())
            strategy = metadata.slug_strategy or self.default_slug_strategy
            changes["slug"] = generate_slug(title, strategy, metadata.date)
            spec = PostSpec.model_validate(changes)
            post = Post(metadata=PostMetadata(name=name), spec=spec)
            content = PostContent(raw=raw, content=rendered)

        logger.debug(
            "Reconciled %s -> post %s (new=%s, publish=%s)",
            document.name,
            name,
            existing is None,
            spec.publish,
        )
        return ReconcileResult(
            post=RemotePost(post=post, content=content),
            link=SyncLink(site=self.site_url, name=name, publish=spec.publish),
            is_new=existing is None,
        )
