"""Sync orchestrator: runs one sync operation end to end.

``SyncOrchestrator`` sequences a publish as

1. Fetching: read the active document and, when it is linked, the post.
2. Reconciling: compute the target post (may create categories/tags).
3. Writing: create the post, or update its spec then its content.
4. Publishing: publish or unpublish, exactly one of the two.
5. Refreshing: re-read the post to pick up server-computed fields.
6. Done: write title, category/tag names and the ``halo`` link back
   into the document's front matter.

Any failure moves the run to ``FAILED`` and returns an outcome describing
it.  Nothing is written to the local document unless the whole round
trip succeeded.  Failures after the first remote write may leave the
post partially updated; nothing is rolled back.

Pull, update, fetch and metadata generation are shorter paths over
the same collaborators.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from halo_sync.core.async_utils import run_sync, run_sync_limited
from halo_sync.errors import (
    HaloSyncError,
    NotPublishedError,
    PostNotFoundError,
)
from halo_sync.sync.environment import EditingEnvironment
from halo_sync.sync.metadata import (
    initial_metadata,
    linked_identifier,
    merge,
)
from halo_sync.sync.models import (
    LocalDocument,
    ReferenceKind,
    RemotePost,
    SyncLink,
    SyncOutcome,
    SyncState,
)
from halo_sync.sync.reconciler import Reconciler, normalize_site
from halo_sync.sync.resolver import ReferenceResolver
from halo_sync.sync.slug import SlugStrategy

if TYPE_CHECKING:
    from halo_sync.core.client import HaloClient

logger = logging.getLogger(__name__)


def _error_type(exc: Exception) -> str:
    if isinstance(exc, HaloSyncError):
        return exc.error_type
    if isinstance(exc, OSError):
        return "local_io_error"
    return "validation_error"


class _Run:
    """Book-keeping for one orchestrator invocation."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self.transitions: list[SyncState] = [SyncState.IDLE]
        self.identifier: str | None = None
        self.document: str | None = None

    @property
    def state(self) -> SyncState:
        return self.transitions[-1]

    def enter(self, state: SyncState) -> None:
        logger.debug(
            "%s [%s]: %s -> %s",
            self.operation,
            self.document or self.identifier or "-",
            self.state.value,
            state.value,
        )
        self.transitions.append(state)

    def finish(
        self,
        state: SyncState,
        message: str,
        error_type: str | None = None,
    ) -> SyncOutcome:
        if state is not self.state:
            self.enter(state)
        return SyncOutcome(
            operation=self.operation,
            success=state is not SyncState.FAILED,
            state=state,
            identifier=self.identifier,
            document=self.document,
            error_type=error_type,
            message=message,
            transitions=list(self.transitions),
        )

    def skip(self, message: str) -> SyncOutcome:
        return self.finish(SyncState.IDLE, message)

    def done(self, message: str) -> SyncOutcome:
        return self.finish(SyncState.DONE, message)

    def fail(self, exc: Exception) -> SyncOutcome:
        failed_in = self.state.value
        if isinstance(exc, HaloSyncError):
            logger.warning(
                "%s failed in %s for post %s: %s",
                self.operation,
                failed_in,
                self.identifier or "-",
                exc,
            )
        else:
            logger.error(
                "%s failed in %s for post %s: %s",
                self.operation,
                failed_in,
                self.identifier or "-",
                exc,
            )
        return self.finish(SyncState.FAILED, str(exc), _error_type(exc))


class SyncOrchestrator:
    """Run publish, update, pull and fetch operations against one site.

    Args:
        client: Client for the configured Halo site.
        environment: Where local documents are read and written.
        site_url: URL recorded in ``halo.site``; defaults to the client's.
        renderer: Markdown to HTML renderer for post content.
        default_slug_strategy: Slug strategy for new posts.
        author: Author written by ``generate_metadata``.
    """

    def __init__(
        self,
        client: HaloClient,
        environment: EditingEnvironment,
        site_url: str | None = None,
        renderer: Callable[[str], str] | None = None,
        default_slug_strategy: SlugStrategy | str = SlugStrategy.TITLE,
        author: str | None = None,
    ) -> None:
        self.client = client
        self.environment = environment
        self.site_url = normalize_site(site_url or client.site_url)
        self.default_slug_strategy = default_slug_strategy
        self.author = author

        self.categories = ReferenceResolver(client, ReferenceKind.CATEGORY)
        self.tags = ReferenceResolver(client, ReferenceKind.TAG)
        self.reconciler = Reconciler(
            self.site_url,
            self.categories,
            self.tags,
            renderer=renderer,
            default_slug_strategy=default_slug_strategy,
        )

    # ------------------------------------------------------------------
    # Exposed operations
    # ------------------------------------------------------------------

    async def publish_active(self) -> SyncOutcome:
        """Publish the active document, creating the post if needed."""
        return await self._push("publish", require_link=False)

    async def push_active(self) -> SyncOutcome:
        """Push the active document to the post it is already linked to.

        Fails with ``not_published`` when the document has no link and
        with ``not_found`` when the linked post no longer exists.
        """
        return await self._push("push", require_link=True)

    async def update_active(self) -> SyncOutcome:
        """Refresh the active document from the post it is linked to.

        The body is replaced by the post's raw content and the title,
        categories, tags and ``halo`` link are written into the metadata.
        Fails with ``not_published`` when the document has no link and
        with ``not_found`` when the linked post no longer exists.
        """
        return await self._pull("update")

    async def pull_active(self) -> SyncOutcome:
        """Overwrite the active document with its linked post."""
        return await self._pull("pull")

    async def _pull(self, operation: str) -> SyncOutcome:
        run = _Run(operation)
        try:
            document = await run_sync(self.environment.read_active_document)
            if document is None:
                return run.skip("No active document")
            run.document = document.name

            identifier = linked_identifier(document.metadata)
            if identifier is None:
                raise NotPublishedError(document.name)
            self.reconciler.ensure_same_site(document.metadata)
            run.identifier = identifier

            run.enter(SyncState.FETCHING)
            remote = await run_sync_limited(self.client.get_post, identifier)
            patch = await self._linked_fields(remote, identifier)

            await run_sync(
                self.environment.replace_document, remote.content.raw
            )
            await self._write_metadata(patch)
        except (HaloSyncError, OSError, ValueError) as exc:
            return run.fail(exc)
        verb = "Pulled" if operation == "pull" else "Updated"
        return run.done(f"{verb} {document.name} from post {identifier}")

    async def fetch_remote(self, post_ref: str) -> SyncOutcome:
        """Create a new local document from the post *post_ref* and open it."""
        run = _Run("fetch")
        run.identifier = post_ref
        try:
            run.enter(SyncState.FETCHING)
            remote = await run_sync_limited(self.client.get_post, post_ref)
            patch = await self._linked_fields(remote, post_ref)

            handle = await run_sync(
                self.environment.create_document,
                remote.spec.title or post_ref,
                remote.content.raw,
            )
            run.document = str(handle)
            await run_sync(self.environment.open_document, handle)
            await self._write_metadata(patch)
        except (HaloSyncError, OSError, ValueError) as exc:
            return run.fail(exc)
        return run.done(f"Fetched post {post_ref} into {handle}")

    async def generate_metadata(self) -> SyncOutcome:
        """Fill in the front matter a document needs before publishing.

        Only keys the document does not have yet are added, so running it
        twice, or on a document that is already linked, changes nothing
        that is already there.
        """
        run = _Run("init")
        try:
            document = await run_sync(self.environment.read_active_document)
            if document is None:
                return run.skip("No active document")
            run.document = document.name

            self.reconciler.ensure_same_site(document.metadata)
            present = document.metadata.to_frontmatter()
            defaults = initial_metadata(
                document.name,
                self.site_url,
                slug_strategy=self.default_slug_strategy,
                author=self.author,
            )
            patch = {k: v for k, v in defaults.items() if k not in present}
            if not patch:
                run.identifier = linked_identifier(document.metadata)
                return run.skip(f"{document.name} already has metadata")

            run.identifier = (
                linked_identifier(document.metadata)
                or defaults["halo"]["name"]
            )
            await self._write_metadata(patch)
        except (HaloSyncError, OSError, ValueError) as exc:
            return run.fail(exc)
        return run.done(
            f"Added {', '.join(patch)} to {document.name}"
        )

    # ------------------------------------------------------------------
    # Publish protocol
    # ------------------------------------------------------------------

    async def _push(self, operation: str, require_link: bool) -> SyncOutcome:
        run = _Run(operation)
        try:
            document = await run_sync(self.environment.read_active_document)
            if document is None:
                return run.skip("No active document")
            run.document = document.name
            name = await self._publish_document(run, document, require_link)
        except (HaloSyncError, OSError, ValueError) as exc:
            return run.fail(exc)
        verb = "Published" if operation == "publish" else "Pushed"
        return run.done(f"{verb} {document.name} as post {name}")

    async def _publish_document(
        self,
        run: _Run,
        document: LocalDocument,
        require_link: bool,
    ) -> str:
        """Run the publish protocol for *document*; return the post name."""
        # Checked before any network call so a mismatch never touches Halo
        self.reconciler.ensure_same_site(document.metadata)
        identifier = linked_identifier(document.metadata)
        if identifier is None and require_link:
            raise NotPublishedError(document.name)
        run.identifier = identifier

        run.enter(SyncState.FETCHING)
        existing: RemotePost | None = None
        if identifier is not None:
            try:
                existing = await run_sync_limited(
                    self.client.get_post, identifier
                )
            except PostNotFoundError:
                if require_link:
                    raise
                logger.info(
                    "Post %s does not exist on %s; creating it under that name",
                    identifier,
                    self.site_url,
                )

        run.enter(SyncState.RECONCILING)
        target = await self.reconciler.reconcile(
            document, existing, identifier=identifier
        )
        name = target.link.name or ""
        run.identifier = name

        run.enter(SyncState.WRITING)
        if target.is_new:
            created = await run_sync_limited(
                self.client.create_post, target.post
            )
            name = created.identifier or name
            run.identifier = name
            logger.info("Created post %s", name)
        else:
            await run_sync_limited(
                self.client.update_post, name, target.post.post
            )
            await run_sync_limited(
                self.client.update_content, name, target.post.content
            )
            logger.info("Updated post %s", name)

        run.enter(SyncState.PUBLISHING)
        if target.post.spec.publish:
            await run_sync_limited(self.client.publish_post, name)
        else:
            await run_sync_limited(self.client.unpublish_post, name)

        run.enter(SyncState.REFRESHING)
        refreshed = await run_sync_limited(self.client.get_post, name)
        patch = await self._linked_fields(refreshed, name)
        await self._write_metadata(patch)
        return name

    # ------------------------------------------------------------------
    # Local write-back
    # ------------------------------------------------------------------

    async def _linked_fields(
        self, remote: RemotePost, name: str
    ) -> dict[str, Any]:
        """Front matter fields that mirror *remote*."""
        categories = await self.categories.resolve_display_names(
            remote.spec.categories
        )
        tags = await self.tags.resolve_display_names(remote.spec.tags)
        return {
            "title": remote.spec.title,
            "categories": categories,
            "tags": tags,
            "halo": SyncLink(
                site=self.site_url, name=name, publish=remote.spec.publish
            ),
        }

    async def _write_metadata(self, patch: Mapping[str, Any]) -> None:
        await run_sync(
            self.environment.write_metadata, lambda old: merge(old, patch)
        )
