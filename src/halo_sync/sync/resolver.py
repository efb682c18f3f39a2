"""Reference resolution for post categories and tags.

Posts point at categories and tags by identifier, while documents name
them by display name.  ``ReferenceResolver`` translates in both
directions:

- ``resolve_names`` maps display names to identifiers, creating any
  reference that does not exist yet.
- ``resolve_display_names`` maps identifiers back to display names,
  dropping identifiers that no longer exist.

Matching is by exact display name, first match wins.  Halo does not
enforce display name uniqueness, so two categories called ``"News"``
always resolve to whichever the server lists first.

The returned identifier order is: matched names in input order, then
newly created names in input order.  It is not the input order when
matched and unmatched names are interleaved.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from halo_sync.core.async_utils import gather_limited, run_sync_limited
from halo_sync.errors import HaloSyncError, ReferenceResolutionError
from halo_sync.sync.models import ReferenceEntity, ReferenceKind
from halo_sync.sync.slug import SlugStrategy, generate_slug

if TYPE_CHECKING:
    from halo_sync.core.client import HaloClient

logger = logging.getLogger(__name__)


def first_match(
    display_name: str, entities: Sequence[ReferenceEntity]
) -> ReferenceEntity | None:
    """Return the first entity whose display name equals *display_name*."""
    for entity in entities:
        if entity.display_name == display_name:
            return entity
    return None


class ReferenceResolver:
    """Resolve category or tag names against one Halo site.

    Args:
        client: Client used to list and create references.
        kind: Whether this resolver handles categories or tags.
    """

    def __init__(self, client: HaloClient, kind: ReferenceKind) -> None:
        self.client = client
        self.kind = ReferenceKind(kind)

    async def list_entities(self) -> list[ReferenceEntity]:
        """Fetch every existing reference of this kind."""
        if self.kind is ReferenceKind.CATEGORY:
            return await run_sync_limited(self.client.list_categories)
        return await run_sync_limited(self.client.list_tags)

    async def _create(
        self, display_name: str, slug: str, priority: int
    ) -> str:
        if self.kind is ReferenceKind.CATEGORY:
            return await run_sync_limited(
                self.client.create_category, display_name, slug, priority
            )
        return await run_sync_limited(
            self.client.create_tag, display_name, slug
        )

    async def resolve_names(
        self,
        local_names: Sequence[str],
        all_remote: Sequence[ReferenceEntity] | None = None,
        *,
        slug_strategy: SlugStrategy | str = SlugStrategy.TITLE,
        reference_date: object = None,
    ) -> list[str]:
        """Map display names to identifiers, creating missing references.

        Args:
            local_names: Display names from the document.
            all_remote: Existing references; fetched when ``None``.
            slug_strategy: Slug strategy for created references.
            reference_date: Date passed to the slug generator.

        Returns:
            Identifiers of matched names followed by identifiers of
            created names.  A missing name that appears more than once
            is created once and contributes one identifier, so the
            result can be shorter than *local_names*.

        Raises:
            ReferenceResolutionError: If listing or any creation fails.
                No identifiers are returned in that case, although
                creations that did succeed are not rolled back.
        """
        if not local_names:
            return []

        if all_remote is None:
            try:
                all_remote = await self.list_entities()
            except HaloSyncError as exc:
                raise ReferenceResolutionError(
                    self.kind.value, list(local_names), str(exc)
                ) from exc

        matched: list[str] = []
        missing: list[str] = []
        for name in local_names:
            entity = first_match(name, all_remote)
            if entity is not None:
                matched.append(entity.identifier)
            elif name not in missing:
                missing.append(name)

        if not missing:
            return matched

        logger.info(
            "Creating %d %s reference(s): %s",
            len(missing),
            self.kind.value,
            ", ".join(missing),
        )
        base_priority = len(all_remote)
        creations = [
            self._create(
                name,
                generate_slug(name, slug_strategy, reference_date),
                base_priority + index,
            )
            for index, name in enumerate(missing)
        ]
        try:
            created = await gather_limited(creations)
        except (HaloSyncError, ValueError) as exc:
            logger.warning(
                "Failed to create %s references %s: %s",
                self.kind.value,
                missing,
                exc,
            )
            raise ReferenceResolutionError(
                self.kind.value, missing, str(exc)
            ) from exc

        return matched + list(created)

    async def resolve_display_names(
        self,
        identifiers: Sequence[str],
        all_remote: Sequence[ReferenceEntity] | None = None,
    ) -> list[str]:
        """Map identifiers to display names, dropping unknown identifiers."""
        if not identifiers:
            return []
        if all_remote is None:
            all_remote = await self.list_entities()
        by_id = {}
        for entity in all_remote:
            by_id.setdefault(entity.identifier, entity.display_name)
        names = []
        for identifier in identifiers:
            if identifier in by_id:
                names.append(by_id[identifier])
            else:
                logger.debug(
                    "Dropping unknown %s reference %s",
                    self.kind.value,
                    identifier,
                )
        return names
