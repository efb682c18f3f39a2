"""Pydantic models for the Halo sync protocol.

Defines the data contracts shared by the sync modules:

- ``Post``, ``PostSpec``, ``PostMetadata``, ``PostContent``,
  ``RemotePost``: the remote post, shaped like Halo's JSON.
- ``ReferenceEntity``: a category or tag.
- ``SyncLink``: the ``halo`` back-reference stored in front matter.
- ``DocumentMetadata``: the whitelisted front matter record.
- ``LocalDocument``: a document read from the editing environment.
- ``ReconcileResult``: the target state computed by the reconciler.
- ``SyncState``, ``SyncOutcome``: orchestrator progress and result.

All models are frozen (immutable).  Remote models allow extra fields so
server-managed values such as ``metadata.version`` or ``status`` survive
a fetch/update round trip untouched.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

POST_API_VERSION = "content.halo.run/v1alpha1"

_REMOTE_CONFIG = {
    "frozen": True,
    "extra": "allow",
    "populate_by_name": True,
}


class _RemoteModel(BaseModel):
    """Base for models parsed from Halo JSON.

    Halo sends ``null`` for unset fields (``cover``, ``categories``,
    ``htmlMetas``...).  A ``null`` for a declared field is read as that
    field's default.
    """

    model_config = _REMOTE_CONFIG

    @model_validator(mode="before")
    @classmethod
    def _null_is_default(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        declared = set(cls.model_fields)
        declared.update(
            f.alias for f in cls.model_fields.values() if f.alias
        )
        return {
            k: v
            for k, v in data.items()
            if v is not None or k not in declared
        }


# ---------------------------------------------------------------------------
# Remote post
# ---------------------------------------------------------------------------


class Excerpt(_RemoteModel):
    """Post excerpt settings."""

    auto_generate: bool = Field(default=True, alias="autoGenerate")
    raw: str = ""


class PostSpec(_RemoteModel):
    """Structured, non-content fields of a post.

    ``categories`` and ``tags`` hold reference identifiers, not display
    names.
    """

    title: str = ""
    slug: str = ""
    template: str = ""
    cover: str = ""
    deleted: bool = False
    publish: bool = False
    publish_time: str | None = Field(default=None, alias="publishTime")
    pinned: bool = False
    allow_comment: bool = Field(default=True, alias="allowComment")
    visible: str = "PUBLIC"
    priority: int = 0
    excerpt: Excerpt = Field(default_factory=Excerpt)
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    html_metas: list[dict[str, Any]] = Field(
        default_factory=list, alias="htmlMetas"
    )


class PostMetadata(_RemoteModel):
    """Object metadata; ``name`` is the post's stable identifier."""

    name: str = ""
    annotations: dict[str, str] | None = Field(default_factory=dict)


class Post(_RemoteModel):
    """A post resource without its content."""

    api_version: str = Field(default=POST_API_VERSION, alias="apiVersion")
    kind: str = "Post"
    metadata: PostMetadata = Field(default_factory=PostMetadata)
    spec: PostSpec = Field(default_factory=PostSpec)

    @property
    def identifier(self) -> str:
        return self.metadata.name


class PostContent(_RemoteModel):
    """Raw and rendered body of a post."""

    raw: str = ""
    content: str = ""
    raw_type: str = Field(default="markdown", alias="rawType")


class RemotePost(_RemoteModel):
    """A post together with its content, as exchanged with Halo."""

    post: Post = Field(default_factory=Post)
    content: PostContent = Field(default_factory=PostContent)

    @property
    def identifier(self) -> str:
        """Stable identifier (``metadata.name``); ``""`` until assigned."""
        return self.post.metadata.name

    @property
    def spec(self) -> PostSpec:
        return self.post.spec

    def to_wire(self) -> dict[str, Any]:
        """Serialise to the JSON body shape Halo expects."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


class ReferenceKind(str, Enum):
    """Kinds of reference entity a post can point at."""

    CATEGORY = "category"
    TAG = "tag"


class ReferenceEntity(BaseModel):
    """A category or tag.

    Attributes:
        identifier: Stable identifier (``metadata.name``).
        display_name: Human-readable name matched against local names.
        slug: URL slug.
    """

    identifier: str
    display_name: str
    slug: str = ""

    model_config = {"frozen": True}

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> ReferenceEntity:
        """Build from a Halo ``Category`` or ``Tag`` JSON object."""
        spec = item.get("spec") or {}
        metadata = item.get("metadata") or {}
        return cls(
            identifier=metadata.get("name") or "",
            display_name=spec.get("displayName") or "",
            slug=spec.get("slug") or "",
        )


# ---------------------------------------------------------------------------
# Local document
# ---------------------------------------------------------------------------


class SyncLink(BaseModel):
    """The ``halo`` block persisted into front matter.

    Attributes:
        site: URL of the site the document is published to.
        name: Identifier of the remote post.
        publish: Whether the remote post was published at last sync.

    Other keys kept under ``halo`` are carried through untouched.
    """

    site: str | None = None
    name: str | None = None
    publish: bool | None = None

    model_config = {"frozen": True, "extra": "allow"}


def _names(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (str, int, float)):
        return [str(value)]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    return value


class DocumentMetadata(BaseModel):
    """Front matter of a local document.

    Recognised keys are typed fields; anything else (``author``, custom
    keys) is carried through untouched as extra data.  Keys that were
    absent from the front matter stay unset, which is how "absent" is
    told apart from "present but empty" (for example ``categories: []``).

    Use ``halo_sync.sync.metadata.merge`` to derive a changed copy.
    """

    title: str | None = None
    categories: list[str] | None = None
    tags: list[str] | None = None
    date: Any = None
    cover: str | None = None
    publish: Any = None
    slug_strategy: str | None = Field(default=None, alias="slug-strategy")
    halo: SyncLink | None = None

    model_config = {
        "frozen": True,
        "extra": "allow",
        "populate_by_name": True,
    }

    @field_validator("title", "cover", "slug_strategy", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("categories", "tags", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        return _names(value)

    @field_validator("halo", mode="before")
    @classmethod
    def _link_or_none(cls, value: Any) -> Any:
        if isinstance(value, (dict, SyncLink)) or value is None:
            return value
        return None

    def to_frontmatter(self) -> dict[str, Any]:
        """Serialise back to a plain front matter mapping.

        Only keys that were present (or explicitly set) are emitted.
        """
        data = self.model_dump(by_alias=True, exclude_unset=True)
        if self.halo is not None:
            data["halo"] = self.halo.model_dump(exclude_none=True)
        return data


class LocalDocument(BaseModel):
    """A document read from the editing environment.

    Attributes:
        name: Document name without extension, used as fallback title.
        raw_body: Markdown body with the front matter block removed.
        metadata: Parsed front matter.
    """

    name: str
    raw_body: str = ""
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Reconciliation and orchestration
# ---------------------------------------------------------------------------


class ReconcileResult(BaseModel):
    """Target state produced by the reconciler.

    Attributes:
        post: The post (spec and content) to write to Halo.
        link: The SyncLink the document should carry afterwards.
        is_new: ``True`` when the post must be created, ``False`` when an
            existing post is updated.
    """

    post: RemotePost
    link: SyncLink
    is_new: bool

    model_config = {"frozen": True}


class SyncState(str, Enum):
    """States an orchestrator run moves through."""

    IDLE = "idle"
    FETCHING = "fetching"
    RECONCILING = "reconciling"
    WRITING = "writing"
    PUBLISHING = "publishing"
    REFRESHING = "refreshing"
    DONE = "done"
    FAILED = "failed"


class SyncOutcome(BaseModel):
    """Result of one orchestrator operation.

    Attributes:
        operation: ``publish``, ``push``, ``update``, ``pull``,
            ``fetch`` or ``init``.
        success: Whether the operation completed.
        state: Final state (``DONE``, ``FAILED``, or ``IDLE`` for a no-op).
        identifier: Remote post identifier, when known.
        document: Name or path of the local document involved.
        error_type: Error category for failures (see ``halo_sync.errors``).
        message: Human-readable description.
        transitions: States visited, in order.
    """

    operation: str
    success: bool
    state: SyncState
    identifier: str | None = None
    document: str | None = None
    error_type: str | None = None
    message: str = ""
    transitions: list[SyncState] = []

    model_config = {"frozen": True}

    @property
    def skipped(self) -> bool:
        """True when there was nothing to do (no active document)."""
        return self.success and self.state == SyncState.IDLE
