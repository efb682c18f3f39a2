"""Document-to-post sync protocol.

Public API for publishing local Markdown documents (with YAML front
matter) to a Halo site and pulling posts back.

Architecture
------------
Leaf-first:

- ``slug``        -- slug generation strategies.
- ``resolver``    -- ``ReferenceResolver``: category/tag names to
  identifiers, creating missing ones.
- ``reconciler``  -- ``Reconciler``: local document + existing post to
  target post and ``SyncLink``.
- ``engine``      -- ``SyncOrchestrator``: fetch, reconcile, write,
  publish, refresh, write back.

Supporting modules:

- ``models``      -- pydantic data contracts.
- ``metadata``    -- pure front matter ``merge`` and field rules.
- ``dates``       -- date parsing and formatting.
- ``environment`` -- ``EditingEnvironment`` protocol and the file-backed
  ``FileEditingEnvironment``.
- ``reporter``    -- human-readable and JSON outcome formatting.

Usage example
-------------
::

    from halo_sync.core.client import HaloClient
    from halo_sync.sync import (
        FileEditingEnvironment,
        SyncOrchestrator,
        format_outcome,
    )

    orchestrator = SyncOrchestrator(
        client=HaloClient(config),
        environment=FileEditingEnvironment("/notes/Hello World.md"),
    )
    outcome = await orchestrator.publish_active()
    print(format_outcome(outcome))
"""

from .engine import SyncOrchestrator
from .environment import EditingEnvironment, FileEditingEnvironment
from .metadata import merge
from .models import (
    DocumentMetadata,
    LocalDocument,
    ReconcileResult,
    ReferenceEntity,
    RemotePost,
    SyncLink,
    SyncOutcome,
    SyncState,
)
from .reconciler import Reconciler
from .reporter import format_outcome, outcome_to_json
from .resolver import ReferenceResolver
from .slug import SlugStrategy, generate_slug

__all__ = [
    "DocumentMetadata",
    "EditingEnvironment",
    "FileEditingEnvironment",
    "LocalDocument",
    "ReconcileResult",
    "Reconciler",
    "ReferenceEntity",
    "ReferenceResolver",
    "RemotePost",
    "SlugStrategy",
    "SyncLink",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncState",
    "format_outcome",
    "generate_slug",
    "merge",
    "outcome_to_json",
]
