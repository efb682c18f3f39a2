"""Blocking HTTP client for the Halo 2.x REST APIs.

Covers the two remote collaborators the sync protocol needs:

- the post API (fetch, create, update spec, update content, publish,
  unpublish, list), and
- the reference API (list/create categories and tags).

Every failure is translated into the ``halo_sync.errors`` hierarchy:
a missing post becomes ``PostNotFoundError``; anything else that goes
wrong on the wire becomes ``TransportError``.
"""

import logging
import threading
from typing import Any

import requests

from ..config import Config
from ..errors import PostNotFoundError, TransportError
from ..sync.models import (
    Post,
    PostContent,
    ReferenceEntity,
    RemotePost,
)
from ..validators import validate_display_name, validate_resource_name

logger = logging.getLogger(__name__)

CONTENT_API = "/apis/content.halo.run/v1alpha1"
CONSOLE_API = "/apis/api.console.halo.run/v1alpha1"

DEFAULT_TAG_COLOR = "#ffffff"


def _check_name(name: str, field_name: str = "Post name") -> None:
    is_valid, error = validate_resource_name(name, field_name)
    if not is_valid:
        raise ValueError(error)


def _error_detail(response: requests.Response) -> str:
    """Pull a human-readable reason out of an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("detail", "title", "message"):
            if body.get(key):
                return str(body[key])
    return response.reason or "request failed"


class HaloClient:
    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.base_url = config.site_url.rstrip("/")

    @property
    def site_url(self) -> str:
        return self.base_url

    @property
    def session(self) -> requests.Session:
        """The current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        if self.config.token:
            session.headers["Authorization"] = (
                f"Bearer {self.config.token}"
            )
        else:
            session.auth = (self.config.username, self.config.password)
        session.headers["Accept"] = "application/json"
        session.verify = not self.config.insecure
        return session

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        body: Any = None,
        params: dict[str, Any] | None = None,
        missing: str | None = None,
    ) -> Any:
        """
        Send one request and decode the JSON reply.

        Args:
            method: HTTP method.
            path: Path below the site URL.
            operation: Short description used in error messages.
            body: JSON-serialisable request body.
            params: Query parameters.
            missing: When set, a 404 raises ``PostNotFoundError`` for this
                name instead of ``TransportError``.

        Returns:
            Decoded JSON, or ``None`` for an empty body.
        """
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._get_session().request(
                method,
                url,
                json=body,
                params=params,
                timeout=(10, 60),
            )
        except requests.RequestException as exc:
            # The exception text can echo request headers; keep only its type
            raise TransportError(operation, type(exc).__name__) from exc

        if response.status_code == 404 and missing is not None:
            raise PostNotFoundError(missing)
        if not response.ok:
            raise TransportError(
                operation, _error_detail(response), response.status_code
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                operation, "invalid JSON in response", response.status_code
            ) from exc

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def validate_connection(self) -> str:
        """
        Fetch the authenticated user to prove the credentials work.
        Returns the user's name.
        """
        data = self._request(
            "GET", f"{CONSOLE_API}/users/-", "validate connection"
        )
        user = (data or {}).get("user") or {}
        return str((user.get("metadata") or {}).get("name", ""))

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def get_post(self, name: str) -> RemotePost:
        """
        Fetch a post and its head content.

        Raises:
            PostNotFoundError: If no post has this name.
            TransportError: On any other failure.
        """
        _check_name(name)
        post = self._request(
            "GET",
            f"{CONTENT_API}/posts/{name}",
            f"get post {name}",
            missing=name,
        )
        content = self._request(
            "GET",
            f"{CONSOLE_API}/posts/{name}/head-content",
            f"get content of post {name}",
            missing=name,
        )
        return RemotePost(
            post=Post.model_validate(post),
            content=PostContent.model_validate(content or {}),
        )

    def list_posts(
        self,
        keyword: str | None = None,
        page: int = 1,
        size: int = 20,
    ) -> list[Post]:
        """
        List posts, newest first, optionally filtered by keyword.
        """
        params: dict[str, Any] = {"page": page, "size": size}
        if keyword:
            params["keyword"] = keyword
        data = self._request(
            "GET", f"{CONSOLE_API}/posts", "list posts", params=params
        )
        items = (data or {}).get("items") or []
        return [Post.model_validate(item["post"]) for item in items]

    def create_post(self, remote: RemotePost) -> Post:
        """
        Create a post with its content in a single call.

        Returns:
            The created post as stored by the server.
        """
        if remote.identifier:
            _check_name(remote.identifier)
        data = self._request(
            "POST",
            f"{CONSOLE_API}/posts",
            "create post",
            body=remote.to_wire(),
        )
        return Post.model_validate(data)

    def update_post(self, name: str, post: Post) -> Post:
        """
        Replace the post resource (spec and metadata, not content).
        """
        _check_name(name)
        data = self._request(
            "PUT",
            f"{CONTENT_API}/posts/{name}",
            f"update post {name}",
            body=post.model_dump(by_alias=True, exclude_none=True),
        )
        return Post.model_validate(data) if data else post

    def update_content(self, name: str, content: PostContent) -> None:
        """
        Replace the post's draft content.
        """
        _check_name(name)
        self._request(
            "PUT",
            f"{CONSOLE_API}/posts/{name}/content",
            f"update content of post {name}",
            body=content.model_dump(by_alias=True, exclude_none=True),
        )

    def publish_post(self, name: str) -> None:
        _check_name(name)
        self._request(
            "PUT",
            f"{CONSOLE_API}/posts/{name}/publish",
            f"publish post {name}",
        )

    def unpublish_post(self, name: str) -> None:
        _check_name(name)
        self._request(
            "PUT",
            f"{CONSOLE_API}/posts/{name}/unpublish",
            f"unpublish post {name}",
        )

    # ------------------------------------------------------------------
    # Categories and tags
    # ------------------------------------------------------------------

    def list_categories(self) -> list[ReferenceEntity]:
        data = self._request(
            "GET", f"{CONTENT_API}/categories", "list categories"
        )
        items = (data or {}).get("items") or []
        return [ReferenceEntity.from_api(item) for item in items]

    def create_category(
        self, display_name: str, slug: str, priority: int = 0
    ) -> str:
        """
        Create a category and return its server-generated identifier.
        """
        is_valid, error = validate_display_name(display_name)
        if not is_valid:
            raise ValueError(error)
        body = {
            "spec": {
                "displayName": display_name,
                "slug": slug,
                "description": "",
                "cover": "",
                "template": "",
                "priority": priority,
                "children": [],
            },
            "apiVersion": "content.halo.run/v1alpha1",
            "kind": "Category",
            "metadata": {"name": "", "generateName": "category-"},
        }
        data = self._request(
            "POST",
            f"{CONTENT_API}/categories",
            f"create category {display_name!r}",
            body=body,
        )
        return ReferenceEntity.from_api(data or {}).identifier

    def list_tags(self) -> list[ReferenceEntity]:
        data = self._request("GET", f"{CONTENT_API}/tags", "list tags")
        items = (data or {}).get("items") or []
        return [ReferenceEntity.from_api(item) for item in items]

    def create_tag(
        self,
        display_name: str,
        slug: str,
        color: str = DEFAULT_TAG_COLOR,
    ) -> str:
        """
        Create a tag and return its server-generated identifier.
        """
        is_valid, error = validate_display_name(display_name)
        if not is_valid:
            raise ValueError(error)
        body = {
            "spec": {
                "displayName": display_name,
                "slug": slug,
                "color": color,
                "cover": "",
            },
            "apiVersion": "content.halo.run/v1alpha1",
            "kind": "Tag",
            "metadata": {"name": "", "generateName": "tag-"},
        }
        data = self._request(
            "POST",
            f"{CONTENT_API}/tags",
            f"create tag {display_name!r}",
            body=body,
        )
        return ReferenceEntity.from_api(data or {}).identifier
