"""
services/mirror_service.py
---------------------------
Optional mirror of new records into a JSON array file kept in a GitHub
repository, through the contents API.

Each append reads the file, decodes it, appends, and writes it back with the
blob sha that was read; GitHub rejects the write if the file changed in
between.
"""

import base64
import json
from typing import Optional

import httpx

from config import GITHUB_MIRROR_BRANCH, GITHUB_MIRROR_PATH, GITHUB_MIRROR_REPO, GITHUB_TOKEN
from utils.logger import get_logger

logger = get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"


class MirrorError(RuntimeError):
    """The mirror file could not be read or written."""


class MirrorConflictError(MirrorError):
    """The file changed between read and write (stale sha)."""


class GitHubMirror:
    """Appends JSON items to a file in a GitHub repository."""

    def __init__(self, repo: str = GITHUB_MIRROR_REPO, path: str = GITHUB_MIRROR_PATH,
                 branch: str = GITHUB_MIRROR_BRANCH, token: str = GITHUB_TOKEN,
                 client: Optional[httpx.Client] = None):
        self.repo = repo
        self.path = path
        self.branch = branch
        self.token = token
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.repo and self.token)

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=GITHUB_API_URL,
                headers={
                    "Authorization": f"token {self.token}",
                    "Accept": "application/vnd.github+json",
                },
                timeout=15.0,
            )
        return self._client

    def _contents_url(self) -> str:
        return f"/repos/{self.repo}/contents/{self.path}"

    def read(self) -> tuple[list, Optional[str]]:
        """
        Current file content and its sha.
        A missing file reads as an empty list with no sha.
        """
        response = self._http().get(self._contents_url(), params={"ref": self.branch})
        if response.status_code == 404:
            return [], None
        if response.status_code != 200:
            raise MirrorError(f"GitHub returned {response.status_code} reading {self.path}")
        payload = response.json()
        raw = base64.b64decode(payload.get("content", "")).decode("utf-8")
        items = json.loads(raw) if raw.strip() else []
        if not isinstance(items, list):
            raise MirrorError(f"{self.path} does not hold a JSON array")
        return items, payload.get("sha")

    def append(self, item: dict) -> None:
        """
        Append one item to the mirror file.

        Raises:
            MirrorConflictError: If the file changed since it was read.
            MirrorError: On any other unexpected response.
        """
        items, sha = self.read()
        items.append(item)
        encoded = base64.b64encode(
            json.dumps(items, ensure_ascii=False, indent=2).encode("utf-8")
        ).decode("ascii")
        body = {"message": f"Update {self.path}", "content": encoded, "branch": self.branch}
        if sha:
            body["sha"] = sha

        response = self._http().put(self._contents_url(), json=body)
        if response.status_code in (409, 422):
            raise MirrorConflictError(f"{self.path} changed since it was read (sha {sha})")
        if response.status_code not in (200, 201):
            raise MirrorError(f"GitHub returned {response.status_code} writing {self.path}")
        logger.info(f"Mirrored item to {self.repo}/{self.path} ({len(items)} items)")

    def try_append(self, item: dict) -> bool:
        """Append when the mirror is configured; failures are logged, not raised."""
        if not self.enabled:
            return False
        try:
            self.append(item)
            return True
        except (MirrorError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Mirror write skipped: {e}")
            return False
