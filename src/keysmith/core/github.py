import logging
import re

import httpx

from keysmith.config import settings

logger = logging.getLogger(__name__)

GITHUB_URL_RE = re.compile(r"^https?://github\.com/([^/]+)/([^/]+)(?:/|$)")
RAW_ACCEPT = "application/vnd.github.v3.raw"


def parse_repo(repo_input: str) -> tuple[str, str] | None:
    """Accepts ``https://github.com/owner/repo[...]`` or ``owner/repo``."""
    owner = repo = None

    if "github.com" in repo_input:
        match = GITHUB_URL_RE.match(repo_input)
        if match:
            owner, repo = match.group(1), match.group(2)
    elif "/" in repo_input:
        parts = repo_input.split("/")
        owner, repo = parts[0], parts[1]

    if not owner or not repo:
        return None
    return owner, repo.removesuffix(".git")


class ReadmeFetcher:
    def __init__(self, client: httpx.AsyncClient, api_url: str | None = None):
        self.client = client
        self.api_url = (api_url or settings.github_api_url).rstrip("/")

    async def fetch(self, repo_input: str) -> str | None:
        """Raw README text, or None when the repo or README cannot be fetched."""
        parsed = parse_repo(repo_input)
        if parsed is None:
            return None
        owner, repo = parsed

        try:
            resp = await self.client.get(
                f"{self.api_url}/repos/{owner}/{repo}/readme",
                headers={"Accept": RAW_ACCEPT},
            )
        except httpx.HTTPError as e:
            logger.warning("readme_fetch_failed", extra={"repo": f"{owner}/{repo}", "error": str(e)})
            return None

        if resp.status_code != 200:
            logger.info("readme_unavailable", extra={"repo": f"{owner}/{repo}", "status_code": resp.status_code})
            return None
        return resp.text
