from typing import AsyncIterator

import httpx

from keysmith.config import settings
from keysmith.core.github import ReadmeFetcher
from keysmith.core.summarizer import ReadmeSummarizer


async def get_readme_fetcher() -> AsyncIterator[ReadmeFetcher]:
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        yield ReadmeFetcher(client)


async def get_summarizer() -> ReadmeSummarizer:
    return ReadmeSummarizer()
