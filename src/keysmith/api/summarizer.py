from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from keysmith.core.errors import InvalidInput, ReadmeNotFound
from keysmith.core.github import ReadmeFetcher
from keysmith.core.store import AccountingView
from keysmith.core.summarizer import ReadmeSummarizer, RepoSummary
from keysmith.deps.client_auth import require_client_key
from keysmith.deps.integrations import get_readme_fetcher, get_summarizer

router = APIRouter(prefix="/github-summarizer", tags=["summarizer"])


class SummarizeIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    github_url: str | None = Field(default=None, alias="githubUrl")
    repo_url: str | None = Field(default=None, alias="repoUrl")
    repo: str | None = None


@router.post("", response_model=RepoSummary)
async def summarize_repo(
    payload: SummarizeIn,
    api_key: AccountingView = Depends(require_client_key),
    fetcher: ReadmeFetcher = Depends(get_readme_fetcher),
    summarizer: ReadmeSummarizer = Depends(get_summarizer),
):
    repo_input = payload.github_url or payload.repo_url or payload.repo
    if not repo_input:
        raise InvalidInput("githubUrl (or repoUrl) or repo is required in request body.")

    readme = await fetcher.fetch(repo_input)
    if not readme:
        raise ReadmeNotFound()

    return await summarizer.summarize(readme)


@router.get("")
async def check_key(api_key: AccountingView = Depends(require_client_key)):
    return {
        "message": "API key validated successfully",
        "usage_count": api_key.usage_count,
        "monthly_limit": api_key.monthly_limit,
    }
