import logging

import litellm
from pydantic import BaseModel, ValidationError

from keysmith.config import settings
from keysmith.core.errors import SummarizationFailed

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert technical summarizer. Given the README content of a GitHub "
    "repository, summarize its purpose and functionality. Respond only with information "
    "taken from the README. Reply with a JSON object with two keys: \"summary\" (string) "
    "and \"cool_facts\" (array of strings)."
)


class RepoSummary(BaseModel):
    summary: str
    cool_facts: list[str]


class ReadmeSummarizer:
    def __init__(self, model: str | None = None, temperature: float | None = None):
        self.model = model or settings.summarizer_model
        self.temperature = settings.summarizer_temperature if temperature is None else temperature

    async def summarize(self, readme: str) -> RepoSummary:
        try:
            response = await litellm.acompletion(
                model=self.model,
                temperature=self.temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": f"Summarize this GitHub repository from this readme file content:\n{readme}",
                    },
                ],
            )
            content = response.choices[0].message.content or ""
            return RepoSummary.model_validate_json(content)
        except ValidationError as e:
            logger.warning("summary_malformed", extra={"model": self.model, "error": str(e)})
            raise SummarizationFailed() from e
        except Exception as e:
            # litellm wraps provider failures in many exception types
            logger.exception("summary_failed", extra={"model": self.model})
            raise SummarizationFailed() from e
