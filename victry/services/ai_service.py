"""Job description analysis over the AI collaborator.

This service handles:
- Prompt construction for structured requirement extraction
- LLM orchestration with retries on transient provider failures
- Validation of the model output against ``JobAnalysis``
"""

import json
from typing import Any

from pydantic import ValidationError

from victry.adapters.llm.base import AbstractLLMClient
from victry.core.errors import AppError, ErrorCategory, ErrorCode, create_api_error
from victry.core.logger import Logger
from victry.core.retry import RetryOptions, with_retry
from victry.schemas.ai import JobAnalysis, JobAnalysisRequest


def build_prompt(job_text: str, schema: dict[str, Any]) -> str:
    """Build the extraction prompt for a job description.

    Args:
        job_text: Job description text.
        schema: JSON schema the answer must follow.

    Returns:
        Formatted prompt string for the LLM.
    """
    return f"""
You are an expert recruiter and ATS specialist. Extract the requirements of the job description below and return a structured JSON object.

RULES:
- Return ONLY valid JSON matching the schema below
- Only list requirements that appear in the job description
- importance must be one of: must_have, preferred, nice_to_have
- keywords are terms an ATS would match, with how often they appear

JSON SCHEMA:
{json.dumps(schema, indent=2)}

JOB DESCRIPTION:
{job_text}

Return only the JSON object, no additional text.
""".strip()


class AnalysisService:
    """Turns job description text into a validated ``JobAnalysis``.

    Attributes:
        llm: AI collaborator producing structured JSON.
        logger: Structured logger tagged for this service.
        retry_options: Retry policy for provider calls.
    """

    def __init__(
        self,
        llm: AbstractLLMClient,
        *,
        logger: Logger,
        retry_options: RetryOptions | None = None,
    ) -> None:
        self.llm = llm
        self.logger = logger
        self.retry_options = retry_options or RetryOptions.from_settings()

    async def analyze(self, request: JobAnalysisRequest, *, user_id: str | None = None) -> JobAnalysis:
        """Analyze a job description.

        Raises:
            AppError: Provider failures (already classified by the adapter) or
                ``ai_generation_error`` when the output does not match the schema.
        """
        schema = JobAnalysis.model_json_schema()
        prompt = build_prompt(request.text.strip(), schema)

        raw = await with_retry(
            lambda: self.llm.generate_json(prompt, temperature=request.temperature, schema=schema),
            self.retry_options,
            logger=self.logger,
        )

        try:
            analysis = JobAnalysis.model_validate(raw)
        except ValidationError as exc:
            self.logger.warn(
                "analysis.invalid_output",
                {"user_id": user_id, "error_count": exc.error_count()},
            )
            raise AppError(
                create_api_error(
                    "AI returned an analysis in an unexpected format",
                    ErrorCategory.AI,
                    code=ErrorCode.AI_GENERATION_ERROR,
                )
            ) from exc

        self.logger.info(
            "analysis.completed",
            {
                "user_id": user_id,
                "hard_skills": len(analysis.hard_skills),
                "keywords": len(analysis.keywords),
            },
        )
        return analysis
