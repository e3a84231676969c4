"""
Analysis Invoker component.

Sends a work item's requirements and a pull request's code context to the
generation service with a fixed review prompt and returns the verdict prose.
One call is made per pull request; failures surface as GenerationServiceError.
"""

import time
from typing import Optional

from openai import AsyncAzureOpenAI, AsyncOpenAI

from card_review.config import Settings
from card_review.errors import GenerationServiceError
from card_review.utils.logging import get_logger, log_api_call
from card_review.utils.metrics import RunMetrics


logger = get_logger(__name__)

SERVICE_NAME = "openai"

AZURE_OPENAI_API_VERSION = "2024-02-15-preview"

SYSTEM_PROMPT = "You are a Tech Lead reviewing pull requests against the card they implement."

REVIEW_PROMPT_TEMPLATE = """You are a Tech Lead. Analyze this PR.
CARD CONTEXT: {requirements}
CODE IN THIS PR: {code}

INSTRUCTIONS:
1. Check whether the code meets the DESCRIPTION and ACCEPTANCE CRITERIA.
2. Ignore style, focus on the BUSINESS RULE.
3. Ignore technical points that do not affect the business rule.
4. Point out anything missing that might be delivered in another PR.
5. State whether it is APPROVED or REJECTED.
6. If everything is correct, give the reason for approval.
7. If something is missing, list it objectively.
"""


def build_review_prompt(requirements_text: str, code_context: str) -> str:
    """Embed the requirements and code context verbatim in the review prompt."""
    return REVIEW_PROMPT_TEMPLATE.format(requirements=requirements_text, code=code_context)


class AnalysisInvoker:
    """Wrapper for the OpenAI / Azure OpenAI chat completions API."""

    def __init__(self, settings: Settings, client=None, metrics: Optional[RunMetrics] = None):
        """
        Initialize the generation client based on configuration.

        Args:
            settings: Application settings
            client: Pre-built async OpenAI client, mainly for tests
            metrics: Run metrics that record call counts and latency
        """
        self.metrics = metrics
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens

        if settings.uses_azure_openai:
            self.client = client or AsyncAzureOpenAI(
                api_key=settings.azure_openai_api_key,
                api_version=AZURE_OPENAI_API_VERSION,
                azure_endpoint=settings.azure_openai_endpoint,
            )
            self.model = settings.azure_openai_deployment or settings.llm_model
            self.is_azure = True
            logger.info("Initialized Azure OpenAI client")
        else:
            self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
            self.model = settings.llm_model
            self.is_azure = False
            logger.info("Initialized OpenAI client")

    async def invoke(self, requirements_text: str, code_context: str) -> str:
        """
        Ask the generation service for a business-rule verdict.

        Args:
            requirements_text: Work item requirements summary
            code_context: Concatenated code of one pull request

        Returns:
            Analysis text

        Raises:
            GenerationServiceError: On transport, quota or model failure,
                or when the service returns no text
        """
        prompt = build_review_prompt(requirements_text, code_context)
        start_time = time.time()

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            self._log_call(start_time, error=str(e))
            raise GenerationServiceError(f"Generation service call failed: {e}") from e

        self._log_call(start_time)

        content = None
        if response is not None and response.choices:
            content = response.choices[0].message.content

        if not content or not content.strip():
            raise GenerationServiceError("Generation service returned an empty analysis")

        return content.strip()

    def _log_call(self, start_time: float, error: Optional[str] = None) -> None:
        duration_ms = (time.time() - start_time) * 1000
        if self.metrics is not None:
            self.metrics.record_api_call(SERVICE_NAME, duration_ms)
        log_api_call(
            logger,
            service=SERVICE_NAME,
            endpoint="chat.completions.create",
            method="POST",
            status_code=None if error else 200,
            duration_ms=duration_ms,
            error=error,
        )
