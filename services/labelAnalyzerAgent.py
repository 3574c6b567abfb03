import asyncio
from typing import Optional

from langchain_google_genai import ChatGoogleGenerativeAI
from langsmith import traceable

from errors import TransportFailure
from logger_manager import log_error, log_info, log_warning
from services.analysis_request import AnalysisRequest

# Load environment variables
from env import ANALYSIS_TIMEOUT, LLM_API_KEY


def _content_as_text(content) -> str:
    # some chat models answer with a list of content parts
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict):
                parts.append(str(part.get("text", "")))
            else:
                parts.append(str(part))
        return "".join(parts)
    return "" if content is None else str(content)


class LabelAnalyzerAgent:
    """Sends one analysis request to the LLM and returns its raw text answer.

    No retries here. A timeout, a missing API key or any client error is
    reported as TransportFailure so the caller can fall back to a default
    product.
    """

    def __init__(self, api_key: Optional[str] = LLM_API_KEY, timeout: float = ANALYSIS_TIMEOUT, llm=None):
        self.api_key = api_key
        self.timeout = timeout
        self._llm = llm

    def _get_llm(self, request: AnalysisRequest):
        if self._llm is not None:
            return self._llm
        if not self.api_key:
            raise TransportFailure("No LLM API key configured")
        # Initialize LLM
        return ChatGoogleGenerativeAI(
            google_api_key=self.api_key,
            model=request.model_name,
            temperature=request.temperature,  # Lower temperature for more deterministic responses
            max_output_tokens=request.max_output_tokens,
        )

    @traceable(name="analyze_label_text")
    async def analyze(self, request: AnalysisRequest) -> str:
        log_info(f"Sending label analysis request ({len(request.raw_text)} characters, "
                 f"language: {request.detected_language})")
        llm = self._get_llm(request)
        try:
            response = await asyncio.wait_for(llm.ainvoke(request.to_messages()), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            log_warning(f"Label analysis timed out after {self.timeout}s")
            raise TransportFailure(f"Analysis timed out after {self.timeout} seconds") from e
        except Exception as e:
            log_error(f"Error calling analysis service: {e}", e)
            raise TransportFailure(f"Analysis service call failed: {e}") from e

        content = _content_as_text(getattr(response, "content", response))
        log_info(f"Received analysis response ({len(content)} characters)")
        return content
