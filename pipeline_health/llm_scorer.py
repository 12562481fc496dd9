import json
import logging
import math
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from .config import Settings, get_settings
from .errors import OracleError, OracleResponseError
from .quality import QualityOracle
from .schemas import QualityAssessment, ReadinessFlags

logger = logging.getLogger(__name__)


# Model configuration profiles
MODEL_CONFIGS = {
    "gpt-5-mini": {
        "token_param": "max_completion_tokens",
        "supports_temperature": False,
        "description": "Cheaper, faster GPT-5 variant"
    },
    "gpt-5": {
        "token_param": "max_completion_tokens",
        "supports_temperature": False,
        "description": "Latest frontier model"
    },
    "gpt-4o-mini": {
        "token_param": "max_tokens",
        "supports_temperature": True,
        "description": "Cost-effective GPT-4o variant"
    },
    "gpt-4o": {
        "token_param": "max_tokens",
        "supports_temperature": True,
        "description": "Standard GPT-4o model"
    },
    "o1-mini": {
        "token_param": "max_completion_tokens",
        "supports_temperature": False,
        "description": "Cost-effective reasoning model"
    }
}

# Short flag keys the prompt asks for -> ReadinessFlags field names
ORACLE_FLAG_KEYS = {
    "EB": "economic_buyer",
    "Champion": "champion",
    "Pain": "pain_explicit",
    "DP": "decision_process",
    "DC": "decision_criteria",
    "PP": "paper_process",
}

QUALITY_PROMPT = """Analyze this sales transcript and framework notes to evaluate conversation quality on a scale of 0-1.

Transcript excerpt: {transcript}

Framework Notes: {notes}

Rate the following aspects (0-1 each):
- Specificity: Presence of quantitative metrics, specific dates, concrete numbers
- Stakeholder Clarity: Clear identification of economic buyer, champion, decision makers
- Actionability: Clear next steps, committed actions, follow-up plans
- Objection Handling: Evidence of addressing concerns, pain points, challenges

Return ONLY a JSON object with this exact format:
{{
  "qualityScore": 0.75,
  "reasons": ["Specific metrics discussed", "Economic buyer identified"],
  "readinessFlags": {{
    "EB": true,
    "Champion": false,
    "Pain": true,
    "DP": false,
    "DC": true,
    "PP": false
  }}
}}"""

SYSTEM_PROMPT = "You are an expert at evaluating B2B sales conversations. Always respond with valid JSON."


def parse_quality_response(result: Any) -> QualityAssessment:
    """Validate the oracle's JSON payload and turn it into a QualityAssessment"""
    if not isinstance(result, dict):
        raise OracleResponseError(f"Expected a JSON object, got {type(result).__name__}")

    raw_score = result.get("qualityScore")
    if raw_score is None or isinstance(raw_score, bool):
        raise OracleResponseError(f"Missing or invalid qualityScore: {raw_score!r}")
    try:
        score = float(raw_score)
    except (TypeError, ValueError):
        raise OracleResponseError(f"qualityScore is not a number: {raw_score!r}")
    if not math.isfinite(score):
        raise OracleResponseError(f"qualityScore is not finite: {raw_score!r}")

    raw_flags = result.get("readinessFlags") or {}
    if not isinstance(raw_flags, dict):
        raise OracleResponseError(f"readinessFlags must be an object, got {type(raw_flags).__name__}")

    flags = ReadinessFlags(**{
        field: raw_flags.get(key) is True for key, field in ORACLE_FLAG_KEYS.items()
    })

    return QualityAssessment(
        score=max(0.0, min(1.0, score)),
        readiness_flags=flags,
        source="llm",
    )


class LLMQualityOracle(QualityOracle):
    """Scores conversation quality with a single OpenAI chat completion"""

    def __init__(self, model: Optional[str] = None, settings: Optional[Settings] = None,
                 client: Optional[AsyncOpenAI] = None):
        self.settings = settings or get_settings()
        self.model = model or self.settings.llm_model
        self.temperature = self.settings.llm_temperature
        self.max_tokens = self.settings.llm_max_tokens

        if client is None:
            if not self.settings.openai_api_key:
                raise ValueError("OPENAI_API_KEY environment variable not set")
            # A failed call falls back to rules, so never retry
            client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.oracle_timeout_seconds,
                max_retries=0,
            )
        self.client = client

        # Get model configuration
        self.model_config = self._get_model_config()

    def _get_model_config(self) -> Dict[str, Any]:
        """Get configuration for the current model"""
        # Direct match first
        if self.model in MODEL_CONFIGS:
            return MODEL_CONFIGS[self.model]

        # Longest prefix wins so gpt-5-mini-2025 is not read as gpt-5
        for config_model in sorted(MODEL_CONFIGS, key=len, reverse=True):
            if self.model.startswith(config_model):
                return MODEL_CONFIGS[config_model]

        # Default fallback for unknown models (assume GPT-4 style)
        return {
            "token_param": "max_tokens",
            "supports_temperature": True,
            "description": f"Unknown model: {self.model}"
        }

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the current model"""
        return {
            "model": self.model,
            "config": self.model_config.copy(),
            "temperature": self.temperature if self.model_config.get("supports_temperature", True) else 1.0,
            "max_tokens": self.max_tokens
        }

    def _build_request(self, transcript_excerpt: str, notes_summary: str) -> Dict[str, Any]:
        prompt = QUALITY_PROMPT.format(transcript=transcript_excerpt, notes=notes_summary or "None")
        request_params = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt}
            ],
            "response_format": {"type": "json_object"},
        }

        # Set token parameter based on model config
        token_param = self.model_config.get("token_param", "max_tokens")
        request_params[token_param] = self.max_tokens

        # Set temperature only if model supports it
        if self.model_config.get("supports_temperature", True):
            request_params["temperature"] = self.temperature

        return request_params

    async def estimate_quality(self, transcript_excerpt: str, notes_summary: str) -> QualityAssessment:
        request_params = self._build_request(transcript_excerpt, notes_summary)

        try:
            response = await self.client.chat.completions.create(**request_params)
            content = response.choices[0].message.content
        except Exception as e:
            raise OracleError(f"Chat Completions API error ({self.model}): {e}") from e

        return parse_quality_response(self._decode_content(content))

    def _decode_content(self, content: Optional[str]) -> Any:
        """Strip code fences and parse the model's JSON answer"""
        if not content or not content.strip():
            raise OracleResponseError(f"Empty response from {self.model}")

        content = content.strip()

        # Try to extract JSON from response
        if content.startswith("```json"):
            content = content[7:-3].strip()
        elif content.startswith("```"):
            content = content[3:-3].strip()

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.debug("Unparsable response from %s: %s", self.model, content)
            raise OracleResponseError(f"JSON decode error: {e}") from e
