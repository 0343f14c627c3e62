"""
Percento Word-Problem Extractor - Turn free text into a calculation.

An LLM reads the word problem and answers with a JSON object:

    {"type": "BASIC_OF", "inputs": [15, 40], "explanation": "...",
     "suggestedAction": "..."}

The answer is untrusted. It is parsed into a loosely typed payload first
and only promoted to CalculationMode / InputPair after the same checks
manual entry goes through. Any failure rejects the whole answer.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, field_validator
from pydantic import ValidationError as SchemaError

from percento.core.engine import CalculationMode, InputPair, parse_number
from percento.core.errors import ExtractionError, ParseError, ValidationError
from percento.providers.base import Provider

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)

PROMPT_TEMPLATE = """Analyze the following percentage-related math problem and extract the core numbers and calculation type.

Problem: "{problem}"

Calculation Types Mapping:
- "BASIC_OF": Finding X% of Y
- "IS_WHAT": X is what % of Y?
- "CHANGE": Percentage increase/decrease from X to Y
- "ADD_SUB": Adding or subtracting X% to/from Y

Respond with a JSON object with these fields:
- "type": one of the calculation types above
- "inputs": an array of exactly two numbers, in the order X, Y
- "explanation": a short human-friendly explanation of the logic
- "suggestedAction": what calculation needs to be performed (optional)

Format the response as JSON."""


def build_prompt(problem: str) -> str:
    """Build the extraction prompt for a word problem."""
    return PROMPT_TEMPLATE.format(problem=problem.strip())


class AnalysisPayload(BaseModel):
    """Shape of the JSON object the model must return."""

    model_config = ConfigDict(extra="ignore")

    type: StrictStr
    inputs: List[Union[StrictInt, StrictFloat]]
    explanation: StrictStr
    suggestedAction: Optional[StrictStr] = None

    @field_validator("inputs", mode="before")
    @classmethod
    def _reject_booleans(cls, value: Any) -> Any:
        if isinstance(value, list) and any(isinstance(item, bool) for item in value):
            raise ValueError("booleans are not numbers")
        return value


@dataclass(frozen=True)
class AIAnalysis:
    """A validated extraction: ready to hand to the calculation engine."""

    mode: CalculationMode
    inputs: InputPair
    explanation: str
    suggested_action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.mode.value,
            "inputs": [self.inputs.first, self.inputs.second],
            "explanation": self.explanation,
            "suggestedAction": self.suggested_action,
        }


def _strip_fence(text: str) -> str:
    match = _FENCE_RE.match(text)
    return match.group(1) if match else text


def parse_analysis(raw_text: str) -> AIAnalysis:
    """
    Parse and validate a model response.

    Args:
        raw_text: The model's raw reply.

    Returns:
        AIAnalysis with a known mode and two finite inputs.

    Raises:
        ExtractionError: If the reply is not a JSON object of the expected shape.
        ValidationError: If the shape is right but the content is not usable
            (unknown type, not exactly two inputs, non-finite numbers).
    """
    text = _strip_fence((raw_text or "").strip())
    if not text:
        raise ExtractionError("Empty response from AI service")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Failed to parse AI response: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionError("AI response is not a JSON object")

    try:
        payload = AnalysisPayload.model_validate(data)
    except SchemaError as e:
        raise ExtractionError(f"AI response has the wrong shape: {e}") from e

    if payload.type not in CalculationMode.wire_values():
        raise ValidationError(f"Unknown calculation type: {payload.type!r}")

    if len(payload.inputs) != 2:
        raise ValidationError(f"Expected exactly 2 inputs, got {len(payload.inputs)}")

    try:
        first, second = (parse_number(value) for value in payload.inputs)
    except ParseError as e:
        raise ValidationError(f"Inputs must be finite numbers: {e}") from e

    return AIAnalysis(
        mode=CalculationMode(payload.type),
        inputs=InputPair(first, second),
        explanation=payload.explanation,
        suggested_action=payload.suggestedAction,
    )


class WordProblemExtractor:
    """
    Sends a word problem to an LLM provider and validates the answer.

    One provider call per extract(); there is no retry. Retry or timeout
    policy belongs to the caller or the provider.

    Example:
        >>> extractor = WordProblemExtractor(ProviderFactory.create(model, config))
        >>> analysis = extractor.extract("What is 15% of 40?")
        >>> analysis.mode
        <CalculationMode.PERCENT_OF: 'BASIC_OF'>
    """

    def __init__(self, provider: Provider):
        self.provider = provider

    def extract(self, problem: str) -> AIAnalysis:
        """
        Extract a calculation from a word problem.

        Raises:
            ValidationError: If the problem is blank or the answer is unusable.
            ExtractionError: If the provider fails or answers malformed JSON.
        """
        if not problem or not problem.strip():
            raise ValidationError("Word problem is empty")

        try:
            response = self.provider.complete(build_prompt(problem), json_mode=True)
        except Exception as e:
            logger.warning("AI provider %s failed: %s", self.provider.provider_name, e)
            raise ExtractionError(f"AI service request failed: {e}") from e

        try:
            analysis = parse_analysis(response.content)
        except ExtractionError as e:
            logger.warning("Rejected AI response: %s", e)
            raise

        logger.debug("Extracted %s %r", analysis.mode.value, analysis.inputs.as_tuple())
        return analysis


def extract_from_text(problem: str, provider: Provider) -> AIAnalysis:
    """Extract a validated calculation from a word problem using a provider."""
    return WordProblemExtractor(provider).extract(problem)
