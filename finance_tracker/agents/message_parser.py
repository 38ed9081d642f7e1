"""
Message Parsing Agent

Turns a pasted transaction message (a bank SMS, a payment notification)
into a best-effort expense guess: description, amount and category name.

CRITICAL BOUNDARIES:
- CAN: Suggest values to pre-fill the expense form
- CANNOT: Write to the store; the user still submits the form
- CANNOT: Invent categories; an unknown category name resolves to the
  fallback category
- MUST: Fail with EnrichmentFailed (a hint to enter manually), never block
  manual entry

The LLM is a TRANSLATOR, not a bookkeeper.
"""

import json
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import google.generativeai as genai
from pydantic import BaseModel, Field

from finance_tracker.audit import AuditLogger
from finance_tracker.config import GeminiSettings, get_settings
from finance_tracker.errors import EnrichmentFailed
from finance_tracker.models.entities import Category


class ParsedExpense(BaseModel):
    """The agent's structured guess. The user reviews it before saving."""

    description: str = Field(default="")
    amount: Decimal = Field(..., gt=0)
    category_name: str = Field(default="")


def resolve_category(
    category_name: Optional[str],
    categories: Sequence[Category],
    fallback: str = "Other",
) -> Optional[Category]:
    """
    Match a parsed category name against known categories.

    Matching is case-insensitive. Anything unmatched resolves to the
    fallback category (None if even that does not exist).
    """
    wanted = (category_name or "").strip().casefold()
    for category in categories:
        if wanted and category.name.casefold() == wanted:
            return category

    wanted_fallback = fallback.casefold()
    for category in categories:
        if category.name.casefold() == wanted_fallback:
            return category
    return None


def _extract_json(text: str) -> dict[str, Any]:
    """Find the JSON object in a model response."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON object in response")
    data = json.loads(text[start:end])
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


class MessageParsingAgent:
    """
    Gemini-backed enrichment for the expense form.

    A model can be injected (anything with an async generate_content_async);
    otherwise one is configured from GeminiSettings.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        if model is not None:
            self._model = model
            return
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    def _fail(self, reason: str, error: Optional[BaseException] = None) -> EnrichmentFailed:
        self._audit_logger.log_enrichment_failed(reason, error)
        return EnrichmentFailed(reason)

    async def parse_message(
        self,
        text: str,
        category_names: Sequence[str],
        fallback_category_name: str = "Other",
    ) -> ParsedExpense:
        """
        Extract expense details from a transaction message.

        Raises:
            EnrichmentFailed: If the call fails or returns unusable data
        """
        if not text or not text.strip():
            raise self._fail("empty message")

        names = ", ".join(category_names)
        prompt = f"""Parse the following transaction message and extract the expense details.

Message: "{text.strip()}"

Respond with ONLY a JSON object with these keys:
- "description" (string)
- "amount" (number)
- "categoryName" (string) - must be one of: [{names}]. If no specific category matches, use "{fallback_category_name}".
"""

        try:
            response = await self._model.generate_content_async(prompt)
            response_text = response.text
        except Exception as e:
            raise self._fail("model call failed", e) from e

        try:
            data = _extract_json(response_text or "")
            amount = Decimal(str(data["amount"]))
            return ParsedExpense(
                description=str(data.get("description") or "").strip(),
                amount=amount,
                category_name=str(data.get("categoryName") or "").strip(),
            )
        except (ValueError, KeyError, TypeError, InvalidOperation) as e:
            raise self._fail("unusable response", e) from e
