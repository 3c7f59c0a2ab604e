"""Ranking oracle backed by the Google Gemini ``generateContent`` API."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Sequence

import httpx

from catalog_backend.domain import PotentialCategoryObservation

from .ranking import RankingOracleError

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class GeminiRankingOracle:
    """Asks Gemini to pick the best new soft categories."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.5-flash",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self._model = model
        self._request_url = f"{api_base.rstrip('/')}/models/{model}:generateContent"
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    @property
    def available(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def build_prompt(
        candidates: Sequence[PotentialCategoryObservation],
        existing_categories: Sequence[str],
        max_terms: int,
    ) -> str:
        candidate_data = [item.to_dict() for item in candidates]
        return (
            "You are an e-commerce soft category analyzer. Select the best "
            f"{max_terms} terms to add as new soft categories for product classification.\n\n"
            f"Current soft categories ({len(existing_categories)} total):\n"
            f"{', '.join(existing_categories)}\n\n"
            "Potential new categories to evaluate:\n"
            f"{json.dumps(candidate_data, ensure_ascii=False, indent=2)}\n\n"
            "Selection criteria:\n"
            "1. Higher 'count' means higher usage.\n"
            "2. Recent 'last_seen' dates show current relevance.\n"
            "3. 'example_queries' show the search intent behind a term.\n"
            "4. Avoid synonyms of existing soft categories and of each other, "
            "including Hebrew/English variations of the same concept.\n"
            "5. Prefer specific, actionable terms that help shoppers find products.\n\n"
            "Rules:\n"
            f"- Select at most {max_terms} terms.\n"
            "- Never select a term already in the current soft categories.\n"
            '- Reply with JSON only: {"selectedTerms": ["term1", "term2"]}'
        )

    def _build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "thinkingConfig": {"thinkingBudget": 0},
            },
        }

    @staticmethod
    def _extract_text(body: Any) -> str:
        candidates = body.get("candidates") if isinstance(body, dict) else None
        if not candidates:
            raise RankingOracleError("no candidates in Gemini response")
        parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
        text = "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict))
        if not text.strip():
            raise RankingOracleError("empty Gemini response")
        return text.strip()

    @staticmethod
    def parse_selection(text: str) -> list[str]:
        cleaned = _CODE_FENCE.sub("", text.strip())
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise RankingOracleError(f"invalid JSON from Gemini: {exc}") from exc

        if isinstance(parsed, dict):
            selected = parsed.get("selectedTerms", parsed.get("selected_terms"))
        else:
            selected = parsed
        if not isinstance(selected, list):
            raise RankingOracleError("Gemini response has no selectedTerms list")
        return [item for item in selected if isinstance(item, str)]

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def rank(
        self,
        candidates: Sequence[PotentialCategoryObservation],
        existing_categories: Sequence[str],
        max_terms: int,
    ) -> list[str]:
        prompt = self.build_prompt(candidates, existing_categories, max_terms)
        logger.info("asking %s to rank %d candidate terms", self._model, len(candidates))
        try:
            response = await self._client.post(
                self._request_url,
                headers={"x-goog-api-key": self._api_key},
                json=self._build_payload(prompt),
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RankingOracleError(f"Gemini request failed: {exc}") from exc

        selected = self.parse_selection(self._extract_text(body))
        logger.info("%s selected %d terms: %s", self._model, len(selected), selected)
        return selected

    async def aclose(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            await self._client.aclose()


__all__ = ["GeminiRankingOracle"]
