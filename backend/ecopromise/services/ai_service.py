# FILE: backend/ecopromise/services/ai_service.py
# AI collaborator for commitment creation.
# 1. Talks to any OpenAI-compatible chat endpoint (Gemini's by default) in JSON mode.
# 2. Without AI_API_KEY a keyword heuristic answers instead, so local setups still work.
# 3. A configured client that fails raises AIServiceError; there is no retry.

import json
import logging
import math
import re
from typing import List, Dict, Any, Optional
from openai import OpenAI
from pydantic import ValidationError

from ..core.config import settings
from ..models.commitment import Interpretation, CarbonEstimate, CommitmentCategory, CommitmentFrequency
from ..models.milestone import MilestoneSuggestion

logger = logging.getLogger(__name__)

_ai_client: Optional[OpenAI] = None

MAX_MILESTONES = 5
DEFAULT_DURATION_DAYS = 30
# Upper bounds on model answers; anything above is treated as unusable
MAX_PER_PERIOD_KG = 1000.0
MAX_TARGET_VALUE = 10000

# kg CO2 avoided per single occurrence of a typical pledge in each category
EMISSION_FACTORS: Dict[CommitmentCategory, float] = {
    CommitmentCategory.TRANSPORT: 2.6,
    CommitmentCategory.FOOD: 1.7,
    CommitmentCategory.ENERGY: 0.8,
    CommitmentCategory.WASTE: 0.3,
    CommitmentCategory.WATER: 0.1,
    CommitmentCategory.SHOPPING: 3.0,
    CommitmentCategory.OTHER: 0.5,
}

CATEGORY_KEYWORDS: Dict[CommitmentCategory, List[str]] = {
    CommitmentCategory.TRANSPORT: ["bike", "bicycle", "cycle", "cycling", "walk", "bus", "train", "carpool",
                                   "drive", "driving", "commute", "public transport", "metro", "subway",
                                   "scooter", "flight", "fly"],
    CommitmentCategory.FOOD: ["meat", "vegan", "vegetarian", "plant-based", "plant based", "beef", "dairy",
                              "meal", "food", "local produce"],
    CommitmentCategory.ENERGY: ["electricity", "energy", "light", "solar", "unplug", "heating", "thermostat",
                                "air conditioning", "led", "power"],
    CommitmentCategory.WASTE: ["plastic", "recycle", "recycling", "compost", "waste", "reusable", "bag",
                               "bottle", "straw", "packaging", "single-use"],
    CommitmentCategory.WATER: ["water", "shower", "tap", "rainwater", "irrigation"],
    CommitmentCategory.SHOPPING: ["buy", "shopping", "clothes", "second-hand", "second hand", "thrift",
                                  "fashion", "purchase"],
}

FREQUENCY_PATTERNS = [
    (CommitmentFrequency.DAILY, r"\b(daily|every ?day|each day|per day|a day)\b"),
    (CommitmentFrequency.WEEKLY, r"\b(weekly|every week|per week|a week|weekends?|mondays?|tuesdays?|wednesdays?|thursdays?|fridays?|saturdays?|sundays?)\b"),
    (CommitmentFrequency.MONTHLY, r"\b(monthly|every month|per month|a month)\b"),
    (CommitmentFrequency.ONE_TIME, r"\b(once|one[- ]time|install|switch to)\b"),
]

PERIOD_DAYS = {
    CommitmentFrequency.DAILY: 1,
    CommitmentFrequency.WEEKLY: 7,
    CommitmentFrequency.MONTHLY: 30,
}

UNIT_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}

CATEGORY_VALUES = {c.value for c in CommitmentCategory}
FREQUENCY_VALUES = {f.value for f in CommitmentFrequency}

class AIServiceError(RuntimeError):
    """The configured AI endpoint could not produce a usable answer."""

def get_ai_client() -> Optional[OpenAI]:
    global _ai_client
    if _ai_client:
        return _ai_client
    if settings.AI_API_KEY:
        _ai_client = OpenAI(
            api_key=settings.AI_API_KEY,
            base_url=settings.AI_BASE_URL,
            timeout=settings.AI_TIMEOUT_SECONDS,
            max_retries=0,
        )
        return _ai_client
    return None

def _parse_json_safely(content: str) -> Any:
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass
    # Fallback: Extract JSON block from Markdown ```json ... ```
    match = re.search(r'```(?:json)?\s*(\{.*?\}|\[.*?\])\s*```', content, re.DOTALL)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            pass
    # Fallback: Find outer braces
    start, end = content.find('{'), content.rfind('}')
    if start != -1 and end != -1:
        try:
            return json.loads(content[start:end + 1])
        except json.JSONDecodeError:
            pass
    return {}

def _call_ai(client: OpenAI, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
    try:
        response = client.chat.completions.create(
            model=settings.AI_MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.2,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ""
    except Exception as e:
        logger.error(f"AI call failed: {e}")
        raise AIServiceError(str(e)) from e

    data = _parse_json_safely(content)
    if not data:
        raise AIServiceError("AI response did not contain JSON")
    if not isinstance(data, dict):
        raise AIServiceError(f"AI response was {type(data).__name__}, expected a JSON object")
    return data

# --- Heuristics ---

def duration_to_days(duration: Optional[str]) -> int:
    if not duration:
        return DEFAULT_DURATION_DAYS
    match = re.search(r"(\d+(?:\.\d+)?)\s*(day|week|month|year)s?", duration.lower())
    if not match:
        return DEFAULT_DURATION_DAYS
    return max(1, int(round(float(match.group(1)) * UNIT_DAYS[match.group(2)])))

def occurrences_in(frequency: CommitmentFrequency, duration: Optional[str]) -> float:
    if frequency == CommitmentFrequency.ONE_TIME:
        return 1.0
    days = duration_to_days(duration)
    return max(1.0, days / PERIOD_DAYS[frequency])

def _heuristic_interpretation(text: str) -> Interpretation:
    lowered = text.lower()
    scores = {
        category: sum(1 for kw in keywords if re.search(rf"\b{re.escape(kw)}", lowered))
        for category, keywords in CATEGORY_KEYWORDS.items()
    }
    best = max(scores, key=lambda c: scores[c])
    category = best if scores[best] > 0 else CommitmentCategory.OTHER

    frequency = CommitmentFrequency.WEEKLY
    for candidate, pattern in FREQUENCY_PATTERNS:
        if re.search(pattern, lowered):
            frequency = candidate
            break

    action = text.strip().rstrip(".")
    return Interpretation(
        category=category,
        frequency=frequency,
        action=action[:200],
        summary=f"{category.value.capitalize()} commitment, {frequency.value.replace('_', ' ')}",
    )

def _heuristic_milestones(interpretation: Interpretation, estimate: CarbonEstimate, duration: Optional[str]) -> List[MilestoneSuggestion]:
    total = max(1, math.ceil(occurrences_in(interpretation.frequency, duration)))
    halfway = max(1, round(total * 0.5))
    targets = sorted({1, max(1, round(total * 0.25)), halfway, total})
    suggestions = []
    for target in targets:
        if target == total:
            title = "Commitment complete"
        elif target == 1:
            title = "First step"
        elif target == halfway:
            title = "Halfway there"
        else:
            title = "Building the habit"
        suggestions.append(MilestoneSuggestion(
            title=title,
            description=f"Complete '{interpretation.action or 'your commitment'}' {target} time(s)",
            target_value=target,
            estimated_carbon_savings=round(target * estimate.per_period, 2),
        ))
    return suggestions[:MAX_MILESTONES]

# --- PUBLIC SERVICES ---

def interpret_commitment(text: str) -> Interpretation:
    client = get_ai_client()
    if not client:
        logger.warning("AI_API_KEY not set; interpreting commitment with keyword heuristics.")
        return _heuristic_interpretation(text)

    system_prompt = """
    You classify personal sustainability commitments.
    Reply with JSON only:
    {
        "category": "transport | food | energy | waste | water | shopping | other",
        "frequency": "daily | weekly | monthly | one_time",
        "action": "the concrete action in a few words",
        "summary": "one short sentence"
    }
    """
    data = _call_ai(client, system_prompt, f"COMMITMENT:\n{text[:1000]}")
    fallback = _heuristic_interpretation(text)
    category = str(data.get("category", "")).lower().strip()
    frequency = str(data.get("frequency", "")).lower().strip().replace("-", "_").replace(" ", "_")
    return Interpretation(
        category=category if category in CATEGORY_VALUES else fallback.category,
        frequency=frequency if frequency in FREQUENCY_VALUES else fallback.frequency,
        action=str(data.get("action") or fallback.action)[:200],
        summary=str(data.get("summary") or fallback.summary)[:300],
    )

def estimate_carbon_savings(interpretation: Interpretation, duration: Optional[str] = "1 month") -> CarbonEstimate:
    """per_period is kg CO2 per occurrence; total covers every occurrence within the duration."""
    per_period = EMISSION_FACTORS[interpretation.category]

    client = get_ai_client()
    if client:
        system_prompt = """
        You estimate avoided greenhouse-gas emissions for one occurrence of a personal action.
        Reply with JSON only: {"per_period_kg": <number>}
        """
        user_prompt = (
            f"ACTION: {interpretation.action}\nCATEGORY: {interpretation.category.value}\n"
            f"FREQUENCY: {interpretation.frequency.value}"
        )
        data = _call_ai(client, system_prompt, user_prompt)
        try:
            candidate = float(data.get("per_period_kg", per_period))
        except (TypeError, ValueError):
            candidate = None
        if candidate is not None and math.isfinite(candidate) and 0 < candidate <= MAX_PER_PERIOD_KG:
            per_period = candidate
        else:
            logger.warning(f"Ignoring unusable carbon estimate from AI: {data}")

    total = per_period * occurrences_in(interpretation.frequency, duration)
    return CarbonEstimate(per_period=round(per_period, 2), total=round(total, 2), unit="kg CO2")

def suggest_milestones(text: str, interpretation: Interpretation, estimate: Optional[CarbonEstimate] = None,
                       duration: Optional[str] = "1 month") -> List[MilestoneSuggestion]:
    estimate = estimate or estimate_carbon_savings(interpretation, duration)
    client = get_ai_client()
    if not client:
        return _heuristic_milestones(interpretation, estimate, duration)

    system_prompt = f"""
    You break a sustainability commitment into up to {MAX_MILESTONES} motivating milestones.
    target_value is the number of times the action must be performed to reach the milestone.
    Reply with JSON only:
    {{"milestones": [{{"title": "...", "description": "...", "target_value": 1}}]}}
    """
    user_prompt = (
        f"COMMITMENT: {text[:1000]}\nFREQUENCY: {interpretation.frequency.value}\n"
        f"DURATION: {duration or '1 month'}"
    )
    data = _call_ai(client, system_prompt, user_prompt)
    raw = data.get("milestones")
    suggestions: List[MilestoneSuggestion] = []
    for item in raw if isinstance(raw, list) else []:
        try:
            suggestion = MilestoneSuggestion.model_validate({
                "title": str(item.get("title", ""))[:120] or "Milestone",
                "description": str(item.get("description", "")),
                "target_value": min(MAX_TARGET_VALUE, max(1, int(item.get("target_value", 1)))),
            })
        except (AttributeError, TypeError, ValueError, OverflowError, ValidationError):
            continue
        suggestion.estimated_carbon_savings = round(suggestion.target_value * estimate.per_period, 2)
        suggestions.append(suggestion)

    if not suggestions:
        return _heuristic_milestones(interpretation, estimate, duration)
    return sorted(suggestions, key=lambda s: s.target_value)[:MAX_MILESTONES]
