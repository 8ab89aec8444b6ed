"""Nutrition estimation using a text-completion model."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from macro_tracker.domain.errors import EstimationFailed, ValidationRejected
from macro_tracker.domain.estimation import DecodeResult, NutritionEstimate

SYSTEM_PROMPT = (
    "As a nutritionist, provide protein, calorie, carb, fat, "
    "and measurement content of foods."
)

_logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")

_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "food_name": ("food_name", "foodName", "name", "food"),
    "protein": ("protein", "protein_g", "proteins"),
    "calories": ("calories", "kcal", "energy"),
    "carbs": ("carbs", "carb", "carbohydrates", "carbs_g"),
    "fat": ("fat", "fats", "fat_g"),
    "serving_size": ("serving_size", "measurementSize", "measurement_size", "size"),
    "unit": ("unit", "measurementUnit", "measurement_unit", "measurement"),
}
_NUMERIC_FIELDS = ("protein", "calories", "carbs", "fat")


class CompletionClient(Protocol):
    """Interface for a text-completion service."""

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        system_prompt: str,
        user_message: str,
        temperature: float,
        max_tokens: int,
        top_p: float,
        frequency_penalty: float,
        presence_penalty: float,
    ) -> str:
        """Return the completion text for a single user message."""


@dataclass
class NutritionEstimationService:
    """Builds the estimation prompt and decodes the model's answer."""

    client: CompletionClient
    model: str
    temperature: float = 1.0
    max_tokens: int = 256
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0

    async def complete_raw(self, description: str) -> str:
        """Return the unparsed completion text for a food description."""
        cleaned = description.strip()
        if not cleaned:
            raise ValidationRejected("description", description)
        try:
            return await self.client.complete(
                model=self.model,
                system_prompt=SYSTEM_PROMPT,
                user_message=build_user_message(cleaned),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                top_p=self.top_p,
                frequency_penalty=self.frequency_penalty,
                presence_penalty=self.presence_penalty,
            )
        except Exception as exc:
            _logger.warning("Completion request failed for %r: %s", cleaned, exc)
            raise EstimationFailed(
                "Error fetching data. Please try again later."
            ) from exc

    async def estimate(self, description: str) -> DecodeResult:
        """Estimate nutrition facts with a single completion call."""
        text = await self.complete_raw(description)
        result = decode_estimate(text, fallback_name=description.strip())
        if result.is_partial:
            _logger.info(
                "Partial estimate for %r, defaulted: %s",
                description,
                ", ".join(result.defaulted_fields),
            )
        return result


def build_user_message(description: str) -> str:
    """Return the user message asking for a JSON nutrition estimate."""
    return (
        f"{description}: {{food_name, protein (g, float), calories, "
        "carbs (g, float), fat (g, float), serving_size (float), "
        "measurement (weight/volume)} as JSON."
    )


def decode_estimate(text: str, fallback_name: str) -> DecodeResult:
    """Decode untrusted completion text into an estimate.

    Unreadable numeric fields default to 0, serving size to 1, the unit to
    ``serving`` and the name to ``fallback_name``. Every defaulted field is
    listed on the result.
    """
    raw = _load_object(text)
    if raw is None:
        raw = _scan_fields(text)
    values = _pick_fields(raw)
    if not values:
        raise EstimationFailed("Error parsing data from the nutrition model.")

    defaulted: list[str] = []
    name = values.get("food_name")
    food_name = str(name).strip() if isinstance(name, str) and name.strip() else ""
    if not food_name:
        food_name = fallback_name
        defaulted.append("food_name")

    numbers: dict[str, float] = {}
    for key in _NUMERIC_FIELDS:
        parsed = _parse_number(values.get(key))
        if parsed is None:
            defaulted.append(key)
            parsed = 0.0
        numbers[key] = parsed

    measured_size, measured_unit = _split_measurement(values.get("unit"))
    serving_size = _parse_number(values.get("serving_size"))
    if serving_size is None:
        serving_size = measured_size
    if serving_size is None:
        defaulted.append("serving_size")
        serving_size = 1.0
    unit = measured_unit
    if not unit:
        defaulted.append("unit")
        unit = "serving"

    estimate = NutritionEstimate(
        food_name=food_name,
        protein=numbers["protein"],
        calories=numbers["calories"],
        carbs=numbers["carbs"],
        fat=numbers["fat"],
        serving_size=serving_size,
        unit=unit,
    )
    return DecodeResult(estimate=estimate, defaulted_fields=defaulted)


def _load_object(text: str) -> dict[str, object] | None:
    stripped = _FENCE_RE.sub("", text.strip())
    match = _OBJECT_RE.search(stripped)
    if not match:
        return None
    candidate = match.group(0)
    for attempt in (
        candidate,
        _TRAILING_COMMA_RE.sub(r"\1", candidate),
        _TRAILING_COMMA_RE.sub(r"\1", candidate).replace("'", '"'),
    ):
        try:
            loaded = json.loads(attempt)
        except ValueError:
            continue
        if isinstance(loaded, dict):
            return loaded
    return None


def _scan_fields(text: str) -> dict[str, object]:
    found: dict[str, object] = {}
    for aliases in _FIELD_ALIASES.values():
        for alias in aliases:
            pattern = re.compile(
                rf"[\"']?\b{re.escape(alias)}\b[\"']?\s*[:=]\s*"
                r"(?:\"([^\"]*)\"|'([^']*)'|([^,\n}]+))",
                re.IGNORECASE,
            )
            match = pattern.search(text)
            if match:
                value = next(group for group in match.groups() if group is not None)
                found[alias] = value.strip()
                break
    return found


def _pick_fields(raw: dict[str, object]) -> dict[str, object]:
    lowered = {str(key).lower(): value for key, value in raw.items()}
    picked: dict[str, object] = {}
    for field_name, aliases in _FIELD_ALIASES.items():
        for alias in aliases:
            value = lowered.get(alias.lower())
            if value not in (None, ""):
                picked[field_name] = value
                break
    return picked


def _parse_number(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        return max(0.0, float(value))
    if isinstance(value, str):
        match = _NUMBER_RE.search(value)
        if match:
            return max(0.0, float(match.group(0)))
    return None


def _split_measurement(value: object) -> tuple[float | None, str]:
    """Split ``"100 g"`` into ``(100.0, "g")``; ``"weight"`` keeps no size."""
    if isinstance(value, int | float) and not isinstance(value, bool):
        return max(0.0, float(value)), ""
    if not isinstance(value, str):
        return None, ""
    text = value.strip()
    match = _NUMBER_RE.match(text)
    if match:
        unit = text[match.end() :].strip()
        return max(0.0, float(match.group(0))), unit
    return None, text
