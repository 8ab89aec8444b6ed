"""Models for nutrition estimates decoded from completion text."""

from pydantic import BaseModel, Field


class NutritionEstimate(BaseModel):
    """Unverified nutrition facts produced by a language model."""

    food_name: str
    protein: float = Field(default=0.0, ge=0.0)
    calories: float = Field(default=0.0, ge=0.0)
    carbs: float = Field(default=0.0, ge=0.0)
    fat: float = Field(default=0.0, ge=0.0)
    serving_size: float = Field(default=1.0, ge=0.0)
    unit: str = "serving"


class DecodeResult(BaseModel):
    """Decoded estimate and the fields that fell back to defaults."""

    estimate: NutritionEstimate
    defaulted_fields: list[str] = Field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        """Return True when any field could not be read from the text."""
        return bool(self.defaulted_fields)
