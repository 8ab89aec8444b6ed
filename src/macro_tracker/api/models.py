"""Pydantic request bodies for the HTTP API."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from macro_tracker.domain.foods import MealType
from macro_tracker.domain.templates import TemplateFood


class QueryOpenAIRequest(BaseModel):
    """Raw completion request."""

    model_config = ConfigDict(populate_by_name=True)

    ai_input_text: str = Field(alias="aiInputText")


class FoodCreate(BaseModel):
    """Explicit catalog food creation."""

    name: str
    protein_g: float = Field(default=0.0, ge=0.0)
    carbs_g: float = Field(default=0.0, ge=0.0)
    fat_g: float = Field(default=0.0, ge=0.0)
    calories: float = Field(default=0.0, ge=0.0)
    serving_size: float = Field(default=1.0, ge=0.0)
    unit: str = "serving"


class FoodUpdate(BaseModel):
    """Partial catalog food edit."""

    name: str | None = None
    protein_g: float | None = Field(default=None, ge=0.0)
    carbs_g: float | None = Field(default=None, ge=0.0)
    fat_g: float | None = Field(default=None, ge=0.0)
    calories: float | None = Field(default=None, ge=0.0)
    serving_size: float | None = Field(default=None, ge=0.0)
    unit: str | None = None


class ResolutionSubmit(BaseModel):
    """Food name typed by the user."""

    text: str
    serving_size: float | str = 1.0
    meal_type: MealType = MealType.SNACKS
    day: date | None = None


class ResolutionOpen(BaseModel):
    """Opens a workflow, optionally submitting straight away."""

    text: str | None = None
    serving_size: float | str = 1.0
    meal_type: MealType = MealType.SNACKS
    day: date | None = None


class ResolutionEdit(BaseModel):
    """One field override on the review form."""

    field: str
    value: str | float


class QuickAddRequest(BaseModel):
    """Re-log a frequent food."""

    serving_size: float | None = Field(default=None, ge=0.0)
    meal_type: MealType = MealType.SNACKS
    day: date | None = None


class TemplateCreate(BaseModel):
    """New meal template, from explicit foods or a logged day."""

    name: str
    description: str | None = None
    category: str | None = None
    foods: list[TemplateFood] = Field(default_factory=list)
    from_day: date | None = None


class TemplateUpdate(BaseModel):
    """Partial meal template edit."""

    name: str | None = None
    description: str | None = None
    category: str | None = None
    foods: list[TemplateFood] | None = None


class TemplateApply(BaseModel):
    """Log a template's foods to a day."""

    day: date | None = None
    meal_type: MealType = MealType.BREAKFAST
