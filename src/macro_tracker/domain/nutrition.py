"""Nutrition domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ScaledNutrition:
    """Nutrition for a food scaled to a serving size."""

    protein: float
    carbs: float
    fat: float
    calories: float
    is_extreme: bool = False


@dataclass(frozen=True)
class MacroTotals:
    """Summed macronutrients."""

    protein: float
    carbs: float
    fat: float
    calories: float


@dataclass(frozen=True)
class MacroPercentages:
    """Share of energy contributed by each macronutrient."""

    protein: int
    carbs: int
    fat: int
