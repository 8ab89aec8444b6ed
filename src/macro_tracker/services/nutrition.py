"""Serving-size scaling and macro ratio helpers."""

from macro_tracker.domain.foods import FoodRecord
from macro_tracker.domain.nutrition import MacroPercentages, ScaledNutrition

_EXTREME_FACTOR = 10
_MIN_BASE_SERVING = 0.1
_CALORIE_TOLERANCE = 10.0
_KCAL_PER_G = {"protein": 4.0, "carbs": 4.0, "fat": 9.0}


def scale_nutrition(food: FoodRecord, serving_size: float) -> ScaledNutrition:
    """Scale a food's per-serving nutrition to ``serving_size``."""
    requested = max(0.0, serving_size or 0.0)
    base = max(_MIN_BASE_SERVING, food.serving_size or 1.0)
    factor = requested / base
    return ScaledNutrition(
        protein=round(max(0.0, food.protein_g) * factor, 1),
        carbs=round(max(0.0, food.carbs_g) * factor, 1),
        fat=round(max(0.0, food.fat_g) * factor, 1),
        calories=float(round(max(0.0, food.calories) * factor)),
        is_extreme=requested > base * _EXTREME_FACTOR,
    )


def macro_percentages(protein: float, carbs: float, fat: float) -> MacroPercentages:
    """Return the share of energy from each macronutrient."""
    protein_kcal = protein * _KCAL_PER_G["protein"]
    carbs_kcal = carbs * _KCAL_PER_G["carbs"]
    fat_kcal = fat * _KCAL_PER_G["fat"]
    total = protein_kcal + carbs_kcal + fat_kcal
    if total == 0:
        return MacroPercentages(protein=0, carbs=0, fat=0)
    return MacroPercentages(
        protein=round(protein_kcal / total * 100),
        carbs=round(carbs_kcal / total * 100),
        fat=round(fat_kcal / total * 100),
    )


def macros_match_calories(
    protein: float, carbs: float, fat: float, calories: float
) -> bool:
    """Return True when macros account for the calories within tolerance."""
    computed = (
        protein * _KCAL_PER_G["protein"]
        + carbs * _KCAL_PER_G["carbs"]
        + fat * _KCAL_PER_G["fat"]
    )
    return abs(computed - calories) <= _CALORIE_TOLERANCE
