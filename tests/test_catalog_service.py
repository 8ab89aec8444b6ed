"""Tests for the food catalog service."""

import pytest

from macro_tracker.domain.errors import DuplicateName, ValidationRejected
from macro_tracker.services.catalog import FOOD_DATABASE_KEY, normalize_food_payload
from tests.conftest import Services


def test_find_by_name_is_case_insensitive(services: Services) -> None:
    services.foods.add("Greek Yogurt", protein_g=10)

    found = services.catalog.find_by_name("  greek YOGURT ")

    assert found is not None
    assert found.name == "Greek Yogurt"
    assert services.catalog.find_by_name("yogurt") is None
    assert services.catalog.find_by_name("") is None


def test_create_rejects_duplicate_names(services: Services) -> None:
    services.catalog.create({"name": "Oats", "protein_g": 5})

    with pytest.raises(DuplicateName):
        services.catalog.create({"name": "OATS"})

    assert len(services.foods.foods) == 1


def test_create_returns_id_and_invalidates_list(services: Services) -> None:
    assert services.catalog.list_foods() == []
    assert services.cache.get(FOOD_DATABASE_KEY) == []

    created = services.catalog.create({"name": "Rice", "calories": 130})

    assert created.id == 1
    assert services.cache.get(FOOD_DATABASE_KEY) is None
    assert [food.name for food in services.catalog.list_foods()] == ["Rice"]


def test_list_is_served_from_cache(services: Services) -> None:
    services.foods.add("Banana")
    services.catalog.list_foods()
    services.foods.add("Apple")

    assert [food.name for food in services.catalog.list_foods()] == ["Banana"]

    services.catalog.refresh_snapshot()
    assert [food.name for food in services.catalog.list_foods()] == [
        "Apple",
        "Banana",
    ]


def test_search_matches_substrings_prefix_first(services: Services) -> None:
    for name in ("Chicken Breast", "Fried Chicken", "Chickpeas", "Rice"):
        services.foods.add(name)
    services.catalog.refresh_snapshot()

    assert services.catalog.search("chick") == [
        "Chicken Breast",
        "Chickpeas",
        "Fried Chicken",
    ]
    assert services.catalog.search("CHICK", limit=1) == ["Chicken Breast"]
    assert services.catalog.search("  ") == []
    with pytest.raises(ValidationRejected):
        services.catalog.search("chick", limit=-1)


def test_delete_removes_food_and_snapshot(services: Services) -> None:
    services.catalog.create({"name": "Tofu"})

    services.catalog.delete("tofu")

    assert services.catalog.find_by_name("Tofu") is None
    assert services.catalog.search("tof") == []


def test_update_applies_partial_patch(services: Services) -> None:
    food = services.catalog.create({"name": "Milk", "protein_g": 3})

    updated = services.catalog.update(food.id, {"protein_g": "3.4", "unit": "ml"})

    assert updated.protein_g == 3.4
    assert updated.unit == "ml"
    assert updated.name == "Milk"


def test_normalize_food_payload_defaults_and_validation() -> None:
    payload = normalize_food_payload({"name": " Egg "})

    assert payload == {
        "name": "Egg",
        "protein_g": 0.0,
        "carbs_g": 0.0,
        "fat_g": 0.0,
        "calories": 0.0,
        "serving_size": 1.0,
        "unit": "serving",
    }
    with pytest.raises(ValidationRejected):
        normalize_food_payload({"name": ""})
    with pytest.raises(ValidationRejected):
        normalize_food_payload({"name": "Egg", "protein_g": -1})
    with pytest.raises(ValidationRejected):
        normalize_food_payload({"name": "Egg", "calories": "lots"})
