"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime

import pytest

from macro_tracker.config import Settings
from macro_tracker.containers import AppContainer, build_resolution_registry
from macro_tracker.domain.errors import DuplicateName, PersistenceFailed
from macro_tracker.domain.foods import DailyLogEntry, FoodRecord, LoggedFood, MealType
from macro_tracker.domain.templates import MealTemplate
from macro_tracker.domain.usage import UsageRecord
from macro_tracker.services.cache import LocalStorage, QueryCacheManager
from macro_tracker.services.catalog import FoodCatalogService, FoodRepository
from macro_tracker.services.daily_log import DailyLogRepository, DailyLogService
from macro_tracker.services.estimation import (
    CompletionClient,
    NutritionEstimationService,
)
from macro_tracker.services.quick_add import QuickAddService
from macro_tracker.services.schema import SchemaProvisioner
from macro_tracker.services.templates import TemplateRepository, TemplateService
from macro_tracker.services.usage import UsageRepository, UsageTracker

TODAY = date(2024, 3, 15)
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=UTC)

EGGS_COMPLETION = (
    '{"food_name": "Eggs", "protein": 12, "calories": 140, "measurement": "weight"}'
)


@dataclass
class InMemoryLocalStorage(LocalStorage):
    """Dict-backed local storage for tests."""

    items: dict[str, str] = field(default_factory=dict)
    fail_reads: bool = False

    def get_item(self, key: str) -> str | None:
        if self.fail_reads:
            raise OSError("storage unavailable")
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


@dataclass
class InMemoryFoodRepository(FoodRepository):
    """In-memory catalog enforcing case-insensitive unique names."""

    foods: dict[int, FoodRecord] = field(default_factory=dict)
    next_id: int = 1
    fail_inserts: bool = False
    insert_calls: int = 0

    def add(self, name: str, **values: float | str) -> FoodRecord:
        payload: dict[str, object] = {
            "name": name,
            "protein_g": 0.0,
            "carbs_g": 0.0,
            "fat_g": 0.0,
            "calories": 0.0,
            "serving_size": 1.0,
            "unit": "serving",
        }
        payload.update(values)
        return self.insert(payload)

    def find_by_name(self, name: str) -> FoodRecord | None:
        for food in self.foods.values():
            if food.name.lower() == name.lower():
                return food
        return None

    def insert(self, payload: dict[str, object]) -> FoodRecord:
        self.insert_calls += 1
        if self.fail_inserts:
            raise PersistenceFailed("insert failed")
        name = str(payload["name"])
        if self.find_by_name(name) is not None:
            raise DuplicateName(name)
        food = FoodRecord(
            id=self.next_id,
            name=name,
            protein_g=float(payload["protein_g"]),
            carbs_g=float(payload["carbs_g"]),
            fat_g=float(payload["fat_g"]),
            calories=float(payload["calories"]),
            serving_size=float(payload["serving_size"]),
            unit=str(payload["unit"]),
        )
        self.foods[food.id] = food
        self.next_id += 1
        return food

    def update(self, food_id: int, payload: dict[str, object]) -> FoodRecord:
        food = replace(self.foods[food_id], **payload)
        self.foods[food_id] = food
        return food

    def list_all(self) -> list[FoodRecord]:
        return sorted(self.foods.values(), key=lambda food: food.name)

    def delete_by_name(self, name: str) -> None:
        food = self.find_by_name(name)
        if food is not None:
            del self.foods[food.id]


@dataclass
class InMemoryDailyLogRepository(DailyLogRepository):
    """In-memory daily log joined against an in-memory catalog."""

    foods: InMemoryFoodRepository
    entries: list[DailyLogEntry] = field(default_factory=list)
    fail_inserts: bool = False

    def insert(
        self, day: date, food_id: int, serving_size: float, meal_type: MealType
    ) -> DailyLogEntry:
        if self.fail_inserts:
            raise PersistenceFailed("insert failed")
        entry = DailyLogEntry(
            id=len(self.entries) + 1,
            day=day,
            food_id=food_id,
            serving_size=serving_size,
            meal_type=meal_type,
        )
        self.entries.append(entry)
        return entry

    def list_by_day(self, day: date) -> list[LoggedFood]:
        return [
            LoggedFood(entry=entry, food=self.foods.foods[entry.food_id])
            for entry in self.entries
            if entry.day == day and entry.food_id in self.foods.foods
        ]

    def list_all(self) -> list[DailyLogEntry]:
        return list(self.entries)

    def delete(self, entry_id: int) -> None:
        self.entries = [entry for entry in self.entries if entry.id != entry_id]


@dataclass
class InMemoryUsageRepository(UsageRepository):
    """In-memory usage records."""

    records: dict[int, UsageRecord] = field(default_factory=dict)
    schema_calls: int = 0
    fail_schema: bool = False
    fail_upserts: bool = False

    def get(self, food_id: int) -> UsageRecord | None:
        return self.records.get(food_id)

    def upsert(self, record: UsageRecord) -> None:
        if self.fail_upserts:
            raise PersistenceFailed("upsert failed")
        self.records[record.food_id] = record

    def list_all(self) -> list[UsageRecord]:
        return list(self.records.values())

    def update_default_serving_size(self, food_id: int, serving_size: float) -> None:
        record = self.records[food_id]
        self.records[food_id] = replace(record, default_serving_size=serving_size)

    def ensure_schema(self) -> None:
        self.schema_calls += 1
        if self.fail_schema:
            raise PersistenceFailed("rpc failed")


@dataclass
class InMemoryTemplateRepository(TemplateRepository):
    """In-memory meal templates."""

    templates: dict[int, MealTemplate] = field(default_factory=dict)
    next_id: int = 1

    def insert(self, payload: dict[str, object]) -> MealTemplate:
        template = MealTemplate(id=self.next_id, **payload)
        self.templates[template.id] = template
        self.next_id += 1
        return template

    def update(self, template_id: int, payload: dict[str, object]) -> MealTemplate:
        template = replace(self.templates[template_id], **payload)
        self.templates[template_id] = template
        return template

    def delete(self, template_id: int) -> None:
        self.templates.pop(template_id, None)

    def get(self, template_id: int) -> MealTemplate | None:
        return self.templates.get(template_id)

    def list_all(self) -> list[MealTemplate]:
        return sorted(self.templates.values(), key=lambda template: template.name)


@dataclass
class FakeCompletionClient(CompletionClient):
    """Completion client returning canned text and recording calls."""

    response: str = EGGS_COMPLETION
    error: Exception | None = None
    gate: asyncio.Event | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

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
        self.calls.append(
            {
                "model": model,
                "system_prompt": system_prompt,
                "user_message": user_message,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.response


@dataclass
class Services:
    """Services wired against in-memory repositories."""

    storage: InMemoryLocalStorage
    cache: QueryCacheManager
    foods: InMemoryFoodRepository
    daily_log_repository: InMemoryDailyLogRepository
    usage_repository: InMemoryUsageRepository
    template_repository: InMemoryTemplateRepository
    completion_client: FakeCompletionClient
    estimation: NutritionEstimationService
    catalog: FoodCatalogService
    daily_log: DailyLogService
    usage: UsageTracker
    quick_add: QuickAddService
    templates: TemplateService
    schema: SchemaProvisioner


def build_services(completion_client: FakeCompletionClient | None = None) -> Services:
    storage = InMemoryLocalStorage()
    cache = QueryCacheManager(storage=storage, clock=lambda: NOW)
    foods = InMemoryFoodRepository()
    daily_log_repository = InMemoryDailyLogRepository(foods=foods)
    usage_repository = InMemoryUsageRepository()
    template_repository = InMemoryTemplateRepository()
    client = completion_client or FakeCompletionClient()
    estimation = NutritionEstimationService(client=client, model="gpt-4o-mini")
    catalog = FoodCatalogService(foods, cache)
    daily_log = DailyLogService(daily_log_repository, cache)
    schema = SchemaProvisioner(usage_repository)
    usage = UsageTracker(usage_repository, catalog, clock=lambda: NOW, schema=schema)
    return Services(
        storage=storage,
        cache=cache,
        foods=foods,
        daily_log_repository=daily_log_repository,
        usage_repository=usage_repository,
        template_repository=template_repository,
        completion_client=client,
        estimation=estimation,
        catalog=catalog,
        daily_log=daily_log,
        usage=usage,
        quick_add=QuickAddService(catalog, daily_log, usage, today=lambda: TODAY),
        templates=TemplateService(template_repository, cache, catalog, daily_log),
        schema=schema,
    )


@pytest.fixture
def services() -> Services:
    return build_services()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def container(settings: Settings, services: Services) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        cache=services.cache,
        estimation_service=services.estimation,
        catalog_service=services.catalog,
        daily_log_service=services.daily_log,
        usage_tracker=services.usage,
        quick_add_service=services.quick_add,
        template_service=services.templates,
        schema_provisioner=services.schema,
        resolutions=build_resolution_registry(
            services.catalog, services.estimation, services.daily_log, services.usage
        ),
        close_resources=close_resources,
    )
