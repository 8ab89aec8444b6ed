"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from macro_tracker.adapters.file_local_storage import FileLocalStorage
from macro_tracker.adapters.openai_completion_client import OpenAICompletionClient
from macro_tracker.adapters.supabase_daily_log_repository import (
    SupabaseDailyLogRepository,
)
from macro_tracker.adapters.supabase_food_repository import SupabaseFoodRepository
from macro_tracker.adapters.supabase_template_repository import (
    SupabaseTemplateRepository,
)
from macro_tracker.adapters.supabase_usage_repository import SupabaseUsageRepository
from macro_tracker.config import Settings
from macro_tracker.services.cache import QueryCacheManager
from macro_tracker.services.catalog import FoodCatalogService
from macro_tracker.services.daily_log import DailyLogService
from macro_tracker.services.estimation import NutritionEstimationService
from macro_tracker.services.quick_add import QuickAddService
from macro_tracker.services.resolution import (
    FoodResolutionWorkflow,
    ResolutionRegistry,
)
from macro_tracker.services.schema import SchemaProvisioner
from macro_tracker.services.templates import TemplateService
from macro_tracker.services.usage import UsageTracker


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    cache: QueryCacheManager
    estimation_service: NutritionEstimationService
    catalog_service: FoodCatalogService
    daily_log_service: DailyLogService
    usage_tracker: UsageTracker
    quick_add_service: QuickAddService
    template_service: TemplateService
    schema_provisioner: SchemaProvisioner
    resolutions: ResolutionRegistry
    close_resources: Callable[[], Awaitable[None]]


def build_resolution_registry(
    catalog_service: FoodCatalogService,
    estimation_service: NutritionEstimationService,
    daily_log_service: DailyLogService,
    usage_tracker: UsageTracker,
) -> ResolutionRegistry:
    """Create a registry whose workflows share the given services."""

    def factory() -> FoodResolutionWorkflow:
        return FoodResolutionWorkflow(
            catalog=catalog_service,
            estimator=estimation_service,
            daily_log=daily_log_service,
            usage=usage_tracker,
        )

    return ResolutionRegistry(factory=factory)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    food_repository = SupabaseFoodRepository(supabase_client)
    daily_log_repository = SupabaseDailyLogRepository(supabase_client)
    usage_repository = SupabaseUsageRepository(supabase_client)
    template_repository = SupabaseTemplateRepository(supabase_client)
    cache = QueryCacheManager(
        storage=FileLocalStorage.create(resolved_settings.cache_dir),
        stale_seconds=resolved_settings.cache_stale_seconds,
    )
    completion_client = OpenAICompletionClient.create(
        resolved_settings.openai_api_key,
        timeout_seconds=resolved_settings.estimation_timeout_seconds,
    )
    estimation_service = NutritionEstimationService(
        client=completion_client,
        model=resolved_settings.openai_model,
        temperature=resolved_settings.openai_temperature,
        max_tokens=resolved_settings.openai_max_tokens,
        top_p=resolved_settings.openai_top_p,
        frequency_penalty=resolved_settings.openai_frequency_penalty,
        presence_penalty=resolved_settings.openai_presence_penalty,
    )
    catalog_service = FoodCatalogService(food_repository, cache)
    daily_log_service = DailyLogService(daily_log_repository, cache)
    schema_provisioner = SchemaProvisioner(usage_repository)
    usage_tracker = UsageTracker(
        repository=usage_repository,
        catalog=catalog_service,
        half_life_days=resolved_settings.usage_half_life_days,
        schema=schema_provisioner,
    )
    quick_add_service = QuickAddService(
        catalog=catalog_service,
        daily_log=daily_log_service,
        usage=usage_tracker,
    )
    template_service = TemplateService(
        repository=template_repository,
        cache=cache,
        catalog=catalog_service,
        daily_log=daily_log_service,
    )

    async def close_resources() -> None:
        await completion_client.close()

    return AppContainer(
        settings=resolved_settings,
        cache=cache,
        estimation_service=estimation_service,
        catalog_service=catalog_service,
        daily_log_service=daily_log_service,
        usage_tracker=usage_tracker,
        quick_add_service=quick_add_service,
        template_service=template_service,
        schema_provisioner=schema_provisioner,
        resolutions=build_resolution_registry(
            catalog_service, estimation_service, daily_log_service, usage_tracker
        ),
        close_resources=close_resources,
    )
