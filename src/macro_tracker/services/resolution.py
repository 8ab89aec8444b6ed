"""Food resolution workflow: lookup, estimate, review, commit."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date
from uuid import UUID, uuid4

from macro_tracker.domain.errors import (
    DuplicateName,
    InvalidTransition,
    MacroTrackerError,
    PersistenceFailed,
    ValidationRejected,
)
from macro_tracker.domain.foods import DailyLogEntry, FoodRecord, MealType
from macro_tracker.domain.resolution import (
    ResolutionRequest,
    ResolutionState,
    ResolutionView,
    ReviewForm,
)
from macro_tracker.services.catalog import FoodCatalogService
from macro_tracker.services.daily_log import DailyLogService
from macro_tracker.services.estimation import NutritionEstimationService
from macro_tracker.services.nutrition import macros_match_calories
from macro_tracker.services.usage import UsageTracker

NUMERIC_INPUT_RE = re.compile(r"^(\d+(\.\d+)?)?$")
NUMERIC_FIELDS = ("protein", "calories", "carbs", "fat", "serving_size")
TEXT_FIELDS = ("food_name", "unit")

_START_STATES = {
    ResolutionState.IDLE,
    ResolutionState.SEARCHING,
    ResolutionState.DONE,
}

_logger = logging.getLogger(__name__)


def parse_numeric_input(field_name: str, raw: object) -> float:
    """Accept a non-negative integer or decimal; blank means zero."""
    if isinstance(raw, bool):
        raise ValidationRejected(field_name, raw)
    if isinstance(raw, int | float):
        if raw < 0:
            raise ValidationRejected(field_name, raw)
        return float(raw)
    if not isinstance(raw, str) or not NUMERIC_INPUT_RE.match(raw):
        raise ValidationRejected(field_name, raw)
    return float(raw) if raw else 0.0


def _macros_consistent(form: ReviewForm | None) -> bool | None:
    if form is None:
        return None
    return macros_match_calories(form.protein, form.carbs, form.fat, form.calories)


@dataclass
class FoodResolutionWorkflow:
    """Resolves one food the user wants to log.

    Each instance runs its steps strictly in order. Cancelling or closing
    bumps a generation counter; results of calls dispatched under an older
    generation are dropped when they arrive.
    """

    catalog: FoodCatalogService
    estimator: NutritionEstimationService
    daily_log: DailyLogService
    usage: UsageTracker
    today: Callable[[], date] = date.today
    id: UUID = field(default_factory=uuid4)
    state: ResolutionState = ResolutionState.IDLE
    _request: ResolutionRequest | None = field(default=None, init=False)
    _suggestions: list[str] = field(default_factory=list, init=False)
    _form: ReviewForm | None = field(default=None, init=False)
    _food: FoodRecord | None = field(default=None, init=False)
    _entry: DailyLogEntry | None = field(default=None, init=False)
    _error: MacroTrackerError | None = field(default=None, init=False)
    _failed_step: str | None = field(default=None, init=False)
    _generation: int = field(default=0, init=False)

    def search(self, text: str, limit: int = 10) -> list[str]:
        """Return autocomplete suggestions from the local catalog snapshot."""
        self._require(_START_STATES, "search")
        suggestions = self.catalog.search(text.lower(), limit=limit)
        self.state = ResolutionState.SEARCHING
        self._suggestions = suggestions
        return list(self._suggestions)

    async def submit(
        self,
        text: str,
        serving_size: float = 1.0,
        meal_type: MealType = MealType.SNACKS,
        day: date | None = None,
    ) -> ResolutionView:
        """Resolve a typed food name, estimating it when unknown."""
        self._require(_START_STATES, "submit")
        cleaned = text.strip()
        if not cleaned:
            raise ValidationRejected("text", text)
        serving = parse_numeric_input("serving_size", serving_size)
        self._reset()
        self._request = ResolutionRequest(
            text=cleaned,
            serving_size=serving,
            meal_type=meal_type,
            day=day or self.today(),
        )
        try:
            food = self.catalog.find_by_name(cleaned)
        except PersistenceFailed as exc:
            self._fail("lookup", exc)
            return self.view()
        if food is not None:
            self.state = ResolutionState.KNOWN_FOOD
            self._food = food
            return self._commit(food, serving)
        self.state = ResolutionState.UNKNOWN_FOOD
        return await self._estimate()

    def edit(self, field_name: str, raw_value: object) -> ReviewForm:
        """Override one field of the estimate under review."""
        self._require({ResolutionState.REVIEWING_ESTIMATE}, "edit")
        form = self._current_form("edit")
        if field_name in NUMERIC_FIELDS:
            value: object = parse_numeric_input(field_name, raw_value)
        elif field_name in TEXT_FIELDS:
            if not isinstance(raw_value, str):
                raise ValidationRejected(field_name, raw_value)
            value = raw_value
        else:
            raise ValidationRejected(field_name, raw_value)
        self._form = replace(form, **{field_name: value})
        return self._form

    async def confirm(self) -> ResolutionView:
        """Persist the reviewed estimate and log it."""
        self._require({ResolutionState.REVIEWING_ESTIMATE}, "confirm")
        form = self._current_form("confirm")
        if not form.food_name.strip():
            raise ValidationRejected("food_name", form.food_name)
        return self._commit_estimate()

    async def retry(self) -> ResolutionView:
        """Re-run the step that failed with the same input."""
        self._require({ResolutionState.FAILED}, "retry")
        step = self._failed_step
        self._error = None
        self._failed_step = None
        if step == "estimate":
            return await self._estimate()
        if step == "lookup":
            request = self._current_request("retry")
            self.state = ResolutionState.IDLE
            return await self.submit(
                request.text, request.serving_size, request.meal_type, request.day
            )
        if self._food is not None:
            serving = self._form.serving_size if self._form else self._serving()
            return self._commit(self._food, serving)
        return self._commit_estimate()

    def cancel(self) -> ResolutionView:
        """Discard the current resolution and return to idle."""
        self._require(set(ResolutionState) - {ResolutionState.CLOSED}, "cancel")
        self._generation += 1
        self._reset()
        self._request = None
        self.state = ResolutionState.IDLE
        return self.view()

    def close(self) -> None:
        """Tear the workflow down; late results are ignored."""
        self._generation += 1
        self._reset()
        self._request = None
        self.state = ResolutionState.CLOSED

    def view(self) -> ResolutionView:
        """Return a snapshot of the workflow."""
        return ResolutionView(
            id=self.id,
            state=self.state,
            request=self._request,
            suggestions=list(self._suggestions),
            form=self._form,
            food=self._food,
            entry=self._entry,
            error=self._error.user_message if self._error else None,
            error_category=self._error.category if self._error else None,
            macros_consistent=_macros_consistent(self._form),
        )

    async def _estimate(self) -> ResolutionView:
        request = self._current_request("estimate")
        generation = self._generation
        self.state = ResolutionState.ESTIMATING_NUTRITION
        try:
            result = await self.estimator.estimate(request.text)
        except MacroTrackerError as exc:
            if generation != self._generation:
                _logger.info("Ignoring failed estimate for a cancelled resolution")
                return self.view()
            self._fail("estimate", exc)
            return self.view()
        if generation != self._generation:
            _logger.info("Ignoring late estimate for %r", request.text)
            return self.view()
        estimate = result.estimate
        self._form = ReviewForm(
            food_name=estimate.food_name,
            protein=estimate.protein,
            calories=estimate.calories,
            carbs=estimate.carbs,
            fat=estimate.fat,
            serving_size=estimate.serving_size,
            unit=estimate.unit,
            defaulted_fields=tuple(result.defaulted_fields),
        )
        self.state = ResolutionState.REVIEWING_ESTIMATE
        return self.view()

    def _commit_estimate(self) -> ResolutionView:
        form = self._current_form("commit")
        self.state = ResolutionState.COMMITTING
        try:
            food = self._create_or_find(form)
        except PersistenceFailed as exc:
            self._fail("create", exc)
            return self.view()
        self._food = food
        return self._commit(food, form.serving_size)

    def _create_or_find(self, form: ReviewForm) -> FoodRecord:
        try:
            return self.catalog.create(
                {
                    "name": form.food_name,
                    "protein_g": form.protein,
                    "carbs_g": form.carbs,
                    "fat_g": form.fat,
                    "calories": form.calories,
                    "serving_size": form.serving_size,
                    "unit": form.unit,
                }
            )
        except DuplicateName:
            _logger.info("Food %r already exists, reusing it", form.food_name)
            existing = self.catalog.find_by_name(form.food_name)
            if existing is None:
                raise PersistenceFailed(
                    f"Food {form.food_name!r} reported as duplicate but not found"
                ) from None
            return existing

    def _commit(self, food: FoodRecord, serving_size: float) -> ResolutionView:
        request = self._current_request("commit")
        self.state = ResolutionState.COMMITTING
        try:
            entry = self.daily_log.add_entry(
                request.day or self.today(), food, serving_size, request.meal_type
            )
        except PersistenceFailed as exc:
            self._fail("commit", exc)
            return self.view()
        self._entry = entry
        self._food = food
        self.state = ResolutionState.DONE
        try:
            self.usage.track(food.id, food.name, serving_size)
        except MacroTrackerError:
            _logger.exception("Usage tracking failed for food %s", food.id)
        self._form = None
        self._suggestions = []
        return self.view()

    def _fail(self, step: str, exc: MacroTrackerError) -> None:
        _logger.warning("Resolution %s failed at %s: %s", self.id, step, exc)
        self._error = exc
        self._failed_step = step
        self.state = ResolutionState.FAILED

    def _serving(self) -> float:
        return self._request.serving_size if self._request else 1.0

    def _reset(self) -> None:
        self._suggestions = []
        self._form = None
        self._food = None
        self._entry = None
        self._error = None
        self._failed_step = None

    def _require(self, allowed: set[ResolutionState], action: str) -> None:
        if self.state not in allowed:
            raise InvalidTransition(self.state.value, action)

    def _current_form(self, action: str) -> ReviewForm:
        if self._form is None:
            raise InvalidTransition(self.state.value, action)
        return self._form

    def _current_request(self, action: str) -> ResolutionRequest:
        if self._request is None:
            raise InvalidTransition(self.state.value, action)
        return self._request


@dataclass
class ResolutionRegistry:
    """Live workflows addressable by id."""

    factory: Callable[[], FoodResolutionWorkflow]
    max_open: int = 100
    _workflows: dict[UUID, FoodResolutionWorkflow] = field(
        default_factory=dict, init=False
    )

    def open(self) -> FoodResolutionWorkflow:
        """Start a new workflow, evicting the oldest when full."""
        while len(self._workflows) >= self.max_open:
            oldest = next(iter(self._workflows))
            self._workflows.pop(oldest).close()
        workflow = self.factory()
        self._workflows[workflow.id] = workflow
        return workflow

    def get(self, workflow_id: UUID) -> FoodResolutionWorkflow | None:
        """Return a live workflow."""
        return self._workflows.get(workflow_id)

    def close(self, workflow_id: UUID) -> bool:
        """Close and forget a workflow."""
        workflow = self._workflows.pop(workflow_id, None)
        if workflow is None:
            return False
        workflow.close()
        return True
