"""Supabase implementation for frequently used foods."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from macro_tracker.adapters.supabase_errors import store_errors
from macro_tracker.domain.usage import UsageRecord
from macro_tracker.services.usage import UsageRepository

_TABLE = "frequently_used_foods"


@dataclass
class SupabaseUsageRepository(UsageRepository):
    """Supabase-backed repository for usage records."""

    client: Client

    def get(self, food_id: int) -> UsageRecord | None:
        """Return the usage record for a food, if present."""
        with store_errors(f"select {_TABLE}"):
            response = (
                self.client.table(_TABLE)
                .select("*")
                .eq("food_id", food_id)
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_usage(response.data[0])

    def upsert(self, record: UsageRecord) -> None:
        """Insert or update the usage row for a food."""
        row = {
            "food_id": record.food_id,
            "food_name": record.name,
            "default_serving_size": record.default_serving_size,
            "usage_count": record.use_count,
            "last_used_date": record.last_used_at.isoformat(),
        }
        with store_errors(f"upsert {_TABLE}"):
            existing = (
                self.client.table(_TABLE)
                .select("id")
                .eq("food_id", record.food_id)
                .limit(1)
                .execute()
            )
            if existing.data:
                self.client.table(_TABLE).update(row).eq(
                    "food_id", record.food_id
                ).execute()
            else:
                self.client.table(_TABLE).insert(row).execute()

    def list_all(self) -> list[UsageRecord]:
        """Return every usage row."""
        with store_errors(f"select {_TABLE}"):
            response = (
                self.client.table(_TABLE)
                .select("*")
                .order("last_used_date", desc=True)
                .order("usage_count", desc=True)
                .execute()
            )
        return [_parse_usage(row) for row in response.data or []]

    def update_default_serving_size(self, food_id: int, serving_size: float) -> None:
        """Overwrite a food's default serving size."""
        with store_errors(f"update {_TABLE}"):
            self.client.table(_TABLE).update(
                {"default_serving_size": serving_size}
            ).eq("food_id", food_id).execute()

    def ensure_schema(self) -> None:
        """Create the usage table through its provisioning RPC."""
        with store_errors("rpc create_frequently_used_foods_table"):
            self.client.rpc("create_frequently_used_foods_table", {}).execute()


def _parse_usage(row: dict[str, object]) -> UsageRecord:
    last_used_raw = row.get("last_used_date")
    last_used_at = (
        datetime.fromisoformat(last_used_raw)
        if isinstance(last_used_raw, str) and last_used_raw
        else datetime.min.replace(tzinfo=UTC)
    )
    if last_used_at.tzinfo is None:
        last_used_at = last_used_at.replace(tzinfo=UTC)
    return UsageRecord(
        food_id=int(row["food_id"]),
        name=str(row.get("food_name", "")),
        default_serving_size=float(row.get("default_serving_size") or 1.0),
        use_count=int(row.get("usage_count") or 0),
        last_used_at=last_used_at,
    )
