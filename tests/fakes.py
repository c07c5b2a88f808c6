"""In-memory stand-ins for the Motor repositories and the estimation backend."""

from datetime import timedelta
from typing import Any

from nutrilog.models.catalog import (
    DayNutrient,
    Food,
    FoodEntry,
    FoodNutrientRow,
    Nutrient,
    NutrientEstimate,
)
from nutrilog.models.food import Classification, EstimatedItem
from nutrilog.models.job import OPEN_STATUSES, Job, JobStatus, QueueMessage, allowed_sources
from nutrilog.services.estimation.base import EstimationClient
from nutrilog.utils.dates import minutes_ago, utc_now


class FakeJobRepository:
    def __init__(self):
        self.docs: dict[str, dict[str, Any]] = {}
        self._counter = 0

    async def create_job(self, user_id, job_type, payload=None, *, job_id=None):
        self._counter += 1
        job_id = job_id or f"job-{self._counter}"
        payload = payload or {}
        # Distinct, increasing creation times keep newest-first ordering stable
        now = utc_now() + timedelta(microseconds=self._counter)
        self.docs[job_id] = {
            "id": job_id,
            "user_id": user_id,
            "type": str(getattr(job_type, "value", job_type)),
            "status": JobStatus.PENDING,
            "payload": dict(payload),
            "result": None,
            "error": None,
            "attempt": int(payload.get("attempt") or 0),
            "created_at": now,
            "updated_at": now,
        }
        return job_id

    def age(self, job_id: str, minutes: float) -> None:
        self.docs[job_id]["created_at"] = minutes_ago(minutes)

    def set_status(self, job_id: str, status: JobStatus) -> None:
        self.docs[job_id]["status"] = status

    async def get_job(self, job_id):
        doc = self.docs.get(job_id)
        return Job.model_validate(doc) if doc else None

    async def get_job_for_user(self, job_id, user_id):
        doc = self.docs.get(job_id)
        if doc is None or doc["user_id"] != user_id:
            return None
        return Job.model_validate(doc)

    async def get_jobs_by_user(self, user_id, limit=None):
        docs = sorted(
            (doc for doc in self.docs.values() if doc["user_id"] == user_id),
            key=lambda doc: doc["created_at"],
            reverse=True,
        )
        if limit:
            docs = docs[:limit]
        return [Job.model_validate(doc) for doc in docs]

    async def transition(
        self,
        job_id,
        status,
        *,
        result=None,
        error=None,
        clear_error=False,
        attempt=None,
        started_at=None,
        completed_at=None,
    ):
        doc = self.docs.get(job_id)
        if doc is None or doc["status"] not in allowed_sources(status):
            return False
        doc["status"] = status
        doc["updated_at"] = utc_now()
        if result is not None:
            doc["result"] = result
        if clear_error:
            doc["error"] = None
        elif error is not None:
            doc["error"] = error
        if attempt is not None:
            doc["attempt"] = attempt
        if started_at is not None:
            doc["started_at"] = started_at
        if completed_at is not None:
            doc["completed_at"] = completed_at
        return True

    async def count_processing_jobs(self, user_id):
        return sum(
            1
            for doc in self.docs.values()
            if doc["user_id"] == user_id and doc["status"] == JobStatus.PROCESSING
        )

    async def get_open_job_ids(self, user_id):
        return [
            doc["id"]
            for doc in self.docs.values()
            if doc["user_id"] == user_id and doc["status"] in OPEN_STATUSES
        ]

    async def get_users_with_open_jobs(self):
        return sorted({doc["user_id"] for doc in self.docs.values() if doc["status"] in OPEN_STATUSES})

    async def mark_stale_jobs(self, user_id, cutoff_minutes=30):
        cutoff = minutes_ago(cutoff_minutes)
        now = utc_now()
        consumed = 0
        for doc in self.docs.values():
            if (
                doc["user_id"] == user_id
                and doc["status"] in OPEN_STATUSES
                and doc["created_at"] < cutoff
            ):
                doc["status"] = JobStatus.CONSUMED
                doc["error"] = doc["error"] or f"Timed out after {cutoff_minutes} minutes"
                doc.setdefault("completed_at", now)
                consumed += 1
        return consumed

    async def prune_jobs(self, user_id, keep=500):
        jobs = await self.get_jobs_by_user(user_id)
        stale = [job.id for job in jobs[max(keep, 0):]]
        for job_id in stale:
            del self.docs[job_id]
        return len(stale)

    async def delete_job(self, job_id, user_id):
        doc = self.docs.get(job_id)
        if doc is None or doc["user_id"] != user_id:
            return False
        del self.docs[job_id]
        return True


class FakeJobSlotRepository:
    def __init__(self):
        self.slots: dict[str, list[str]] = {}

    async def acquire(self, user_id, job_id, limit):
        held = self.slots.setdefault(user_id, [])
        if job_id in held:
            return True
        if len(held) >= limit:
            return False
        held.append(job_id)
        return True

    async def release(self, user_id, job_id):
        held = self.slots.get(user_id, [])
        if job_id in held:
            held.remove(job_id)

    async def retain(self, user_id, open_job_ids):
        self.slots[user_id] = [
            job_id for job_id in self.slots.get(user_id, []) if job_id in open_job_ids
        ]


class FakeQueueRepository:
    def __init__(self):
        self.sent: list[tuple[QueueMessage, float]] = []

    async def push(self, message, delay_seconds=0):
        self.sent.append((message, delay_seconds))
        return f"msg-{len(self.sent)}"

    async def claim_next(self):
        for index, (message, delay) in enumerate(self.sent):
            if delay <= 0:
                del self.sent[index]
                return message
        return None


class FakeNutrientRepository:
    def __init__(self, nutrients: list[Nutrient]):
        self.nutrients = list(nutrients)
        self.loads = 0

    async def get_nutrients(self):
        self.loads += 1
        return list(self.nutrients)


class FakeFoodRepository:
    def __init__(self, nutrients: list[Nutrient] | None = None):
        self.foods: dict[str, Food] = {}
        self.profiles: dict[str, dict[str, float]] = {}
        self._nutrients = {nutrient.id: nutrient for nutrient in nutrients or []}
        self._counter = 0

    def seed(self, food_id: str, name: str, profile: dict[str, float] | None = None) -> None:
        self.foods[food_id] = Food(id=food_id, name=name, normalized_name=name.lower())
        if profile:
            self.profiles[food_id] = dict(profile)

    async def search_foods_by_name(self, query, limit=5):
        needle = query.strip().lower()
        if not needle:
            return []
        matches = [food for food in self.foods.values() if needle in food.normalized_name]
        matches.sort(key=lambda food: (len(food.name), food.id))
        return matches[:limit]

    async def add_food(self, name, *, source="ai", source_detail=None, is_estimated=True):
        self._counter += 1
        food_id = f"food-{self._counter}"
        self.foods[food_id] = Food(
            id=food_id,
            name=name,
            normalized_name=name.strip().lower(),
            source=source,
            source_detail=source_detail or source,
            is_estimated=is_estimated,
        )
        return food_id

    async def add_food_nutrients(self, food_id, amounts):
        profile = self.profiles.setdefault(food_id, {})
        inserted = 0
        for amount in amounts:
            if amount.nutrient_id not in profile:
                profile[amount.nutrient_id] = amount.amount_per_100g
                inserted += 1
        return inserted

    async def get_food_nutrients(self, food_id):
        rows = []
        for nutrient_id, value in self.profiles.get(food_id, {}).items():
            nutrient = self._nutrients.get(nutrient_id)
            rows.append(
                FoodNutrientRow(
                    food_id=food_id,
                    nutrient_id=nutrient_id,
                    amount_per_100g=value,
                    name=nutrient.name if nutrient else None,
                    unit=nutrient.unit if nutrient else None,
                )
            )
        return rows

    async def get_nutrient_amounts(self, food_ids, nutrient_ids):
        wanted = set(nutrient_ids)
        return [
            FoodNutrientRow(food_id=food_id, nutrient_id=nutrient_id, amount_per_100g=value)
            for food_id in food_ids
            for nutrient_id, value in self.profiles.get(food_id, {}).items()
            if nutrient_id in wanted
        ]


class FakeFoodEntryRepository:
    def __init__(self, foods: FakeFoodRepository, nutrients: list[Nutrient]):
        self.foods = foods
        self.nutrients = {nutrient.id: nutrient for nutrient in nutrients}
        self.entries: list[FoodEntry] = []

    async def log_entry(
        self,
        user_id,
        food_id,
        entry_date,
        grams,
        *,
        entry_time=None,
        meal_type="uncategorized",
        source="manual",
    ):
        entry_id = f"entry-{len(self.entries) + 1}"
        food = self.foods.foods.get(food_id)
        self.entries.append(
            FoodEntry(
                id=entry_id,
                user_id=user_id,
                food_id=food_id,
                food_name=food.name if food else None,
                entry_date=entry_date,
                entry_time=entry_time,
                grams=grams,
                meal_type=meal_type,
                source=source,
            )
        )
        return entry_id

    async def get_entries_by_date(self, user_id, entry_date):
        return [
            entry
            for entry in self.entries
            if entry.user_id == user_id and entry.entry_date == entry_date
        ]

    async def get_day_nutrients(self, user_id, entry_date):
        totals: dict[str, float] = {}
        for entry in await self.get_entries_by_date(user_id, entry_date):
            for nutrient_id, value in self.foods.profiles.get(entry.food_id, {}).items():
                totals[nutrient_id] = totals.get(nutrient_id, 0.0) + value * entry.grams / 100
        rows = [
            DayNutrient(
                nutrient_id=nutrient_id,
                name=self.nutrients[nutrient_id].name,
                unit=self.nutrients[nutrient_id].unit,
                total_amount=total,
            )
            for nutrient_id, total in totals.items()
            if nutrient_id in self.nutrients
        ]
        return sorted(rows, key=lambda row: row.name)


class FakeUnitOfWork:
    def __init__(self, nutrients: list[Nutrient] | None = None):
        nutrients = nutrients or []
        self.jobs = FakeJobRepository()
        self.job_slots = FakeJobSlotRepository()
        self.queue = FakeQueueRepository()
        self.nutrients = FakeNutrientRepository(nutrients)
        self.foods = FakeFoodRepository(nutrients)
        self.food_entries = FakeFoodEntryRepository(self.foods, nutrients)


class FakeEstimationClient(EstimationClient):
    """
    Scripted backend.

    ``extractions`` maps ``(text, strict_grams)`` to raw item dicts; anything
    not scripted extracts nothing.
    """

    def __init__(
        self,
        *,
        classification: Classification | None = None,
        extractions: dict[tuple[str, bool], list[dict]] | None = None,
        image_items: list[list[dict]] | None = None,
        research: dict[str, list[dict]] | None = None,
    ):
        self.classification = classification
        self.extractions = extractions or {}
        self.image_items = list(image_items or [])
        self.research = research or {}
        self.calls: list[tuple] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def respond(self, messages, *, web_search=False):
        return None

    async def classify(self, text):
        self.calls.append(("classify", text))
        return self.classification

    async def extract_items(self, text, *, strict_grams=False):
        self.calls.append(("extract", text, strict_grams))
        raw = self.extractions.get((text, strict_grams), [])
        return [EstimatedItem.from_raw(item) for item in raw]

    async def extract_image_items(self, image_url, hint=None):
        self.calls.append(("image", image_url, hint))
        raw = self.image_items.pop(0) if self.image_items else []
        return [EstimatedItem.from_raw(item) for item in raw]

    async def research_nutrients(self, name, nutrient_names):
        self.calls.append(("research", name))
        return [NutrientEstimate(**entry) for entry in self.research.get(name, [])]

    def extraction_calls(self) -> list[tuple[str, bool]]:
        return [(call[1], call[2]) for call in self.calls if call[0] == "extract"]
