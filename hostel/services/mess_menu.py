"""
Weekly mess menu and meal ratings.

The menu is one document per weekday holding the four meals. Ratings are one
document per (student, day, meal), so rating again overwrites the earlier
vote instead of stacking.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from ..checks import ensure_admin, ensure_authenticated
from ..errors import InvalidArgument
from ..models import WEEKDAYS, Caller, Collections, Meal, MealRatingValue, derived_id, parse_status
from ..store import SERVER_TIMESTAMP, DocumentStore, FieldFilter, Transaction

logger = logging.getLogger(__name__)

NOT_SCHEDULED = "Not Scheduled"


class MenuItem(BaseModel):
    item: str = ""
    is_special: bool = False


def menu_day_id(day: str) -> str:
    return derived_id("menu", day)


def rating_id(user_id: str, day: str, meal: str) -> str:
    return derived_id("rating", user_id, day, meal)


def parse_day(day: str) -> str:
    normalized = (day or "").strip().lower()
    if normalized not in WEEKDAYS:
        raise InvalidArgument(f"Unknown day: {day!r}")
    return normalized


def parse_meal(meal: str | Meal) -> Meal:
    try:
        return Meal(meal.lower() if isinstance(meal, str) else meal)
    except ValueError:
        raise InvalidArgument(f"Unknown meal: {meal!r}") from None


def current_meal(now: datetime) -> tuple[str, Meal]:
    """The (day, meal) to feature at ``now``.

    Breakfast until 10, lunch until 15, snacks until 18, dinner until 22;
    from 22 onwards the next day's breakfast.
    """
    today = WEEKDAYS[(now.weekday() + 1) % 7]
    hour = now.hour
    if hour >= 22:
        return WEEKDAYS[(WEEKDAYS.index(today) + 1) % 7], Meal.BREAKFAST
    if hour >= 18:
        return today, Meal.DINNER
    if hour >= 15:
        return today, Meal.SNACKS
    if hour >= 10:
        return today, Meal.LUNCH
    return today, Meal.BREAKFAST


class MessMenuService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def get_week(self) -> dict[str, dict[str, MenuItem]]:
        """Menu for every weekday; missing meals come back empty."""
        stored = {s.get("day"): s.data or {} for s in self.store.query(Collections.MESS_MENU)}
        week: dict[str, dict[str, MenuItem]] = {}
        for day in WEEKDAYS:
            data = stored.get(day, {})
            week[day] = {meal.value: MenuItem(**(data.get(meal.value) or {})) for meal in Meal}
        return week

    def set_week(self, actor: Caller, menu: dict[str, dict[str, Any]]) -> None:
        """Replace the given days' menus in one atomic write."""
        ensure_admin(actor)
        documents: dict[str, dict[str, Any]] = {}
        for day, meals in menu.items():
            day = parse_day(day)
            document: dict[str, Any] = {"day": day}
            for meal, entry in (meals or {}).items():
                item = entry if isinstance(entry, MenuItem) else MenuItem(**(entry or {}))
                document[parse_meal(meal).value] = item.model_dump()
            documents[day] = document

        def body(txn: Transaction) -> None:
            for day, document in documents.items():
                txn.set(Collections.MESS_MENU, menu_day_id(day), {**document, "updated_at": SERVER_TIMESTAMP})

        self.store.run_transaction(body)
        logger.info(f"Mess menu updated for {', '.join(documents)} by {actor.email or actor.user_id}")

    def featured(self, now: datetime) -> dict[str, Any]:
        day, meal = current_meal(now)
        item = self.get_week()[day][meal.value]
        return {"day": day, "meal": meal.value, "item": item.item or NOT_SCHEDULED, "is_special": item.is_special}

    def rate_meal(self, caller: Caller, day: str, meal: str | Meal, rating: str | MealRatingValue) -> str:
        caller = ensure_authenticated(caller)
        day = parse_day(day)
        meal = parse_meal(meal)
        value = parse_status(MealRatingValue, rating)
        doc_id = rating_id(caller.user_id, day, meal.value)
        self.store.set(
            Collections.MEAL_RATINGS,
            doc_id,
            {
                "user_id": caller.user_id,
                "day": day,
                "meal": meal.value,
                "rating": value.value,
                "timestamp": SERVER_TIMESTAMP,
            },
        )
        return doc_id

    def own_ratings(self, caller: Caller) -> dict[str, str]:
        """The caller's votes keyed ``"{day}-{meal}"``."""
        caller = ensure_authenticated(caller)
        snapshots = self.store.query(Collections.MEAL_RATINGS, [FieldFilter("user_id", "==", caller.user_id)])
        return {f"{s.get('day')}-{s.get('meal')}": s.get("rating") for s in snapshots}

    def rating_summary(self, actor: Caller) -> list[dict[str, Any]]:
        ensure_admin(actor)
        counts: dict[tuple[str, str], dict[str, int]] = {}
        for snapshot in self.store.query(Collections.MEAL_RATINGS):
            key = (snapshot.get("day"), snapshot.get("meal"))
            bucket = counts.setdefault(key, {MealRatingValue.LIKE.value: 0, MealRatingValue.DISLIKE.value: 0})
            rating = snapshot.get("rating")
            if rating in bucket:
                bucket[rating] += 1

        summary = []
        for day in WEEKDAYS:
            for meal in Meal:
                bucket = counts.get((day, meal.value))
                if bucket:
                    summary.append(
                        {"day": day, "meal": meal.value, "likes": bucket["like"], "dislikes": bucket["dislike"]}
                    )
        return summary
