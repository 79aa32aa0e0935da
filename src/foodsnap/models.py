"""
Pydantic models describing the sections of a FoodSnap snapshot.

The snapshot itself stores these sections as plain JSON so that any
client's data round-trips untouched. These models give the sections
a shape where the sync layer needs one: defaults, weight samples,
recent scans and day records.

JSON keys follow the mobile client's naming (camelCase for most
fields, snake_case for the food-recognition payload).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MealType(str, Enum):
    """Meal slots a food entry can be logged under."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class GoalStrategy(str, Enum):
    """How daily nutrition targets are derived."""

    AUTO = "auto"
    MANUAL = "manual"


class _Section(BaseModel):
    """Base for snapshot sections: camelCase aliases, unknown keys kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Reminders(_Section):
    """Water and meal reminder schedule (times are HH:mm)."""

    water: bool = False
    water_interval: int = Field(2, alias="waterInterval")
    water_start: str = Field("09:00", alias="waterStart")
    water_end: str = Field("21:00", alias="waterEnd")
    meals: bool = False
    breakfast_time: str = Field("09:00", alias="breakfastTime")
    lunch_time: str = Field("13:00", alias="lunchTime")
    dinner_time: str = Field("19:00", alias="dinnerTime")


class UnlockedBadge(_Section):
    badge_id: str = Field(alias="badgeId")
    unlocked_at: int = Field(alias="unlockedAt")


class Profile(_Section):
    """Physical attributes and preferences of the user."""

    name: str = "User"
    age: int = 30
    gender: str = "male"
    height_cm: float = Field(175, alias="heightCm")
    weight_kg: float = Field(75, alias="weightKg")
    activity: str = "sedentary"
    goal: str = "maintain"
    reminders: Optional[Reminders] = None
    unlocked_badges: Optional[list[UnlockedBadge]] = Field(
        None, alias="unlockedBadges"
    )


class Goals(_Section):
    """Daily nutrition targets (grams, kcal, water in ml)."""

    calories: int = 2000
    protein: int = 150
    carbs: int = 200
    fat: int = 65
    water: int = 2500
    strategy: GoalStrategy = GoalStrategy.AUTO


class Macros(_Section):
    protein: float = 0
    carbs: float = 0
    fat: float = 0


class FoodResult(_Section):
    """A recognised food item, as returned by the scanner."""

    meal_name: str
    category: MealType = MealType.SNACK
    calories_kcal: float = 0
    macros_g: Macros = Field(default_factory=Macros)
    ingredients: list[str] = Field(default_factory=list)
    confidence: str = "medium"
    notes: str = ""
    quantity_basis: Optional[str] = None


class FoodEntry(FoodResult):
    """A food item logged against a day and meal."""

    id: str
    created_at: int = Field(alias="createdAt")
    grams: Optional[float] = None
    image_uri: Optional[str] = Field(None, alias="imageUri")


class ExerciseEntry(_Section):
    id: str
    type: str
    duration_minutes: float = Field(0, alias="durationMinutes")
    calories_burned: float = Field(0, alias="caloriesBurned")
    created_at: int = Field(0, alias="createdAt")


def _empty_meals() -> dict[MealType, list[FoodEntry]]:
    return {meal: [] for meal in MealType}


class DayLog(_Section):
    """Everything logged on one calendar day."""

    date: str
    meals: dict[MealType, list[FoodEntry]] = Field(default_factory=_empty_meals)
    water_ml: float = 0
    exercises: list[ExerciseEntry] = Field(default_factory=list)

    @property
    def calories_in(self) -> float:
        return sum(e.calories_kcal for entries in self.meals.values() for e in entries)

    @property
    def calories_out(self) -> float:
        return sum(e.calories_burned for e in self.exercises)

    @property
    def entry_count(self) -> int:
        return sum(len(entries) for entries in self.meals.values())


class WeightEntry(_Section):
    date: str
    weight: float
