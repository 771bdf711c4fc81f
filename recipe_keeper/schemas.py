from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

REQUIRED_FIELDS = ("title", "prep_time", "cook_time", "servings", "difficulty")
# an empty string counts as absent for these
BLANK_IS_MISSING = ("title", "difficulty")

MISSING_FIELDS_MESSAGE = (
    "Missing required fields: title, prep_time, cook_time, servings, difficulty"
)
INVALID_DIFFICULTY_MESSAGE = "Invalid difficulty. Must be: easy, medium, or hard"
INVALID_DATA_MESSAGE = "Invalid recipe data"

# INTEGER column range on Postgres
MAX_INT = 2**31 - 1


class Difficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class IngredientIn(BaseModel):
    name: str = Field(..., min_length=1, json_schema_extra={"example": "Salt"})
    amount: float = Field(..., gt=0, json_schema_extra={"example": 1})
    unit: str = Field(..., min_length=1, json_schema_extra={"example": "tsp"})
    order_index: Optional[int] = Field(None, ge=-MAX_INT - 1, le=MAX_INT)


class RecipeCreate(BaseModel):
    title: str = Field(..., min_length=1, json_schema_extra={"example": "Soup"})
    description: Optional[str] = None
    prep_time: int = Field(..., gt=0, le=MAX_INT, json_schema_extra={"example": 10})
    cook_time: int = Field(..., gt=0, le=MAX_INT, json_schema_extra={"example": 20})
    servings: int = Field(..., gt=0, le=MAX_INT, json_schema_extra={"example": 4})
    difficulty: Difficulty
    image_url: Optional[str] = None
    ingredients: List[IngredientIn] = Field(default_factory=list)


class RecipeUpdate(BaseModel):
    """Partial update; only the keys present in the body are applied."""

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    prep_time: Optional[int] = Field(None, gt=0, le=MAX_INT)
    cook_time: Optional[int] = Field(None, gt=0, le=MAX_INT)
    servings: Optional[int] = Field(None, gt=0, le=MAX_INT)
    difficulty: Optional[Difficulty] = None
    image_url: Optional[str] = None
    ingredients: Optional[List[IngredientIn]] = None

    @field_validator(
        "title", "prep_time", "cook_time", "servings", "difficulty", "ingredients",
        mode="before",
    )
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class Ingredient(BaseModel):
    id: str
    recipe_id: str
    name: str
    amount: float
    unit: str
    order_index: int

    model_config = ConfigDict(from_attributes=True)


class Recipe(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    prep_time: int
    cook_time: int
    servings: int
    difficulty: Difficulty
    image_url: Optional[str] = None
    created_at: datetime
    ingredients: List[Ingredient] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class DeleteResult(BaseModel):
    message: str


def _summarize(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def _to_validation_error(exc: PydanticValidationError, check_missing: bool) -> ValidationError:
    errors = exc.errors()
    if check_missing:
        for err in errors:
            field = err["loc"][0] if err["loc"] else None
            value = err.get("input")
            blank = field in BLANK_IS_MISSING and value == ""
            if field in REQUIRED_FIELDS and (err["type"] == "missing" or value is None or blank):
                return ValidationError(MISSING_FIELDS_MESSAGE)
    for err in errors:
        if err["loc"] and err["loc"][0] == "difficulty" and err["type"] == "enum":
            return ValidationError(INVALID_DIFFICULTY_MESSAGE)
    return ValidationError(INVALID_DATA_MESSAGE, _summarize(exc))


def parse_create(payload: Any) -> RecipeCreate:
    try:
        return RecipeCreate.model_validate(payload)
    except PydanticValidationError as exc:
        raise _to_validation_error(exc, check_missing=True)


def parse_update(payload: Any) -> RecipeUpdate:
    try:
        return RecipeUpdate.model_validate(payload)
    except PydanticValidationError as exc:
        raise _to_validation_error(exc, check_missing=False)
