import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Recipe(Base):
    __tablename__ = "recipes"
    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), index=True, nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    prep_time = Column(Integer, nullable=False)
    cook_time = Column(Integer, nullable=False)
    servings = Column(Integer, nullable=False)
    difficulty = Column(String(10), nullable=False)
    image_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    # deletes are left to the foreign key; ordering settles the tie-break
    ingredients = relationship(
        "Ingredient",
        order_by=lambda: [Ingredient.order_index, Ingredient.position],
        passive_deletes=True,
        lazy="selectin",
    )


class Ingredient(Base):
    __tablename__ = "ingredients"
    id = Column(String(36), primary_key=True, default=_new_id)
    recipe_id = Column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name = Column(String(200), nullable=False)
    amount = Column(Float, nullable=False)
    unit = Column(String(50), nullable=False)
    order_index = Column(Integer, nullable=False)
    position = Column(Integer, nullable=False, default=0)  # index in the writing array
