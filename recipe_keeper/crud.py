import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .auth import Principal
from .errors import NotFound, StorageError

logger = logging.getLogger(__name__)

RECIPE_COLUMNS = ("title", "description", "prep_time", "cook_time", "servings", "difficulty", "image_url")


def _ingredient_rows(recipe_id: str, ingredients: List[schemas.IngredientIn]) -> List[models.Ingredient]:
    return [
        models.Ingredient(
            recipe_id=recipe_id,
            name=ing.name,
            amount=ing.amount,
            unit=ing.unit,
            order_index=ing.order_index if ing.order_index is not None else index,
            position=index,
        )
        for index, ing in enumerate(ingredients)
    ]


class RecipeStore:
    """Recipe and ingredient access for one request and one principal.

    Every query is filtered on ``user_id == principal.id``; a recipe owned by
    someone else is indistinguishable from one that does not exist.
    """

    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.principal = principal

    def _owned(self):
        return self.db.query(models.Recipe).filter(models.Recipe.user_id == self.principal.id)

    def _get_owned(self, recipe_id: str):
        return self._owned().filter(models.Recipe.id == recipe_id).first()

    def _fail(self, message: str, exc: SQLAlchemyError):
        self.db.rollback()
        logger.error("%s (user %s): %s", message, self.principal.id, exc)
        return StorageError(message, str(getattr(exc, "orig", None) or exc))

    def list_recipes(self) -> List[models.Recipe]:
        try:
            return self._owned().order_by(models.Recipe.created_at.desc()).all()
        except SQLAlchemyError as exc:
            raise self._fail("Failed to fetch recipes", exc)

    def get_recipe(self, recipe_id: str) -> models.Recipe:
        try:
            recipe = self._get_owned(recipe_id)
        except SQLAlchemyError as exc:
            raise self._fail("Failed to fetch recipe", exc)
        if recipe is None:
            raise NotFound("Recipe not found")
        return recipe

    def create_recipe(self, data: schemas.RecipeCreate) -> models.Recipe:
        recipe = models.Recipe(
            user_id=self.principal.id,
            title=data.title,
            description=data.description or None,
            prep_time=data.prep_time,
            cook_time=data.cook_time,
            servings=data.servings,
            difficulty=data.difficulty.value,
            image_url=data.image_url or None,
        )
        try:
            self.db.add(recipe)
            self.db.flush()
            self._insert_ingredients(recipe.id, data.ingredients)
            self.db.commit()
            self.db.refresh(recipe)
        except SQLAlchemyError as exc:
            # the recipe row goes with the transaction, nothing is left behind
            raise self._fail("Failed to create recipe", exc)
        logger.info("Created recipe %s for user %s", recipe.id, self.principal.id)
        return recipe

    def update_recipe(self, recipe_id: str, data: schemas.RecipeUpdate) -> models.Recipe:
        recipe = self.get_recipe(recipe_id)
        supplied = data.model_fields_set
        try:
            for column in RECIPE_COLUMNS:
                if column in supplied:
                    value = getattr(data, column)
                    if isinstance(value, schemas.Difficulty):
                        value = value.value
                    setattr(recipe, column, value)
            # an empty list still replaces the set; only an omitted key leaves it alone
            if "ingredients" in supplied:
                self.db.query(models.Ingredient).filter(
                    models.Ingredient.recipe_id == recipe.id
                ).delete(synchronize_session=False)
                self._insert_ingredients(recipe.id, data.ingredients or [])
            self.db.commit()
            # expired by the commit, so this reloads the row and its ingredients
            self.db.refresh(recipe)
        except SQLAlchemyError as exc:
            raise self._fail("Failed to update recipe", exc)
        logger.info("Updated recipe %s for user %s", recipe.id, self.principal.id)
        return recipe

    def delete_recipe(self, recipe_id: str) -> None:
        try:
            deleted = self._owned().filter(models.Recipe.id == recipe_id).delete(
                synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("Failed to delete recipe", exc)
        if not deleted:
            raise NotFound("Recipe not found")
        if self._get_owned(recipe_id) is not None:
            raise StorageError("Failed to delete recipe", "Recipe still present after delete")
        logger.info("Deleted recipe %s for user %s", recipe_id, self.principal.id)

    def _insert_ingredients(self, recipe_id: str, ingredients: List[schemas.IngredientIn]) -> None:
        if ingredients:
            self.db.add_all(_ingredient_rows(recipe_id, ingredients))
            self.db.flush()
