"""Canned responses and exceptions for stubbed methods."""

from typing import Any, Callable, Optional

from doppel.domain import Raises, Returns, ReturnsSequence, ResponseRecipe

__all__ = ["ResponseTable"]


class ResponseTable:
    """Holds at most one response recipe per method; the last one set wins."""

    def __init__(self):
        self._recipes: dict[str, ResponseRecipe] = {}
        self._positions: dict[str, int] = {}

    def set_response(self, method_name: str, recipe: ResponseRecipe) -> None:
        if not isinstance(recipe, (Returns, ReturnsSequence, Raises)):
            raise TypeError(f"Unsupported response recipe {recipe!r}")
        self._recipes[method_name] = recipe
        self._positions.pop(method_name, None)

    def has_response(self, method_name: str) -> bool:
        return method_name in self._recipes

    def resolve(self, method_name: str, fallback: Callable[[], Any]) -> Any:
        """Answer a call to ``method_name``.

        A configured error is raised as the very same object. Without a recipe
        the ``fallback`` callable supplies the answer, or raises.
        """
        recipe = self._recipes.get(method_name)
        if recipe is None:
            return fallback()

        if isinstance(recipe, Raises):
            if not recipe.persistent:
                del self._recipes[method_name]
            raise recipe.error

        if isinstance(recipe, ReturnsSequence):
            position = self._positions.get(method_name, 0)
            self._positions[method_name] = position + 1
            return recipe.values[min(position, len(recipe.values) - 1)]

        return recipe.value

    def clear(self, method_name: Optional[str] = None) -> None:
        if method_name is None:
            self._recipes.clear()
            self._positions.clear()
        else:
            self._recipes.pop(method_name, None)
            self._positions.pop(method_name, None)
