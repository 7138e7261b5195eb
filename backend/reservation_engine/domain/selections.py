"""
Food and beverage selections attached to holds and bookings.

Selections arrive from the checkout metadata as untyped JSON; they are
validated here into a tagged union keyed on `kind`.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError


class FoodSelection(BaseModel):
    kind: Literal["salad", "entree", "dessert"]
    item_id: int
    quantity: int = Field(default=1, gt=0)
    guest_index: Optional[int] = Field(default=None, ge=0)


class WineSelection(BaseModel):
    kind: Literal["wine"]
    item_id: int
    quantity: int = Field(default=1, gt=0)
    serving: Literal["glass", "bottle"] = "bottle"


Selection = Annotated[Union[FoodSelection, WineSelection], Field(discriminator="kind")]

_selection_list = TypeAdapter(list[Selection])


def parse_selections(raw: Any) -> list[Selection]:
    """Validate a raw list of selections. Raises ValueError if malformed."""
    if raw is None:
        return []
    try:
        return _selection_list.validate_python(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid selections: {exc.error_count()} error(s)") from exc


def dump_selections(selections: list[Selection]) -> list[dict[str, Any]]:
    return [s.model_dump() for s in selections]
