from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecipeIngredientRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    quantity: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=50)


class RecipeRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field("food", pattern="^(food|drink)$")
    servings: Optional[int] = Field(None, gt=0)
    ingredients: List[RecipeIngredientRequest] = Field(default_factory=list)


class MenuItemRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., gt=0, description="Selling price of the item.")
    recipe_id: Optional[int] = Field(None, gt=0)
    category: Optional[str] = Field(None, max_length=50)
    is_active: bool = Field(True, description="Whether the menu item is orderable.")


class LinkRequest(BaseModel):
    """
    Raw link payload. Shape checks happen in the service so that every violated
    field is reported together with existence checks.
    """
    recipe_ingredient_id: Optional[int] = None
    product_id: Optional[int] = None
    quantity_per_serving: Optional[Decimal] = None


class LinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipe_ingredient_id: int
    product_id: int
    quantity_per_serving: Decimal
    created_at: Optional[datetime] = None


class RecipeLinkDetail(BaseModel):
    id: int
    recipe_ingredient_id: int
    ingredient_name: str
    product_id: int
    product_name: str
    unit_of_measure: str
    quantity_per_serving: Decimal
    current_quantity: Decimal


class ProductConversion(BaseModel):
    """One serving of a menu item consumes `quantity_per_serving` of the product via this ingredient."""
    product_id: int
    quantity_per_serving: Decimal
    product_name: str
    ingredient_name: str
    unit_of_measure: Optional[str] = None


class RecipeResponse(BaseModel):
    id: int
    name: str
    category: str
    servings: Optional[int] = None
    ingredient_ids: List[int] = Field(default_factory=list)


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: Decimal
    recipe_id: Optional[int] = None
    category: Optional[str] = None
    is_active: bool
