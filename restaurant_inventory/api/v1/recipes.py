import logging

from fastapi import APIRouter, HTTPException, status

from restaurant_inventory.core.exceptions import InventoryError
from restaurant_inventory.schemas.recipe import LinkRequest, LinkResponse, MenuItemRequest, MenuItemResponse, RecipeRequest
from restaurant_inventory.schemas.response import SuccessResponse
from restaurant_inventory.services import catalog_service, recipe_links

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_recipe_endpoint(payload: RecipeRequest):
    """Creates a recipe together with its ingredient list."""
    try:
        recipe = await catalog_service.create_recipe(payload)
        return SuccessResponse(data=recipe.model_dump())
    except (InventoryError, HTTPException):
        raise
    except Exception as e:
        log.error(f"Error creating recipe: {e}")
        raise HTTPException(status_code=500, detail="Server failed to create recipe.")


@router.post("/menu-items", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_menu_item_endpoint(payload: MenuItemRequest):
    menu_item = await catalog_service.create_menu_item(payload)
    return SuccessResponse(data=MenuItemResponse.model_validate(menu_item).model_dump())


@router.post("/links", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_link_endpoint(payload: LinkRequest):
    """
    Links a recipe ingredient to the product it consumes.
    400/422 on bad fields, 404 when either side is missing, 409 on duplicates.
    """
    link = await recipe_links.create_link(payload)
    return SuccessResponse(data=LinkResponse.model_validate(link).model_dump())


@router.get("/{recipe_id}/links", response_model=SuccessResponse)
async def list_links_endpoint(recipe_id: int):
    links = await recipe_links.list_recipe_links(recipe_id)
    return SuccessResponse(data={"links": [link.model_dump() for link in links], "count": len(links)})


@router.delete("/links/{link_id}", response_model=SuccessResponse)
async def delete_link_endpoint(link_id: int):
    await recipe_links.delete_link(link_id)
    return SuccessResponse(data={"message": f"Link {link_id} deleted."})
