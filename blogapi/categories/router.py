"""Category API endpoints."""

from fastapi import APIRouter, status

from blogapi.auth.dependencies import CurrentUser

from .dependencies import CategoryServiceDep, handle_category_error
from .schemas import CategoryResponse, CreateCategoryRequest
from .service import CategoryError


router = APIRouter(prefix="/categories", tags=["categories"])


@router.get(
    "",
    response_model=list[CategoryResponse],
    summary="List categories",
)
async def list_categories(
    category_service: CategoryServiceDep,
) -> list[CategoryResponse]:
    categories = await category_service.list_categories()
    return [CategoryResponse.model_validate(c) for c in categories]


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
    responses={400: {"description": "Missing or duplicate name"}},
)
async def create_category(
    data: CreateCategoryRequest,
    category_service: CategoryServiceDep,
    user: CurrentUser,
) -> CategoryResponse:
    """Create a category. Any authenticated user may do so."""
    try:
        category = await category_service.create_category(data.name)
    except CategoryError as e:
        raise handle_category_error(e) from e
    return CategoryResponse.model_validate(category)
