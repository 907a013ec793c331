"""
FastAPI Application Entry Point

Restaurant QR Menu System - table-side ordering and admin dashboard.
Uses the in-memory data source in development and SQL storage otherwise.

Endpoints:
    - GET /table/{table_id}: Public menu for a table
    - /api/tables/{table_id}/cart...: Table cart (order draft) and submission
    - GET /api/tables/{table_id}/notifications: Pending notifications
    - GET /api/tables/{table_id}/link: Link encoded in the table's QR code
    - /api/menu...: Menu management
    - /api/settings: Restaurant display settings
    - /api/orders...: Order listing and status changes
    - GET /api/dashboard-data: Dashboard statistics
    - GET /api/admin/notifications: Staff notifications
    - GET /health: System health check

Run:
    uvicorn qrmenu.main:app --port 8001
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache, partial
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from qrmenu.core.config import get_settings, setup_logging
from qrmenu.core.exceptions import QRMenuError
from qrmenu.schemas import (
    CartItemAdd,
    CartQuantityUpdate,
    CartResponse,
    ErrorResponse,
    HealthResponse,
    MenuCategory,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
    MenuSection,
    NotificationResponse,
    Order,
    OrderListResponse,
    OrderStatus,
    RestaurantSettings,
    SettingsUpdate,
    StatusUpdate,
    TableLinkResponse,
    TableMenuResponse,
)
from qrmenu.services.cart import DraftRegistry, OrderDraft, normalize_table_id
from qrmenu.services.catalog import CatalogService
from qrmenu.services.checkout import CheckoutService
from qrmenu.services.dashboard import DashboardSummary, summarize
from qrmenu.services.lifecycle import OrderLifecycleController
from qrmenu.services.notifications import (
    ADMIN_CHANNEL,
    BaseNotificationService,
    get_notification_service,
)
from qrmenu.services.repository import BaseDataSource, get_data_source
from qrmenu.services.tables import build_table_url, qr_download_filename

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    data_source = get_data_source()
    await data_source.initialize()
    logger.info(f"✅ Data Source: {data_source.provider_name}")
    logger.info(f"✅ Notifications: {get_notification_service().provider_name}")
    if settings.strict_status_progression:
        logger.info("✅ Strict status progression enabled")

    logger.info("✅ Application ready!")

    yield  # Application runs

    logger.info("Shutting down...")
    await data_source.close()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Table-side ordering: customers order from a per-table QR code, "
        "staff manage orders, menu and display settings."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

@lru_cache()
def get_draft_registry() -> DraftRegistry:
    """Drafts of all table sessions served by this process."""
    notifier = get_notification_service()
    return DraftRegistry(notifier_for=lambda table_id: partial(notifier.publish, table_id))


def get_catalog(
    data_source: BaseDataSource = Depends(get_data_source),
) -> CatalogService:
    return CatalogService(data_source)


def get_lifecycle(
    data_source: BaseDataSource = Depends(get_data_source),
) -> OrderLifecycleController:
    return OrderLifecycleController(
        data_source.orders,
        strict=settings.strict_status_progression,
    )


def get_checkout(
    data_source: BaseDataSource = Depends(get_data_source),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> CheckoutService:
    return CheckoutService(
        data_source.orders,
        notifier=notifier,
        max_attempts=settings.submit_max_attempts,
        backoff_seconds=settings.submit_backoff_seconds,
        backoff_max_seconds=settings.submit_backoff_max_seconds,
    )


def table_id_path(table_id: str = Path(..., max_length=50)) -> str:
    try:
        return normalize_table_id(table_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def current_draft(registry: DraftRegistry, table_id: str) -> OrderDraft:
    """The table's draft, or an unregistered empty one."""
    draft = registry.peek(table_id)
    return draft if draft is not None else OrderDraft()


def cart_response(table_id: str, draft: OrderDraft) -> CartResponse:
    return CartResponse(
        table_id=table_id,
        items=draft.lines,
        total=draft.compute_total(),
        item_count=draft.item_count,
        submitting=draft.is_submitting,
    )


def parse_status_filter(status: str) -> Any:
    if status == "all":
        return status
    try:
        return OrderStatus(status.lower())
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Options: {['all'] + [s.value for s in OrderStatus]}",
        )


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    data_source: BaseDataSource = Depends(get_data_source),
) -> HealthResponse:
    """Verify the data source is reachable."""
    healthy = await data_source.health_check()
    return HealthResponse(
        status="operational" if healthy else "degraded",
        data_source="healthy" if healthy else "unhealthy",
        provider=data_source.provider_name,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# PUBLIC TABLE MENU
# =============================================================================

@app.get(
    "/table/{table_id}",
    response_model=TableMenuResponse,
    tags=["Tables"],
    summary="Public Menu for a Table",
)
async def table_menu(
    table_id: str = Depends(table_id_path),
    catalog: CatalogService = Depends(get_catalog),
) -> TableMenuResponse:
    """Menu grouped by category, with the restaurant's display settings."""
    grouped = await catalog.menu_by_category()
    return TableMenuResponse(
        table_id=table_id,
        settings=await catalog.get_settings(),
        sections=[
            MenuSection(category=category, title=category.display_name, items=items)
            for category, items in grouped.items()
        ],
    )


@app.get(
    "/api/tables/{table_id}/link",
    response_model=TableLinkResponse,
    tags=["Tables"],
    summary="QR Code Link",
)
async def table_link(
    table_id: str = Depends(table_id_path),
    base_url: Optional[str] = Query(None, description="Override the configured base URL"),
) -> TableLinkResponse:
    return TableLinkResponse(
        table_id=table_id,
        url=build_table_url(base_url or settings.table_base_url, table_id),
        filename=qr_download_filename(table_id),
    )


@app.get(
    "/api/tables/{table_id}/notifications",
    response_model=List[NotificationResponse],
    tags=["Tables"],
)
async def table_notifications(
    table_id: str = Depends(table_id_path),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> List[NotificationResponse]:
    """Return and acknowledge the table's pending notifications."""
    return [NotificationResponse(**n.to_dict()) for n in notifier.drain(table_id)]


# =============================================================================
# CART ENDPOINTS
# =============================================================================

@app.get(
    "/api/tables/{table_id}/cart",
    response_model=CartResponse,
    tags=["Cart"],
)
async def get_cart(
    table_id: str = Depends(table_id_path),
    registry: DraftRegistry = Depends(get_draft_registry),
) -> CartResponse:
    """Read the table's cart without opening one."""
    return cart_response(table_id, current_draft(registry, table_id))


@app.post(
    "/api/tables/{table_id}/cart/items",
    response_model=CartResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Cart"],
    summary="Add Item to Cart",
)
async def add_cart_item(
    body: CartItemAdd,
    table_id: str = Depends(table_id_path),
    registry: DraftRegistry = Depends(get_draft_registry),
    catalog: CatalogService = Depends(get_catalog),
) -> CartResponse:
    """Add units of a menu item. Quantities of zero or less are ignored."""
    menu_item = await catalog.get_menu_item(body.item_id)
    draft = registry.get(table_id)
    try:
        draft.add_item(menu_item, body.quantity)
    finally:
        registry.release(table_id)
    return cart_response(table_id, draft)


@app.patch(
    "/api/tables/{table_id}/cart/items/{item_id}",
    response_model=CartResponse,
    tags=["Cart"],
    summary="Change Quantity",
)
async def update_cart_item(
    item_id: str,
    body: CartQuantityUpdate,
    table_id: str = Depends(table_id_path),
    registry: DraftRegistry = Depends(get_draft_registry),
) -> CartResponse:
    """Set a line's quantity; zero or less removes the line."""
    draft = current_draft(registry, table_id)
    draft.update_quantity(item_id, body.quantity)
    registry.release(table_id)
    return cart_response(table_id, draft)


@app.delete(
    "/api/tables/{table_id}/cart/items/{item_id}",
    response_model=CartResponse,
    tags=["Cart"],
)
async def remove_cart_item(
    item_id: str,
    table_id: str = Depends(table_id_path),
    registry: DraftRegistry = Depends(get_draft_registry),
) -> CartResponse:
    draft = current_draft(registry, table_id)
    draft.remove_item(item_id)
    registry.release(table_id)
    return cart_response(table_id, draft)


@app.delete(
    "/api/tables/{table_id}/cart",
    status_code=204,
    tags=["Cart"],
    summary="Cancel Cart",
)
async def cancel_cart(
    table_id: str = Depends(table_id_path),
    registry: DraftRegistry = Depends(get_draft_registry),
) -> Response:
    registry.discard(table_id)
    return Response(status_code=204)


@app.post(
    "/api/tables/{table_id}/cart/submit",
    response_model=Order,
    status_code=201,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    tags=["Cart"],
    summary="Place Order",
)
async def submit_cart(
    table_id: str = Depends(table_id_path),
    registry: DraftRegistry = Depends(get_draft_registry),
    checkout: CheckoutService = Depends(get_checkout),
) -> Order:
    """
    Submit the table's cart as a pending order.

    The cart is emptied only when the order was stored, and then
    forgotten. While a submission is in flight, a second submit
    answers 409.
    """
    draft = current_draft(registry, table_id)
    try:
        return await checkout.place_order(draft, table_id)
    finally:
        registry.release(table_id)


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get("/api/menu", response_model=List[MenuItem], tags=["Menu"])
async def list_menu(
    category: Optional[MenuCategory] = Query(None),
    catalog: CatalogService = Depends(get_catalog),
) -> List[MenuItem]:
    return await catalog.list_menu_items(category)


@app.get(
    "/api/menu/{item_id}",
    response_model=MenuItem,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def get_menu_item(
    item_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> MenuItem:
    return await catalog.get_menu_item(item_id)


@app.post("/api/menu", response_model=MenuItem, status_code=201, tags=["Menu"])
async def create_menu_item(
    body: MenuItemCreate,
    catalog: CatalogService = Depends(get_catalog),
) -> MenuItem:
    return await catalog.add_menu_item(body)


@app.patch(
    "/api/menu/{item_id}",
    response_model=MenuItem,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def update_menu_item(
    item_id: str,
    body: MenuItemUpdate,
    catalog: CatalogService = Depends(get_catalog),
) -> MenuItem:
    return await catalog.update_menu_item(item_id, body)


@app.delete(
    "/api/menu/{item_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def delete_menu_item(
    item_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> Response:
    await catalog.delete_menu_item(item_id)
    return Response(status_code=204)


# =============================================================================
# SETTINGS ENDPOINTS
# =============================================================================

@app.get("/api/settings", response_model=RestaurantSettings, tags=["Settings"])
async def get_restaurant_settings(
    catalog: CatalogService = Depends(get_catalog),
) -> RestaurantSettings:
    return await catalog.get_settings()


@app.put("/api/settings", response_model=RestaurantSettings, tags=["Settings"])
async def update_restaurant_settings(
    body: SettingsUpdate,
    catalog: CatalogService = Depends(get_catalog),
) -> RestaurantSettings:
    return await catalog.update_settings(body)


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    status: str = Query("all", description="Order status or 'all'"),
    lifecycle: OrderLifecycleController = Depends(get_lifecycle),
) -> OrderListResponse:
    """Orders matching ``status``, newest first."""
    orders = await lifecycle.list_orders(parse_status_filter(status))
    return OrderListResponse(total=len(orders), orders=orders)


@app.get(
    "/api/orders/{order_id}",
    response_model=Order,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    lifecycle: OrderLifecycleController = Depends(get_lifecycle),
) -> Order:
    """Get a specific order by ID."""
    return await lifecycle.get_order(order_id)


@app.patch(
    "/api/orders/{order_id}/status",
    response_model=Order,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Change Order Status",
)
async def change_order_status(
    order_id: str,
    body: StatusUpdate,
    lifecycle: OrderLifecycleController = Depends(get_lifecycle),
) -> Order:
    """
    Delivered and cancelled orders reject further changes (409). When
    ``expected_version`` is sent and the order changed since, the
    request is refused with 409 as well.
    """
    return await lifecycle.set_status(order_id, body.status, expected_version=body.expected_version)


# =============================================================================
# DASHBOARD ENDPOINTS
# =============================================================================

@app.get(
    "/api/dashboard-data",
    response_model=DashboardSummary,
    tags=["Dashboard"],
)
async def dashboard_data(
    data_source: BaseDataSource = Depends(get_data_source),
) -> DashboardSummary:
    """Aggregated dashboard statistics."""
    menu_items = await data_source.list_menu_items()
    orders = await data_source.list_orders()
    return summarize(menu_items, orders)


@app.get(
    "/api/admin/notifications",
    response_model=List[NotificationResponse],
    tags=["Dashboard"],
)
async def admin_notifications(
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> List[NotificationResponse]:
    """Return and acknowledge staff notifications (new orders)."""
    return [NotificationResponse(**n.to_dict()) for n in notifier.drain(ADMIN_CHANNEL)]


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(QRMenuError)
async def qrmenu_exception_handler(request: Request, exc: QRMenuError) -> JSONResponse:
    """Recoverable, user-facing errors."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.error} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.error, detail=exc.message).model_dump(),
    )


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Domain values rejected while applying an update."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error="ValidationError",
            detail="; ".join(err["msg"] for err in exc.errors()),
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
