"""
Order API endpoints
Handles order intake with image uploads, listing, status updates and zip export
"""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import StreamingResponse
from typing import List, Optional

from mascote.api.uploads import upload_spool
from mascote.core.dependencies import get_current_client_id, get_services
from mascote.models.order import OrderStatus
from mascote.schemas.order import (
    OrderAssets, OrderCreatedResponse, OrderFields, OrderListResponse, OrderRead,
    OrderStatusUpdate, OrderSummary,
)
from mascote.services import MascoteServices

router = APIRouter()


@router.post("", response_model=OrderCreatedResponse)
def create_order(
    round: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    time: Optional[str] = Form(None),
    venue: Optional[str] = Form(None),
    mascot_kind: Optional[str] = Form(None),
    team_shield: Optional[UploadFile] = File(None),
    opponent_shield: Optional[UploadFile] = File(None),
    mascot: Optional[UploadFile] = File(None),
    sponsors: Optional[List[UploadFile]] = File(None),
    client_id: str = Depends(get_current_client_id),
    services: MascoteServices = Depends(get_services),
):
    """Create a production order, consuming one unit of the monthly quota"""
    fields = OrderFields(round=round, date=date, time=time, venue=venue, mascot_kind=mascot_kind)

    with upload_spool(services.settings.uploads_dir) as spool:
        assets = OrderAssets(
            team_shield=spool.receive(team_shield),
            opponent_shield=spool.receive(opponent_shield),
            mascot=spool.receive(mascot),
            sponsors=spool.receive_many(sponsors),
        )
        order_id = services.orders.create_order(client_id, fields, assets)

    return OrderCreatedResponse(order_id=order_id)


@router.get("", response_model=OrderListResponse)
def list_orders(
    status: str = Query(OrderStatus.NEW.value),
    client_id: str = Depends(get_current_client_id),
    services: MascoteServices = Depends(get_services),
):
    """Current-cycle orders with the given status"""
    order_ids = services.queries.list_orders(client_id, status)
    return OrderListResponse(
        status=OrderStatus.parse(status),
        orders=[OrderSummary(id=order_id) for order_id in order_ids],
    )


@router.get("/new", response_model=OrderListResponse)
def list_new_orders(
    client_id: str = Depends(get_current_client_id),
    services: MascoteServices = Depends(get_services),
):
    """Current-cycle orders still waiting for production"""
    order_ids = services.queries.list_new_orders(client_id)
    return OrderListResponse(
        status=OrderStatus.NEW,
        orders=[OrderSummary(id=order_id) for order_id in order_ids],
    )


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: str,
    client_id: str = Depends(get_current_client_id),
    services: MascoteServices = Depends(get_services),
):
    """Full order record"""
    record = services.orders.get_order(client_id, order_id)
    return OrderRead(**record.model_dump(exclude={"client_id"}))


@router.get("/{order_id}/zip")
def export_order_archive(
    order_id: str,
    client_id: str = Depends(get_current_client_id),
    services: MascoteServices = Depends(get_services),
):
    """Download the order's files as a zip archive"""
    chunks = services.archives.export(client_id, order_id)
    filename = services.archives.archive_name(order_id)
    return StreamingResponse(
        chunks,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{order_id}/status")
def set_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    client_id: str = Depends(get_current_client_id),
    services: MascoteServices = Depends(get_services),
):
    """Move the order to another status"""
    record = services.orders.advance_status(client_id, order_id, update.status)
    return {"ok": True, "status": record.status.value}
