from pydantic import BaseModel
import uuid


class CancellationStatusResponse(BaseModel):
    order_id: uuid.UUID
    order_number: str
    can_cancel: bool
    reason: str
    order_status: str


class OrderCancelResponse(BaseModel):
    id: uuid.UUID
    order_number: str
    status: str
