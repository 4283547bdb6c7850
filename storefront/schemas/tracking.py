from pydantic import BaseModel, Field
from typing import Optional, List, Any, Dict
from datetime import datetime
from decimal import Decimal
import uuid

from storefront.models.tracking import TrackingStepStatus, TrackingIssueType
from storefront.schemas.base import BaseResponseSchema, BaseUpdateSchema


# ==================== PROJECTIONS ====================

class AdminBrief(BaseResponseSchema):
    """Display projection of the admin who touched a step (never credentials)."""
    id: uuid.UUID
    first_name: str
    last_name: Optional[str] = None


class CustomerBrief(BaseResponseSchema):
    id: uuid.UUID
    first_name: str
    last_name: Optional[str] = None
    email: str


class OrderItemBrief(BaseResponseSchema):
    id: uuid.UUID
    name: str
    image: Optional[str] = None
    price: Decimal
    quantity: int
    subtotal: Decimal


# ==================== TRACKING RESPONSES ====================

class TrackingDetailResponse(BaseResponseSchema):
    id: uuid.UUID
    tracking_step_id: uuid.UUID
    location: Optional[str] = None
    description: Optional[str] = None
    shipper_name: Optional[str] = None
    shipper_phone: Optional[str] = None
    proof_images: Optional[List[str]] = None
    has_issue: bool = False
    issue_reason: Optional[str] = None
    issue_type: Optional[str] = None
    estimated_resolution: Optional[datetime] = None
    admin_notes: Optional[str] = None
    updated_by_admin: Optional[uuid.UUID] = None
    updated_at: datetime


class TrackingStepResponse(BaseResponseSchema):
    id: uuid.UUID
    order_id: uuid.UUID
    step_number: int
    step_name: str
    status: str
    completed_at: Optional[datetime] = None
    estimated_time: Optional[datetime] = None
    admin_id: Optional[uuid.UUID] = None
    detail: Optional[TrackingDetailResponse] = None
    admin: Optional[AdminBrief] = None
    updated_at: datetime


class StepInitResponse(BaseResponseSchema):
    """Step as returned right after initialization (no nested objects)."""
    id: uuid.UUID
    order_id: uuid.UUID
    step_number: int
    step_name: str
    status: str
    completed_at: Optional[datetime] = None
    admin_id: Optional[uuid.UUID] = None


class TrackedOrder(BaseResponseSchema):
    id: uuid.UUID
    order_number: str
    status: str
    payment_method: str
    payment_status: str
    current_tracking_step: int
    total_amount: Decimal
    created_at: datetime
    items: List[OrderItemBrief] = []


class OrderTrackingResponse(BaseModel):
    """Customer view: the order and its ordered tracking steps."""
    order: TrackedOrder
    tracking_steps: List[TrackingStepResponse]


class AdminTrackedOrder(BaseResponseSchema):
    id: uuid.UUID
    order_number: str
    status: str
    payment_method: str
    payment_status: str
    current_tracking_step: int
    total_amount: Decimal
    created_at: datetime
    user: Optional[CustomerBrief] = None
    tracking_steps: List[TrackingStepResponse] = []


class AdminTrackingListResponse(BaseModel):
    items: List[AdminTrackedOrder]
    total: int
    page: int
    size: int
    pages: int


class StepStat(BaseModel):
    step_name: str
    status: str
    count: int


class IssueStat(BaseModel):
    issue_type: Optional[str] = None
    count: int


class TrackingStatisticsResponse(BaseModel):
    step_stats: List[StepStat]
    issue_stats: List[IssueStat]


# ==================== STEP UPDATE ====================

_DETAIL_FIELDS = (
    "location",
    "description",
    "shipper_name",
    "shipper_phone",
    "proof_images",
    "issue_reason",
    "issue_type",
    "estimated_resolution",
    "admin_notes",
)


class TrackingStepUpdate(BaseUpdateSchema):
    """
    Admin update of one tracking step and its detail.

    Field contract:
    - status: required.
    - completed_at: used only when status is 'completed' (defaults to now);
      any other status clears the completion timestamp.
    - estimated_time and every detail field: absent keeps the stored value,
      null clears it, a value replaces it.
    - has_issue: absent or null means False, so an update that does not
      report an issue clears the flag.
    """
    status: TrackingStepStatus
    completed_at: Optional[datetime] = None
    estimated_time: Optional[datetime] = None

    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    shipper_name: Optional[str] = Field(None, max_length=255)
    shipper_phone: Optional[str] = Field(None, max_length=20)
    proof_images: Optional[List[str]] = None
    has_issue: Optional[bool] = None
    issue_reason: Optional[str] = None
    issue_type: Optional[TrackingIssueType] = None
    estimated_resolution: Optional[datetime] = None
    admin_notes: Optional[str] = None

    @property
    def is_completion(self) -> bool:
        return self.status == TrackingStepStatus.COMPLETED

    def detail_changes(self) -> Dict[str, Any]:
        """Detail columns to write, honoring the absent/null/value contract."""
        changes: Dict[str, Any] = {}
        for field in _DETAIL_FIELDS:
            if self.is_set(field):
                value = getattr(self, field)
                changes[field] = getattr(value, "value", value)
        changes["has_issue"] = bool(self.has_issue)
        return changes
