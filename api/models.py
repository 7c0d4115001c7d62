"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
JSON keys are camelCase; Python attributes stay snake_case.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from domain.buy_code import BuyCode
from domain.dealer import ContactPerson, Dealer
from domain.offer import Offer, OfferActivity, OfferActor, OfferStatus
from domain.time import parse_optional_utc_datetime
from domain.transaction import Transaction, TransactionStatus
from domain.vehicle import CertificationType, Inspection, InspectionStatus, Vehicle, VehicleStatus


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(ApiModel):
    """Body of every 4xx/5xx response."""
    message: str
    kind: Optional[str] = None


# ============================================================================
# Auth Models
# ============================================================================

class LoginRequest(ApiModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(ApiModel):
    token: str
    role: str


class AdminCheckResponse(ApiModel):
    authenticated: bool
    username: str


# ============================================================================
# Dealer Models
# ============================================================================

class ContactModel(ApiModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_domain(cls, contact: ContactPerson) -> "ContactModel":
        return cls(name=contact.name, email=contact.email, phone=contact.phone)


class DealerResponse(ApiModel):
    dealer_id: int
    username: str
    dealer_name: str
    email: str
    active: bool
    address: Optional[str] = None
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    billing_contact: ContactModel
    title_contact: ContactModel
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, dealer: Dealer) -> "DealerResponse":
        return cls(
            dealer_id=dealer.dealer_id,
            username=dealer.username,
            dealer_name=dealer.dealer_name,
            email=dealer.email,
            active=dealer.active,
            address=dealer.address,
            contact_name=dealer.contact_name,
            phone=dealer.phone,
            billing_contact=ContactModel.from_domain(dealer.billing_contact),
            title_contact=ContactModel.from_domain(dealer.title_contact),
            created_at=dealer.created_at,
        )


class DealerLoginResponse(TokenResponse):
    dealer: DealerResponse


class DealerProfileFields(ApiModel):
    """Profile fields shared by create and update."""
    address: Optional[str] = None
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    billing_contact: Optional[ContactModel] = None
    title_contact: Optional[ContactModel] = None

    def profile_columns(self) -> dict:
        """Flatten set profile fields into dealer table columns."""
        columns = {}
        for name in ("address", "contact_name", "phone"):
            if name in self.model_fields_set:
                columns[name] = getattr(self, name)
        for prefix in ("billing_contact", "title_contact"):
            contact = getattr(self, prefix)
            if contact is None:
                continue
            for part in contact.model_fields_set:
                columns[f"{prefix}_{part}"] = getattr(contact, part)
        return columns


class DealerCreateRequest(DealerProfileFields):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=8)
    dealer_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "username": "metroauto",
                "password": "change-me-please",
                "dealerName": "Metro Auto Group",
                "email": "buyer@metroauto.example",
                "billingContact": {"name": "Dana Price", "email": "ap@metroauto.example"},
            }
        }
    )


class DealerUpdateRequest(DealerProfileFields):
    dealer_name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=3)
    active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=8)

    def update_columns(self) -> dict:
        columns = self.profile_columns()
        for name in ("dealer_name", "email", "active"):
            value = getattr(self, name)
            if value is not None:
                columns[name] = value
        return columns


# ============================================================================
# Vehicle Models
# ============================================================================

class InspectionResponse(ApiModel):
    status: InspectionStatus
    fail_reason: Optional[str] = None
    cosmetic_repair_estimate: Optional[Decimal] = None
    mechanical_repair_estimate: Optional[Decimal] = None
    vin_photo: Optional[str] = None
    walkaround_video: Optional[str] = None
    mechanical_video: Optional[str] = None
    notes: Optional[str] = None
    inspected_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, inspection: Inspection) -> "InspectionResponse":
        return cls(
            status=inspection.status,
            fail_reason=inspection.fail_reason,
            cosmetic_repair_estimate=inspection.cosmetic_repair_estimate,
            mechanical_repair_estimate=inspection.mechanical_repair_estimate,
            vin_photo=inspection.vin_photo,
            walkaround_video=inspection.walkaround_video,
            mechanical_video=inspection.mechanical_video,
            notes=inspection.notes,
            inspected_at=inspection.inspected_at,
        )


class VehicleResponse(ApiModel):
    """Single vehicle in API response."""
    vehicle_id: int
    vin: str
    title: str
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
    mileage: Optional[int] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    condition: Optional[CertificationType] = None
    images: List[str] = []
    videos: List[str] = []
    status: VehicleStatus
    in_queue: bool
    inspection: InspectionResponse
    reactivation_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "vehicleId": 42,
                "vin": "1HGCM82633A004352",
                "title": "2003 Honda Accord EX",
                "year": 2003,
                "make": "Honda",
                "model": "Accord",
                "trim": "EX",
                "mileage": 148000,
                "price": "3500.00",
                "condition": "Deal Machine Certified",
                "images": [],
                "videos": ["https://storage.example/videos/walkaround.mp4"],
                "status": "active",
                "inQueue": False,
                "inspection": {"status": "passed"},
            }
        }
    )

    @classmethod
    def from_domain(cls, vehicle: Vehicle) -> "VehicleResponse":
        return cls(
            vehicle_id=vehicle.vehicle_id,
            vin=vehicle.vin,
            title=vehicle.title,
            year=vehicle.year,
            make=vehicle.make,
            model=vehicle.model,
            trim=vehicle.trim,
            mileage=vehicle.mileage,
            price=vehicle.price,
            description=vehicle.description,
            condition=vehicle.condition,
            images=list(vehicle.images),
            videos=list(vehicle.videos),
            status=vehicle.status,
            in_queue=vehicle.in_queue,
            inspection=InspectionResponse.from_domain(vehicle.inspection),
            reactivation_notes=vehicle.reactivation_notes,
            created_at=vehicle.created_at,
            updated_at=vehicle.updated_at,
        )


class VehicleListResponse(ApiModel):
    """Response for vehicle listing."""
    items: List[VehicleResponse]
    total_count: int = Field(..., description="Matching vehicles across all pages")


class VehicleIntakeRequest(ApiModel):
    vin: str = Field(..., min_length=1, description="17-character VIN")
    images: List[str] = []
    videos: List[str] = []


class VehiclePriceRequest(ApiModel):
    price: Decimal = Field(..., gt=0)


class VehicleDetailsRequest(ApiModel):
    """Descriptive fields for complete and edit. Omitted fields are unchanged."""
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
    mileage: Optional[int] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, gt=0)
    description: Optional[str] = None
    condition: Optional[CertificationType] = None
    images: Optional[List[str]] = None
    videos: Optional[List[str]] = None


class ReactivateRequest(ApiModel):
    notes: str = ""


class InspectionRequest(ApiModel):
    status: InspectionStatus
    fail_reason: Optional[str] = None
    cosmetic_repair_estimate: Optional[Decimal] = Field(None, ge=0)
    mechanical_repair_estimate: Optional[Decimal] = Field(None, ge=0)
    vin_photo: Optional[str] = None
    walkaround_video: Optional[str] = None
    mechanical_video: Optional[str] = None
    notes: Optional[str] = None


class SheetSyncResponse(ApiModel):
    imported: int
    skipped: int
    errors: List[str]


# ============================================================================
# Offer Models
# ============================================================================

class OfferActivityResponse(ApiModel):
    activity_id: int
    actor: OfferActor
    message: str
    created_at: datetime

    @classmethod
    def from_domain(cls, activity: OfferActivity) -> "OfferActivityResponse":
        return cls(
            activity_id=activity.activity_id,
            actor=activity.actor,
            message=activity.message,
            created_at=activity.created_at,
        )


class OfferResponse(ApiModel):
    offer_id: int
    vehicle_id: int
    dealer_id: int
    amount: Decimal
    status: OfferStatus
    counter_amount: Optional[Decimal] = None
    counter_message: Optional[str] = None
    agreed_amount: Optional[Decimal] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    activities: List[OfferActivityResponse] = []

    @classmethod
    def from_domain(cls, offer: Offer) -> "OfferResponse":
        return cls(
            offer_id=offer.offer_id,
            vehicle_id=offer.vehicle_id,
            dealer_id=offer.dealer_id,
            amount=offer.amount,
            status=offer.status,
            counter_amount=offer.counter_amount,
            counter_message=offer.counter_message,
            agreed_amount=offer.agreed_amount,
            expires_at=offer.expires_at,
            created_at=offer.created_at,
            updated_at=offer.updated_at,
            activities=[OfferActivityResponse.from_domain(a) for a in offer.activities],
        )


class OfferCreateRequest(ApiModel):
    amount: Decimal = Field(..., gt=0)
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def expiry_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return parse_optional_utc_datetime(value)


class AdminOfferUpdateRequest(ApiModel):
    """Admin decision on a pending offer."""
    status: Literal["accepted", "declined", "countered"]
    counter_amount: Optional[Decimal] = Field(None, gt=0)
    counter_message: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "countered",
                "counterAmount": "4100.00",
                "counterMessage": "Fresh tires and brakes",
            }
        }
    )


class DealerOfferUpdateRequest(ApiModel):
    action: Literal["accept", "decline"]


# ============================================================================
# Buy Code / Transaction Models
# ============================================================================

class TransactionResponse(ApiModel):
    transaction_id: int
    vehicle_id: int
    dealer_id: int
    buy_code_id: int
    amount: Decimal
    status: TransactionStatus
    is_paid: bool
    bill_of_sale: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, transaction: Transaction) -> "TransactionResponse":
        return cls(
            transaction_id=transaction.transaction_id,
            vehicle_id=transaction.vehicle_id,
            dealer_id=transaction.dealer_id,
            buy_code_id=transaction.buy_code_id,
            amount=transaction.amount,
            status=transaction.status,
            is_paid=transaction.is_paid,
            bill_of_sale=transaction.bill_of_sale,
            created_at=transaction.created_at,
        )


class TransactionUpdateRequest(ApiModel):
    status: Optional[TransactionStatus] = None
    is_paid: Optional[bool] = None


class VerifyCodeRequest(ApiModel):
    """Redeem a buy code against a vehicle."""
    code: str = Field(..., min_length=1)
    vehicle_id: int

    model_config = ConfigDict(
        json_schema_extra={"example": {"code": "K7Q2M9XA", "vehicleId": 42}}
    )


class VerifyCodeResponse(ApiModel):
    valid: bool
    transaction: TransactionResponse


class BuyCodeResponse(ApiModel):
    buy_code_id: int
    code: str
    dealer_id: int
    active: bool
    usage_count: int
    max_uses: Optional[int] = None
    remaining_uses: Optional[int] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, buy_code: BuyCode) -> "BuyCodeResponse":
        return cls(
            buy_code_id=buy_code.buy_code_id,
            code=buy_code.code,
            dealer_id=buy_code.dealer_id,
            active=buy_code.active,
            usage_count=buy_code.usage_count,
            max_uses=buy_code.max_uses,
            remaining_uses=buy_code.remaining_uses,
            expires_at=buy_code.expires_at,
            created_at=buy_code.created_at,
        )


class BuyCodeCreateRequest(ApiModel):
    dealer_id: int
    code: Optional[str] = Field(None, min_length=4, max_length=32)
    max_uses: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def expiry_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return parse_optional_utc_datetime(value)


class BuyCodeUpdateRequest(ApiModel):
    active: bool


# ============================================================================
# Media Models
# ============================================================================

class SignedUploadRequest(ApiModel):
    filename: str = Field(..., min_length=1)
    content_type: str = Field(..., min_length=1)


class SignedUploadResponse(ApiModel):
    path: str
    signed_url: str
    token: str
