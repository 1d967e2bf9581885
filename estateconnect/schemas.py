# Pydantic models (request/response DTOs) used by the API layer.
# JSON field names are camelCase on the wire; request bodies also accept snake_case.
from pydantic import BaseModel, Field, ConfigDict, field_validator, EmailStr
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Literal, Optional, Union
from datetime import datetime


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Plain acknowledgement payloads
class MessageResponse(ApiModel):
    message: str


class SuccessResponse(ApiModel):
    success: bool = True


# Authentication and user models

# Roles a user may pick at signup; "admin" is only created by bootstrap
SignupRole = Literal["customer", "owner"]
Role = Literal["customer", "owner", "admin"]


def _normalize_email(v: Any) -> Any:
    if isinstance(v, str):
        v = v.strip().lower()
    return v


# Request payload for user registration
class SignupRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=255)
    role: SignupRole

    # Normalize email input to lowercase without surrounding whitespace
    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip()
        return v


# Request payload for logging in
class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


# API response for a profile record
class UserRead(ApiModel):
    id: str
    email: str
    name: str
    role: Role
    is_active: bool
    created_at: datetime


class SignupResponse(ApiModel):
    user: UserRead
    access_token: str
    token_type: str = "bearer"
    message: str


# Bearer token response bundled with the current user profile
class TokenResponse(ApiModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class ProfileResponse(ApiModel):
    profile: UserRead


# Only name and email are caller-editable; role and activation are not
class ProfileUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip()
        return v


class UserList(ApiModel):
    users: List[UserRead]


# Properties

PropertyStatus = Literal["pending", "approved", "rejected", "sold"]


# Fields an owner supplies when listing a property
class PropertyCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    location: str = Field("", max_length=255)
    price: float = Field(..., ge=0)
    type: str = Field("house", min_length=1, max_length=50)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area: Optional[float] = Field(None, ge=0)
    images: List[str] = Field(default_factory=list)
    owner_verification: Optional[Dict[str, Any]] = None
    third_party_witness: Optional[Dict[str, Any]] = None
    # One of 1day|1week|1month|2months|3months; anything else falls back to 1month
    duration: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: str) -> str:
        # Trim surrounding whitespace before validation
        if isinstance(v, str):
            v = v.strip()
        return v


# Fields that may be explicitly cleared with null in a patch
NULLABLE_PROPERTY_FIELDS = {"bedrooms", "bathrooms", "area", "owner_verification", "third_party_witness"}


class PropertyUpdate(ApiModel):
    """Shallow patch of a listing.

    Server-assigned fields (id, owner*, createdAt, expiryDate, decision stamps) are
    not declared here and are therefore ignored if sent. status only accepts "sold".
    version, when sent, makes the update conditional on the stored version.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    price: Optional[float] = Field(None, ge=0)
    type: Optional[str] = Field(None, min_length=1, max_length=50)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area: Optional[float] = Field(None, ge=0)
    images: Optional[List[str]] = None
    owner_verification: Optional[Dict[str, Any]] = None
    third_party_witness: Optional[Dict[str, Any]] = None
    status: Optional[Literal["sold"]] = None
    version: Optional[int] = Field(None, ge=1)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip()
        return v

    def changes(self) -> Dict[str, Any]:
        """Column values to write: explicitly sent fields, minus control fields and nulls on required columns."""
        patch = self.model_dump(exclude_unset=True, exclude={"status", "version"})
        return {k: v for k, v in patch.items() if v is not None or k in NULLABLE_PROPERTY_FIELDS}


# Response shape when reading a property from the API
class PropertyRead(ApiModel):
    id: str
    title: str
    description: str
    location: str
    price: float
    type: str
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    area: Optional[float] = None
    images: List[str] = Field(default_factory=list)
    owner_verification: Optional[Dict[str, Any]] = None
    third_party_witness: Optional[Dict[str, Any]] = None
    status: PropertyStatus
    owner_id: str
    owner_name: str
    owner_email: str
    created_at: datetime
    updated_at: datetime
    expiry_date: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    version: int


class PropertyEnvelope(ApiModel):
    property: PropertyRead
    message: Optional[str] = None


class PropertyList(ApiModel):
    properties: List[PropertyRead]


# Admin review
class RejectRequest(ApiModel):
    reason: Optional[str] = Field(None, max_length=500)


# Diagnostics dump of stored listings
class DebugItem(ApiModel):
    index: int
    id: str
    has_title: bool
    status: str
    preview: str


class DebugProperties(ApiModel):
    total_items: int
    valid_properties: int
    pending_count: int
    approved_count: int
    rejected_count: int
    sold_count: int
    items: List[DebugItem]


# Bookings

BookingType = Literal["purchase", "rent"]
PaymentMethod = Literal["mobile_money", "bank_transfer", "cash"]
BookingStatus = Literal["pending", "confirmed", "cancelled"]


# Request payload for creating a booking; amount/paymentMethod record the payment intent only
class BookingCreate(ApiModel):
    property_id: str = Field(..., min_length=1)
    booking_type: BookingType
    payment_method: PaymentMethod
    amount: float = Field(..., ge=0)
    contact_info: Dict[str, Any] = Field(default_factory=dict)


# API response for a booking record
class BookingRead(ApiModel):
    id: str
    property_id: str
    customer_id: str
    customer_name: str
    customer_email: str
    owner_id: str
    booking_type: BookingType
    payment_method: str
    amount: float
    contact_info: Dict[str, Any] = Field(default_factory=dict)
    status: BookingStatus
    created_at: datetime
    updated_at: datetime
    version: int


# Stand-in for a listing that has been deleted since the booking was made
class PropertyPlaceholder(ApiModel):
    title: str = "Property Unavailable"
    location: str = "N/A"


class BookingWithProperty(BookingRead):
    property: Optional[Union[PropertyRead, PropertyPlaceholder]] = None


class BookingEnvelope(ApiModel):
    booking: BookingRead
    message: Optional[str] = None


class BookingList(ApiModel):
    bookings: List[BookingWithProperty]


# Owners only move a pending booking to one of the terminal states
class BookingStatusUpdate(ApiModel):
    status: Literal["confirmed", "cancelled"]


# Notifications
class NotificationRead(ApiModel):
    id: str
    type: str
    property_id: Optional[str] = None
    property_title: Optional[str] = None
    owner_name: Optional[str] = None
    message: str
    created_at: datetime
    read: bool


class NotificationList(ApiModel):
    notifications: List[NotificationRead]


# Favorites
class FavoriteCreate(ApiModel):
    property_id: str = Field(..., min_length=1)


class FavoriteIds(ApiModel):
    favorites: List[str]


# Image uploads
class UploadResponse(ApiModel):
    url: str
    path: str
