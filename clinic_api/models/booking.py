from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# --- Incoming Request Models ---

# Fields stay optional so missing values surface as a 400 from the service,
# not as a schema error.
class BookingRequest(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

# --- Domain Models ---

class BookingCreate(BaseModel):
    """Validated booking fields, ready to be stored."""
    model_config = ConfigDict(frozen=True)

    first_name: str
    last_name: str
    email: str
    phone: str
    location: str = ""
    booking_date: datetime

class Booking(BaseModel):
    """A persisted booking. Column names are snake_case, JSON is camelCase."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    location: str = ""
    booking_date: datetime
    created_at: datetime

class AdminToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject: str
    role: str
    issued_at: datetime
    expires_at: datetime

# --- Outgoing Response Models ---

class BookingCreatedResponse(BaseModel):
    id: str
    message: str = "Booking confirmed"

class BookingListResponse(BaseModel):
    bookings: List[Booking] = Field(default_factory=list)

class TokenResponse(BaseModel):
    token: str
    expiresIn: int
