from fastapi import APIRouter, Depends, Response, status

from clinic_api.api.deps import get_booking_service, require_admin
from clinic_api.core.errors import MethodNotAllowed
from clinic_api.models.booking import AdminToken, BookingCreatedResponse, BookingListResponse, BookingRequest
from clinic_api.services.booking_service import BookingService

router = APIRouter()

BOOKINGS_ALLOW = "GET, POST, OPTIONS"

@router.post("/bookings", status_code=status.HTTP_201_CREATED, response_model=BookingCreatedResponse)
async def create_booking(req: BookingRequest, service: BookingService = Depends(get_booking_service)):
    booking = await service.create_booking(req)
    return BookingCreatedResponse(id=booking.id)

@router.get("/bookings", response_model=BookingListResponse)
async def list_bookings(
    admin: AdminToken = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    bookings = await service.list_bookings()
    return BookingListResponse(bookings=bookings)

@router.options("/bookings", status_code=status.HTTP_204_NO_CONTENT)
async def bookings_options():
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers={"Allow": BOOKINGS_ALLOW})

@router.api_route("/bookings", methods=["PUT", "PATCH", "DELETE"], include_in_schema=False)
async def bookings_method_not_allowed():
    raise MethodNotAllowed(BOOKINGS_ALLOW)
