from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends

from appointments.api.deps import get_services
from appointments.models.booking import Booking, BookingRequest
from appointments.services.container import Services

router = APIRouter()


@router.post("/book")
async def book_appointment(
    req: BookingRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
):
    booking = await services.bookings.book_appointment(req, background_tasks)
    return {"message": "Appointment booked successfully", "booking": booking}


@router.get("/bookings", response_model=List[Booking])
async def list_bookings(services: Services = Depends(get_services)):
    return await services.bookings.list_bookings()


@router.post("/mark-arrived/{booking_id}")
async def mark_arrived(booking_id: str, services: Services = Depends(get_services)):
    booking = await services.arrivals.mark_arrived(booking_id)
    return {"message": "Marked as arrived", "booking": booking}
