import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from tablebook.admin.restaurants import (
    CreateRestaurantArgs,
    CreateStaffAssignmentArgs,
    UpdateRestaurantArgs,
    assign_staff,
    create_restaurant,
    delete_restaurant,
    list_restaurants,
    serialize_assignment,
    serialize_restaurant,
    update_restaurant,
)
from tablebook.booking.assignments import Identity
from tablebook.booking.availability import list_available_slots, serialize_slot
from tablebook.booking.errors import BookingError, map_validation_error
from tablebook.booking.slot_catalog import generate_slots
from tablebook.booking.transactions import (
    cancel_reservation,
    create_reservation,
    parse_create_reservation_args,
    parse_rebook_reservation_args,
    rebook_reservation,
    serialize_reservation,
)
from tablebook.booking.workflow import (
    VIEW_ACTIVE,
    confirm_reservation,
    list_customer_reservations,
    list_staff_reservations,
    staff_cancel_reservation,
)
from tablebook.db.session import SessionLocal
from tablebook.security.dependencies import require_admin_api_key, require_identity


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger("tablebook.backend")


logger = configure_logging()
app = FastAPI(title="TableBook Backend")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["x-request-id"] = request_id

    logger.info(
        json.dumps(
            {
                "event": "http_request",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )
    )
    return response


def _booking_error_response(exc: BookingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


def _invalid_args_response(exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"ok": False, **map_validation_error(exc)})


def _system_down_response(human_message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error_code": "SYSTEM_DOWN",
            "human_message": human_message,
        },
    )


@app.get("/health")
async def health():
    return JSONResponse(content={"ok": True})


@app.get("/v1/restaurants/{restaurant_id}/slots")
async def available_slots(
    restaurant_id: int,
    date: str = "",
    identity: Identity = Depends(require_identity),
) -> JSONResponse:
    db = SessionLocal()
    try:
        slots = list_available_slots(
            db=db,
            restaurant_id=restaurant_id,
            target_date=date,
            now=utc_now(),
        )
        return JSONResponse(
            content={
                "ok": True,
                "data": {
                    "restaurant_id": restaurant_id,
                    "date": date,
                    "slots": [serialize_slot(slot) for slot in slots],
                },
            }
        )
    except BookingError as exc:
        return _booking_error_response(exc)
    finally:
        db.close()


@app.post("/v1/reservations")
async def create_reservation_endpoint(
    payload: dict[str, Any],
    identity: Identity = Depends(require_identity),
) -> JSONResponse:
    try:
        args = parse_create_reservation_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        reservation = create_reservation(
            db=db,
            customer_id=identity.user_id,
            restaurant_id=args.restaurant_id,
            booking_date=args.date,
            slot_id=args.slot_id,
            party_size=args.party_size,
            now=utc_now(),
        )
        return JSONResponse(
            status_code=201,
            content={"ok": True, "data": {"reservation": serialize_reservation(reservation)}},
        )
    except BookingError as exc:
        return _booking_error_response(exc)
    except Exception:
        logger.exception("Unexpected failure creating reservation for customer_id=%s", identity.user_id)
        return _system_down_response("Temporary issue creating reservation.")
    finally:
        db.close()


@app.get("/v1/reservations")
async def my_reservations(
    show_cancelled: bool = False,
    identity: Identity = Depends(require_identity),
) -> JSONResponse:
    db = SessionLocal()
    try:
        reservations = list_customer_reservations(
            db=db,
            customer_id=identity.user_id,
            show_cancelled=show_cancelled,
        )
        return JSONResponse(
            content={
                "ok": True,
                "data": {"reservations": [serialize_reservation(item) for item in reservations]},
            }
        )
    finally:
        db.close()


@app.post("/v1/reservations/{reservation_id}/rebook")
async def rebook_reservation_endpoint(
    reservation_id: int,
    payload: dict[str, Any],
    identity: Identity = Depends(require_identity),
) -> JSONResponse:
    try:
        args = parse_rebook_reservation_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        reservation = rebook_reservation(
            db=db,
            customer_id=identity.user_id,
            reservation_id=reservation_id,
            new_slot_id=args.slot_id,
            new_party_size=args.party_size,
            now=utc_now(),
        )
        return JSONResponse(
            status_code=201,
            content={"ok": True, "data": {"reservation": serialize_reservation(reservation)}},
        )
    except BookingError as exc:
        return _booking_error_response(exc)
    except Exception:
        logger.exception("Unexpected failure rebooking reservation_id=%s", reservation_id)
        return _system_down_response("Temporary issue rebooking reservation.")
    finally:
        db.close()


@app.post("/v1/reservations/{reservation_id}/cancel")
async def cancel_reservation_endpoint(
    reservation_id: int,
    identity: Identity = Depends(require_identity),
) -> JSONResponse:
    db = SessionLocal()
    try:
        reservation = cancel_reservation(
            db=db,
            customer_id=identity.user_id,
            reservation_id=reservation_id,
        )
        return JSONResponse(
            content={"ok": True, "data": {"reservation": serialize_reservation(reservation)}}
        )
    except BookingError as exc:
        return _booking_error_response(exc)
    except Exception:
        logger.exception("Unexpected failure cancelling reservation_id=%s", reservation_id)
        return _system_down_response("Temporary issue cancelling reservation.")
    finally:
        db.close()


@app.get("/v1/staff/reservations")
async def staff_reservations(
    view: str = VIEW_ACTIVE,
    identity: Identity = Depends(require_identity),
) -> JSONResponse:
    db = SessionLocal()
    try:
        reservations = list_staff_reservations(db=db, identity=identity, view=view)
        return JSONResponse(
            content={
                "ok": True,
                "data": {
                    "view": view.lower(),
                    "reservations": [serialize_reservation(item) for item in reservations],
                },
            }
        )
    except BookingError as exc:
        return _booking_error_response(exc)
    finally:
        db.close()


@app.post("/v1/staff/reservations/{reservation_id}/confirm")
async def staff_confirm_reservation(
    reservation_id: int,
    identity: Identity = Depends(require_identity),
) -> JSONResponse:
    db = SessionLocal()
    try:
        reservation = confirm_reservation(db=db, identity=identity, reservation_id=reservation_id)
        return JSONResponse(
            content={"ok": True, "data": {"reservation": serialize_reservation(reservation)}}
        )
    except BookingError as exc:
        return _booking_error_response(exc)
    except Exception:
        logger.exception("Unexpected failure confirming reservation_id=%s", reservation_id)
        return _system_down_response("Temporary issue confirming reservation.")
    finally:
        db.close()


@app.post("/v1/staff/reservations/{reservation_id}/cancel")
async def staff_cancel_reservation_endpoint(
    reservation_id: int,
    identity: Identity = Depends(require_identity),
) -> JSONResponse:
    db = SessionLocal()
    try:
        reservation = staff_cancel_reservation(
            db=db,
            identity=identity,
            reservation_id=reservation_id,
        )
        return JSONResponse(
            content={"ok": True, "data": {"reservation": serialize_reservation(reservation)}}
        )
    except BookingError as exc:
        return _booking_error_response(exc)
    except Exception:
        logger.exception("Unexpected failure cancelling reservation_id=%s for staff", reservation_id)
        return _system_down_response("Temporary issue cancelling reservation.")
    finally:
        db.close()


@app.post("/v1/admin/slots/generate", dependencies=[Depends(require_admin_api_key)])
async def admin_generate_slots() -> JSONResponse:
    db = SessionLocal()
    try:
        created = generate_slots(db=db, now=utc_now())
        return JSONResponse(content={"ok": True, "data": {"created": created}})
    except Exception:
        db.rollback()
        logger.exception("Slot generation failed")
        return _system_down_response("Temporary issue generating time slots.")
    finally:
        db.close()


@app.post("/v1/admin/restaurants", dependencies=[Depends(require_admin_api_key)])
async def admin_create_restaurant(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = CreateRestaurantArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        restaurant = create_restaurant(db=db, args=args)
        return JSONResponse(
            content={"ok": True, "data": {"restaurant": serialize_restaurant(restaurant)}}
        )
    except Exception:
        db.rollback()
        logger.exception("Failed creating restaurant")
        return _system_down_response("Temporary issue creating restaurant.")
    finally:
        db.close()


@app.get("/v1/admin/restaurants", dependencies=[Depends(require_admin_api_key)])
async def admin_list_restaurants() -> JSONResponse:
    db = SessionLocal()
    try:
        restaurants = list_restaurants(db=db)
        return JSONResponse(
            content={
                "ok": True,
                "data": {"restaurants": [serialize_restaurant(item) for item in restaurants]},
            }
        )
    finally:
        db.close()


@app.patch("/v1/admin/restaurants/{restaurant_id}", dependencies=[Depends(require_admin_api_key)])
async def admin_update_restaurant(restaurant_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = UpdateRestaurantArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        restaurant = update_restaurant(db=db, restaurant_id=restaurant_id, args=args)
        if restaurant is None:
            return JSONResponse(
                status_code=404,
                content={
                    "ok": False,
                    "error_code": "RESTAURANT_NOT_FOUND",
                    "human_message": "Restaurant not found.",
                },
            )
        return JSONResponse(
            content={"ok": True, "data": {"restaurant": serialize_restaurant(restaurant)}}
        )
    except ValueError as exc:
        return JSONResponse(
            status_code=400,
            content={
                "ok": False,
                "error_code": "INVALID_ARGS",
                "human_message": str(exc),
            },
        )
    finally:
        db.close()


@app.delete("/v1/admin/restaurants/{restaurant_id}", dependencies=[Depends(require_admin_api_key)])
async def admin_delete_restaurant(restaurant_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        if not delete_restaurant(db=db, restaurant_id=restaurant_id):
            return JSONResponse(
                status_code=404,
                content={
                    "ok": False,
                    "error_code": "RESTAURANT_NOT_FOUND",
                    "human_message": "Restaurant not found.",
                },
            )
        return JSONResponse(content={"ok": True, "data": {"restaurant_id": restaurant_id}})
    finally:
        db.close()


@app.post("/v1/admin/staff_assignments", dependencies=[Depends(require_admin_api_key)])
async def admin_assign_staff(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = CreateStaffAssignmentArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        assignment = assign_staff(db=db, args=args)
        return JSONResponse(
            content={"ok": True, "data": {"assignment": serialize_assignment(assignment)}}
        )
    except LookupError as exc:
        return JSONResponse(
            status_code=404,
            content={
                "ok": False,
                "error_code": "RESTAURANT_NOT_FOUND",
                "human_message": str(exc),
            },
        )
    finally:
        db.close()
