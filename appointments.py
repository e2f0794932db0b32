"""
Appointment business rules: request validation, slot conflicts, lazy expiry
and response shaping. Persistence goes through the database helpers.
"""
import logging
import re
from datetime import datetime, time as dtime, timezone
from typing import Optional

from pymongo.errors import DuplicateKeyError

from database import create_document, delete_document, find_document, update_document
from schemas import Appointment, AppointmentRequest

logger = logging.getLogger(__name__)

COLLECTION = "appointment"
SERVICES = ("facial", "massage", "haircut", "manicure")
SLOT_FIELDS = ("date", "time", "service")
TIME_PATTERN = re.compile(r"^([0-1]\d|2[0-3]):([0-5]\d)$")

INVALID_TIME = "Invalid time format (HH:mm required)"
INVALID_DATE = "Invalid date format"
INVALID_SERVICE = "Invalid service"
MISSING_FIELDS = "Name, phone, time, and service are required"
NOT_FOUND = "Appointment not found"


class AppointmentError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AppointmentNotFound(AppointmentError):
    status_code = 404

    def __init__(self, message: str = NOT_FOUND):
        super().__init__(message)


class SlotTaken(AppointmentError):
    """The requested slot is booked. Reported to clients as a normal 200 reply."""

    status_code = 200

    def __init__(self, date: datetime, time: str, service: str):
        super().__init__(
            f"The slot for {time} on {date.strftime('%a %b %d %Y')} for the service "
            f'"{service}" is already booked. Please select another time or service.'
        )
        self.date = date
        self.time = time
        self.service = service


def is_valid_time(value) -> bool:
    return isinstance(value, str) and TIME_PATTERN.fullmatch(value) is not None


def parse_date(value) -> Optional[datetime]:
    """Parse an ISO date or datetime string into a naive UTC datetime.

    Date-only strings map to midnight. Returns None when the value is empty
    or unparseable.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    # BSON dates keep millisecond precision
    return parsed.replace(microsecond=parsed.microsecond // 1000 * 1000)


def format_time_to_ampm(value: str) -> str:
    hours, minutes = value.split(":")
    hour = int(hours)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes} {suffix}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def appointment_moment(record: dict) -> datetime:
    """The day of the stored date at the stored HH:mm time."""
    day = record["date"]
    match = TIME_PATTERN.fullmatch(record.get("time") or "")
    if match is None:
        return day
    return datetime.combine(day.date(), dtime(int(match.group(1)), int(match.group(2))))


def is_past(record: dict, now: Optional[datetime] = None) -> bool:
    return appointment_moment(record) < (now or utcnow())


def serialize(record: dict) -> dict:
    data = dict(record)
    if "_id" in data:
        data["_id"] = str(data["_id"])
    return data


def find_by_phone(phone: str) -> Optional[dict]:
    return find_document(COLLECTION, {"phone": phone})


def find_slot(date: datetime, time: str, service: str, exclude_id=None) -> Optional[dict]:
    query = {"date": date, "time": time, "service": service}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return find_document(COLLECTION, query)


def ensure_slot_free(date: datetime, time: str, service: str, exclude_id=None) -> None:
    if find_slot(date, time, service, exclude_id=exclude_id) is not None:
        logger.info("Slot %s %s %s already booked", date.date(), time, service)
        raise SlotTaken(date, time, service)


def expire(record: dict) -> None:
    """Remove an appointment whose time has passed."""
    delete_document(COLLECTION, {"_id": record["_id"]})
    logger.info("Expired appointment %s for %s", record["_id"], record.get("phone"))


def lookup_appointment(phone: str, now: Optional[datetime] = None) -> dict:
    record = find_by_phone(phone)
    if record is None:
        return {"exists": False}

    past = is_past(record, now)
    if past:
        expire(record)

    appointment = serialize(record)
    appointment["time"] = format_time_to_ampm(record["time"])
    return {"exists": True, "appointment": appointment, "pastAppointment": past}


def create_appointment(payload: AppointmentRequest) -> dict:
    if not is_valid_time(payload.time):
        raise AppointmentError(INVALID_TIME)

    parsed_date = parse_date(payload.date)
    if parsed_date is None:
        raise AppointmentError(INVALID_DATE)

    if not (payload.name and payload.phone and payload.time and payload.service):
        raise AppointmentError(MISSING_FIELDS)

    if payload.service not in SERVICES:
        raise AppointmentError(INVALID_SERVICE)

    ensure_slot_free(parsed_date, payload.time, payload.service)

    document = Appointment(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        date=parsed_date,
        time=payload.time,
        service=payload.service,
        special_requests=payload.special_requests,
    ).to_document()
    try:
        document["_id"] = create_document(COLLECTION, document)
    except DuplicateKeyError:
        # lost the race against a concurrent booking of the same slot
        raise SlotTaken(parsed_date, payload.time, payload.service)

    logger.info("Created appointment %s for %s", document["_id"], document["phone"])
    return document


def update_appointment(phone: str, payload: AppointmentRequest) -> dict:
    fields = payload.model_dump(by_alias=True, exclude_unset=True)
    date_value = fields.pop("date", None)
    time_value = fields.pop("time", None)
    service_value = fields.pop("service", None)

    parsed_date = None
    if date_value:
        parsed_date = parse_date(date_value)
        if parsed_date is None:
            raise AppointmentError(INVALID_DATE)

    if time_value and not is_valid_time(time_value):
        raise AppointmentError(INVALID_TIME)

    if service_value and service_value not in SERVICES:
        raise AppointmentError(INVALID_SERVICE)

    update_fields = {key: value for key, value in fields.items() if key != "phone" or value}
    if isinstance(update_fields.get("specialRequests"), str):
        update_fields["specialRequests"] = update_fields["specialRequests"].strip()
    if parsed_date:
        update_fields["date"] = parsed_date
    if time_value:
        update_fields["time"] = time_value
    if service_value:
        update_fields["service"] = service_value

    existing = find_by_phone(phone)
    if existing is None:
        raise AppointmentNotFound()

    slot_date = parsed_date or existing.get("date")
    slot_time = time_value or existing.get("time")
    slot_service = service_value or existing.get("service")
    if (parsed_date or time_value or service_value) and slot_date and slot_time and slot_service:
        ensure_slot_free(slot_date, slot_time, slot_service, exclude_id=existing["_id"])

    if not update_fields:
        return serialize(existing)

    try:
        updated = update_document(COLLECTION, {"_id": existing["_id"]}, update_fields)
    except DuplicateKeyError:
        raise SlotTaken(slot_date, slot_time, slot_service)
    if updated is None:
        raise AppointmentNotFound()

    logger.info("Updated appointment %s (%s)", updated["_id"], ", ".join(sorted(update_fields)))
    return serialize(updated)


def delete_appointment(phone: str) -> dict:
    deleted = delete_document(COLLECTION, {"phone": phone})
    if deleted is None:
        raise AppointmentNotFound()
    logger.info("Deleted appointment %s for %s", deleted["_id"], phone)
    return serialize(deleted)
