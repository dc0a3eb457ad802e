"""
Conversion between domain records and plain JSON-compatible dictionaries.
"""

from typing import Any, Dict, Optional

import pendulum
from pendulum import DateTime

from ..domain.clock import as_date
from ..domain.models import (
    Appointment,
    AppointmentStatus,
    DEFAULT_CLOSURE_REASON,
    Closure,
    OperatingConfig,
    Service,
    ShiftWindow,
)


def _instant(value: Optional[str]) -> Optional[DateTime]:
    return pendulum.parse(value) if value else None


def _iso(value: Optional[DateTime]) -> Optional[str]:
    return value.to_iso8601_string() if value is not None else None


def service_to_dict(service: Service) -> Dict[str, Any]:
    return {
        "id": service.id,
        "name": service.name,
        "duration": service.duration_minutes,
        "price": service.price,
        "isActive": service.is_active,
    }


def service_from_dict(data: Dict[str, Any]) -> Service:
    return Service(
        id=data["id"],
        name=data["name"],
        duration_minutes=int(data["duration"]),
        price=float(data["price"]),
        is_active=bool(data.get("isActive", True)),
    )


def config_to_dict(config: OperatingConfig) -> Dict[str, Any]:
    return {
        "morningSlot": {
            "openingTime": config.morning_window.opens,
            "closingTime": config.morning_window.closes,
        },
        "eveningSlot": {
            "openingTime": config.evening_window.opens,
            "closingTime": config.evening_window.closes,
        },
        "daysOff": list(config.days_off),
    }


def config_from_dict(data: Dict[str, Any]) -> OperatingConfig:
    morning = data["morningSlot"]
    evening = data["eveningSlot"]
    return OperatingConfig(
        morning_window=ShiftWindow(opens=morning["openingTime"], closes=morning["closingTime"]),
        evening_window=ShiftWindow(opens=evening["openingTime"], closes=evening["closingTime"]),
        days_off=tuple(data.get("daysOff", [])),
    )


def appointment_to_dict(appointment: Appointment) -> Dict[str, Any]:
    return {
        "id": appointment.id,
        "customerName": appointment.customer_name,
        "phoneNumber": appointment.phone_number,
        "date": appointment.calendar_date.isoformat(),
        "serviceId": appointment.service_id,
        "startTime": _iso(appointment.start_time),
        "endTime": _iso(appointment.end_time),
        "status": appointment.status.value,
        "createdAt": _iso(appointment.created_at),
    }


def appointment_from_dict(data: Dict[str, Any]) -> Appointment:
    return Appointment(
        id=data["id"],
        customer_name=data["customerName"],
        phone_number=data["phoneNumber"],
        calendar_date=as_date(data["date"]),
        service_id=data["serviceId"],
        start_time=_instant(data["startTime"]),
        end_time=_instant(data["endTime"]),
        status=AppointmentStatus(data.get("status", AppointmentStatus.SCHEDULED.value)),
        created_at=_instant(data.get("createdAt")),
    )


def closure_to_dict(closure: Closure) -> Dict[str, Any]:
    return {
        "id": closure.id,
        "startDate": closure.start_date.isoformat(),
        "endDate": closure.end_date.isoformat(),
        "isFullDay": closure.is_full_day,
        "startTime": closure.start_time,
        "endTime": closure.end_time,
        "reason": closure.reason,
    }


def closure_from_dict(data: Dict[str, Any]) -> Closure:
    return Closure(
        id=data["id"],
        start_date=as_date(data["startDate"]),
        end_date=as_date(data["endDate"]),
        is_full_day=bool(data.get("isFullDay", True)),
        start_time=data.get("startTime"),
        end_time=data.get("endTime"),
        reason=data.get("reason") or DEFAULT_CLOSURE_REASON,
    )
