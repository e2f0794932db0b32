"""Tests for appointment business rules."""

from datetime import datetime

import pytest

import appointments
from appointments import (
    AppointmentError,
    AppointmentNotFound,
    SlotTaken,
    appointment_moment,
    create_appointment,
    format_time_to_ampm,
    is_past,
    is_valid_time,
    lookup_appointment,
    parse_date,
    update_appointment,
)
from schemas import AppointmentRequest


class TestTimeValidation:
    @pytest.mark.parametrize("value", ["00:00", "09:30", "12:00", "19:59", "23:59"])
    def test_accepts_24_hour_times(self, value):
        assert is_valid_time(value)

    @pytest.mark.parametrize("value", ["24:00", "9:30", "12:60", "29:15", "", None, "12:00pm", "09:30\n", 930])
    def test_rejects_malformed_times(self, value):
        assert not is_valid_time(value)


class TestFormatTime:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("00:30", "12:30 AM"),
            ("09:05", "9:05 AM"),
            ("12:00", "12:00 PM"),
            ("13:15", "1:15 PM"),
            ("23:59", "11:59 PM"),
        ],
    )
    def test_twelve_hour_clock(self, value, expected):
        assert format_time_to_ampm(value) == expected


class TestParseDate:
    def test_date_only_is_midnight(self):
        assert parse_date("2030-01-15") == datetime(2030, 1, 15)

    def test_offset_converted_to_naive_utc(self):
        assert parse_date("2030-01-15T10:30:00+02:00") == datetime(2030, 1, 15, 8, 30)
        assert parse_date("2030-01-15T10:30:00Z") == datetime(2030, 1, 15, 10, 30)

    def test_truncates_to_milliseconds(self):
        assert parse_date("2030-01-15T10:30:00.123456").microsecond == 123000

    @pytest.mark.parametrize("value", [None, "", "   ", "tomorrow", "2030-13-40"])
    def test_unparseable(self, value):
        assert parse_date(value) is None


class TestExpiry:
    def test_moment_combines_day_and_time(self):
        record = {"date": datetime(2030, 1, 15), "time": "14:45"}
        assert appointment_moment(record) == datetime(2030, 1, 15, 14, 45)

    def test_past_only_when_strictly_before_now(self):
        record = {"date": datetime(2030, 1, 15), "time": "14:45"}
        assert is_past(record, now=datetime(2030, 1, 15, 14, 46))
        assert not is_past(record, now=datetime(2030, 1, 15, 14, 45))
        assert not is_past(record, now=datetime(2030, 1, 15, 9, 0))


class TestSlotTaken:
    def test_message(self):
        exc = SlotTaken(datetime(2025, 6, 1), "10:00", "facial")
        assert exc.status_code == 200
        assert exc.message == (
            'The slot for 10:00 on Sun Jun 01 2025 for the service "facial" '
            "is already booked. Please select another time or service."
        )


class TestCreateAppointment:
    def test_validation_order_time_first(self, mongo):
        with pytest.raises(AppointmentError) as exc:
            create_appointment(AppointmentRequest(date="bad", time="25:00"))
        assert exc.value.message == appointments.INVALID_TIME

    def test_missing_name(self, mongo):
        with pytest.raises(AppointmentError) as exc:
            create_appointment(
                AppointmentRequest(phone="1", date="2099-01-01", time="10:00", service="facial")
            )
        assert exc.value.message == appointments.MISSING_FIELDS

    def test_unknown_service(self, mongo):
        with pytest.raises(AppointmentError) as exc:
            create_appointment(
                AppointmentRequest(
                    name="A", phone="1", date="2099-01-01", time="10:00", service="pedicure"
                )
            )
        assert exc.value.message == appointments.INVALID_SERVICE

    def test_trims_special_requests(self, mongo, booking):
        created = create_appointment(AppointmentRequest(**booking))
        stored = mongo.appointment.find_one({"phone": "5551234"})
        assert stored["specialRequests"] == "quiet room please"
        assert created["_id"] == str(stored["_id"])

    def test_race_loser_gets_conflict(self, mongo, booking, monkeypatch):
        create_appointment(AppointmentRequest(**booking))
        # Simulate a concurrent request that passed the pre-check
        monkeypatch.setattr(appointments, "find_slot", lambda *args, **kwargs: None)
        with pytest.raises(SlotTaken):
            create_appointment(AppointmentRequest(**{**booking, "phone": "5559999"}))
        assert mongo.appointment.count_documents({}) == 1


class TestUpdateAppointment:
    def test_not_found(self, mongo):
        with pytest.raises(AppointmentNotFound):
            update_appointment("000", AppointmentRequest(name="Nobody"))

    def test_special_requests_only_skips_conflict_check(self, mongo, booking, monkeypatch):
        create_appointment(AppointmentRequest(**booking))

        def fail(*args, **kwargs):
            raise AssertionError("conflict check should not run")

        monkeypatch.setattr(appointments, "find_slot", fail)
        updated = update_appointment("5551234", AppointmentRequest(specialRequests=" window seat "))
        assert updated["specialRequests"] == "window seat"

    def test_same_slot_does_not_conflict_with_itself(self, mongo, booking):
        create_appointment(AppointmentRequest(**booking))
        updated = update_appointment(
            "5551234", AppointmentRequest(date="2099-06-01", time="14:30", service="facial")
        )
        assert updated["time"] == "14:30"

    def test_empty_update_returns_existing(self, mongo, booking):
        created = create_appointment(AppointmentRequest(**booking))
        assert update_appointment("5551234", AppointmentRequest())["_id"] == created["_id"]

    def test_race_loser_gets_conflict(self, mongo, booking, monkeypatch):
        create_appointment(AppointmentRequest(**booking))
        create_appointment(AppointmentRequest(**{**booking, "phone": "5559999", "time": "16:00"}))
        # Simulate a concurrent request that passed the pre-check
        monkeypatch.setattr(appointments, "find_slot", lambda *args, **kwargs: None)
        with pytest.raises(SlotTaken):
            update_appointment("5559999", AppointmentRequest(time="14:30"))
        assert mongo.appointment.find_one({"phone": "5559999"})["time"] == "16:00"


class TestLookupAppointment:
    def test_future_appointment_kept(self, mongo, booking):
        create_appointment(AppointmentRequest(**booking))
        result = lookup_appointment("5551234", now=datetime(2099, 6, 1, 14, 0))
        assert result["pastAppointment"] is False
        assert result["appointment"]["time"] == "2:30 PM"
        assert mongo.appointment.count_documents({}) == 1

    def test_past_appointment_expired(self, mongo, booking):
        create_appointment(AppointmentRequest(**booking))
        result = lookup_appointment("5551234", now=datetime(2099, 6, 1, 15, 0))
        assert result["exists"] is True
        assert result["pastAppointment"] is True
        assert lookup_appointment("5551234") == {"exists": False}
