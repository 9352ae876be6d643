"""Tests for Pydantic models and configuration."""
import pytest
from datetime import datetime
from pydantic import ValidationError


class TestTimeEntryModel:
    """Tests for TimeEntry model."""

    def test_time_entry_status_values(self):
        from app.models.time_entry import TimeEntryStatus

        assert TimeEntryStatus.ACTIVE.value == "ACTIVE"
        assert TimeEntryStatus.COMPLETED.value == "COMPLETED"
        assert TimeEntryStatus.PENDING_APPROVAL.value == "PENDING_APPROVAL"

    def test_time_entry_serializes_id(self):
        """Test the Mongo _id is exposed as id."""
        from app.models.time_entry import TimeEntry

        now = datetime(2024, 3, 4, 8, 0)
        entry = TimeEntry(
            _id="abc123",
            employee_id="emp1",
            clock_in_time=now,
            status="ACTIVE",
            created_at=now,
            updated_at=now,
        )

        assert entry.id == "abc123"
        assert entry.is_open is True
        dumped = entry.model_dump(by_alias=True)
        assert dumped["id"] == "abc123"
        assert "_id" not in dumped

    def test_pending_change_discriminator(self):
        from app.models.time_entry import PendingManualCreation, TimeEntry

        now = datetime(2024, 3, 4, 8, 0)
        entry = TimeEntry.model_validate(
            {
                "_id": "abc",
                "employee_id": "emp1",
                "clock_in_time": now,
                "clock_out_time": now,
                "status": "PENDING_APPROVAL",
                "pending_change": {
                    "kind": "manual_creation",
                    "reason": "Forgot",
                    "requested_by": "emp1",
                    "requested_at": now,
                },
                "created_at": now,
                "updated_at": now,
            }
        )

        assert isinstance(entry.pending_change, PendingManualCreation)

    def test_geolocation_bounds(self):
        from app.models.time_entry import GeoLocation

        with pytest.raises(ValidationError):
            GeoLocation(latitude=91, longitude=0)

    def test_manual_break_order(self):
        from app.models.break_entry import BreakType
        from app.models.time_entry import ManualBreak

        with pytest.raises(ValidationError):
            ManualBreak(
                break_type=BreakType.LUNCH,
                start_time=datetime(2024, 3, 4, 12, 30),
                end_time=datetime(2024, 3, 4, 12, 0),
            )

    def test_manual_entry_requires_reason(self):
        from app.models.time_entry import ManualEntryCreate

        with pytest.raises(ValidationError):
            ManualEntryCreate(
                employee_id="emp1",
                clock_in_time=datetime(2024, 3, 4, 8, 0),
                clock_out_time=datetime(2024, 3, 4, 16, 0),
                reason="",
                submitted_by="emp1",
            )

    def test_correction_is_empty(self):
        from app.models.time_entry import TimeEntryCorrection

        assert TimeEntryCorrection().is_empty() is True
        assert TimeEntryCorrection(notes="fix").is_empty() is False


class TestBreakModel:
    def test_default_paid_by_type(self):
        from app.models.break_entry import BreakType, default_paid

        assert default_paid(BreakType.LUNCH) is False
        assert default_paid(BreakType.SHORT_BREAK) is True
        assert default_paid(BreakType.PERSONAL) is False


class TestTimeTrackingConfig:
    """Tests for TimeTrackingConfig defaults and validation."""

    def test_defaults(self):
        from app.config import TimeTrackingConfig

        config = TimeTrackingConfig()

        assert config.allow_future_clock_in is False
        assert config.require_location is False
        assert config.max_daily_hours == 16
        assert config.overtime_threshold == 8
        assert config.double_time_threshold is None
        assert config.auto_clock_out_after_hours == 24
        assert config.require_approval_for_manual_entry is True
        assert config.require_approval_for_correction is True
        assert config.max_past_days_for_manual_entry == 30

    def test_double_time_must_exceed_overtime(self):
        from app.config import TimeTrackingConfig

        with pytest.raises(ValidationError):
            TimeTrackingConfig(overtime_threshold=8, double_time_threshold=8)

    def test_thresholds_must_be_positive(self):
        from app.config import TimeTrackingConfig

        with pytest.raises(ValidationError):
            TimeTrackingConfig(overtime_threshold=0)

    def test_settings_build_config(self):
        from app.config import Settings

        settings = Settings(
            mongodb_url="mongodb://localhost:27017",
            jwt_secret="s",
            time_overtime_threshold=7.5,
            time_require_approval_for_manual_entry=False,
        )

        config = settings.time_tracking_config()

        assert config.overtime_threshold == 7.5
        assert config.require_approval_for_manual_entry is False
        assert config.max_daily_hours == 16


class TestErrors:
    def test_error_serialization(self):
        from app.exceptions import ExcessiveHoursError

        error = ExcessiveHoursError(17.0, 16)

        assert error.to_dict() == {
            "code": "VALIDATION_ERROR",
            "kind": "VALIDATION",
            "message": "Total hours (17.0) exceeds maximum daily hours (16)",
            "details": {
                "hours": 17.0,
                "limit": 16,
                "errors": [
                    {
                        "field": "hours",
                        "message": "Total hours (17.0) exceeds maximum daily hours (16)",
                    }
                ],
            },
        }
