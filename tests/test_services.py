from datetime import datetime, timedelta, timezone

import pytest

from app.config import settings
from app.models import Account, CalendarEvent
from app.schemas import ActiveDoseOut, EmailConfigData
from app.services.account_service import account_status, compute_expiry
from app.services.billing_service import lifetime_expiry
from app.services.calendar_service import add_months, next_occurrence
from app.services.family_service import trial_end_date
from app.services.ip_lockout import IpLockout, WindowLimiter
from app.services.medicine_service import dose_status, parse_dose_min_time
from app.services.slug import generate_slug_with_number, validate_slug
from app.services.timezone import calculate_duration_minutes, format_for_response, to_utc

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


# -------------------- Slugs --------------------

@pytest.mark.parametrize("slug", ["my-family", "abc", "family-2024"])
def test_valid_slugs(slug):
    assert validate_slug(slug) == (True, None)


@pytest.mark.parametrize("slug", ["", "ab", "-abc", "abc-", "a--b", "Upper", "with space", "api", "setup", "x" * 51])
def test_invalid_slugs(slug):
    valid, error = validate_slug(slug)
    assert valid is False
    assert error


def test_slug_rejects_trailing_newline():
    assert validate_slug("abc\n")[0] is False


def test_generated_slug_with_number_is_valid():
    slug = generate_slug_with_number()
    assert validate_slug(slug)[0] is True
    assert slug.rsplit("-", 1)[1].isdigit()


# -------------------- Fechas --------------------

def test_to_utc_handles_offsets_and_naive_values():
    assert to_utc("2025-01-01T10:00:00+02:00") == datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)
    assert to_utc("2025-01-01T10:00:00") == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert to_utc("2025-01-01T10:00:00Z") == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_format_for_response():
    assert format_for_response(datetime(2025, 1, 1, 8, 30, 5, 123456)) == "2025-01-01T08:30:05.123Z"
    assert format_for_response(None) is None


def test_duration_minutes():
    assert calculate_duration_minutes("2025-01-01T10:00:00Z", "2025-01-01T11:45:00Z") == 105


# -------------------- Medicamentos --------------------

def test_parse_dose_min_time_formats():
    assert parse_dose_min_time("01:02:30") == timedelta(days=1, hours=2, minutes=30)
    assert parse_dose_min_time("06:00") == timedelta(hours=6)
    assert parse_dose_min_time("six hours") is None
    assert parse_dose_min_time(None) is None
    assert parse_dose_min_time("06:00\n") is None
    assert parse_dose_min_time("01:02:30\n") is None


def test_dose_status():
    status = dose_status(NOW - timedelta(hours=2), "00:04:00", now=NOW)
    assert status["is_safe"] is False
    assert status["minutes_remaining"] == 120
    assert status["next_dose_time"] == NOW + timedelta(hours=2)

    status = dose_status(NOW - timedelta(hours=5), "00:04:00", now=NOW)
    assert status["is_safe"] is True
    assert status["minutes_remaining"] == 0


def test_dose_status_uses_default_interval():
    status = dose_status(NOW - timedelta(minutes=10), None, now=NOW)
    assert status["minutes_remaining"] == 20


# -------------------- Planes --------------------

def test_trial_ends_at_end_of_day():
    end = trial_end_date(NOW)
    assert end.date() == (NOW + timedelta(days=14)).date()
    assert (end.hour, end.minute, end.second) == (23, 59, 59)


def test_lifetime_expiry_on_leap_day():
    assert lifetime_expiry(datetime(2000, 2, 29, tzinfo=timezone.utc)).date().isoformat() == "2100-02-28"


def test_expiry_only_applies_in_saas(monkeypatch):
    account = Account(email="a@b.co", password="x", betaparticipant=False, trial_ends=NOW - timedelta(days=1))
    monkeypatch.setattr(settings, "deployment_mode", "selfhosted")
    assert compute_expiry(account, now=NOW) == (False, None, None)

    monkeypatch.setattr(settings, "deployment_mode", "saas")
    expired, kind, _ = compute_expiry(account, now=NOW)
    assert (expired, kind) == (True, "TRIAL_EXPIRED")

    account.betaparticipant = True
    assert compute_expiry(account, now=NOW)[0] is False


def test_expiry_without_any_plan(monkeypatch):
    monkeypatch.setattr(settings, "deployment_mode", "saas")
    account = Account(email="a@b.co", password="x", betaparticipant=False)
    assert compute_expiry(account, now=NOW)[:2] == (True, "NO_PLAN")


def test_account_status_values():
    account = Account(email="a@b.co", password="x", betaparticipant=False, closed=False)
    assert account_status(account, None) == ("no_family", False)

    family = object()
    account.plan_type = "full"
    assert account_status(account, family) == ("active", True)

    account.closed = True
    assert account_status(account, family) == ("closed", False)


# -------------------- Límites por IP --------------------

def test_ip_lockout_blocks_after_max_attempts():
    lockout = IpLockout(max_attempts=3, lockout_seconds=60)
    assert lockout.record_failure("1.2.3.4") == (False, 0.0)
    lockout.record_failure("1.2.3.4")
    locked, _ = lockout.record_failure("1.2.3.4")
    assert locked is True
    assert lockout.check("1.2.3.4")[0] is True
    assert lockout.check("5.6.7.8") == (False, 0.0)

    lockout.reset("1.2.3.4")
    assert lockout.check("1.2.3.4") == (False, 0.0)


def test_window_limiter():
    limiter = WindowLimiter(max_attempts=2, window_seconds=60)
    for _ in range(2):
        assert limiter.check("ip")[0] is True
        limiter.record("ip")
    allowed, minutes = limiter.check("ip")
    assert allowed is False
    assert minutes == 1


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_ip_lockout_forgets_stale_entries():
    clock = FakeClock()
    lockout = IpLockout(max_attempts=3, lockout_seconds=60, attempt_ttl=600, clock=clock)
    lockout.record_failure("10.0.0.1")
    for _ in range(3):
        lockout.record_failure("10.0.0.2")
    assert len(lockout) == 2

    # Bloqueo vencido: fuera. Fallo de hace 5 minutos: sigue
    clock.now += 300
    lockout.record_failure("10.0.0.3")
    assert len(lockout) == 2
    assert lockout.check("10.0.0.2") == (False, 0.0)

    # El primer fallo supera el TTL
    clock.now += 400
    lockout.record_failure("10.0.0.4")
    assert len(lockout) == 2
    assert lockout.record_failure("10.0.0.3") == (False, 0.0)
    assert lockout.check("10.0.0.2") == (False, 0.0)


def test_ip_lockout_attempts_expire_before_lockout():
    clock = FakeClock()
    lockout = IpLockout(max_attempts=3, lockout_seconds=60, attempt_ttl=600, clock=clock)
    lockout.record_failure("10.0.0.1")
    lockout.record_failure("10.0.0.1")
    clock.now += 601
    assert lockout.record_failure("10.0.0.1") == (False, 0.0)


def test_window_limiter_drops_expired_windows():
    clock = FakeClock()
    limiter = WindowLimiter(max_attempts=2, window_seconds=60, clock=clock)
    limiter.record("a")
    limiter.record("b")
    assert len(limiter) == 2

    clock.now += 61
    limiter.record("c")
    assert len(limiter) == 1
    assert limiter.check("a") == (True, 0)


# -------------------- Alias JSON --------------------

def test_aliases_after_digits():
    config = EmailConfigData.model_validate({"smtp2goApiKey": "key"})
    assert config.smtp2go_api_key == "key"
    assert "smtp2goApiKey" in config.model_dump(by_alias=True)

    dose = ActiveDoseOut(
        medicine_id="m", medicine_name="Paracetamol", last_dose_time=NOW, dose_amount=2,
        total_in_24h=4, is_safe=True, minutes_remaining=0,
    )
    assert dose.model_dump(by_alias=True)["totalIn24h"] == 4


# -------------------- Calendario --------------------

def _event(start, pattern=None, end=None):
    return CalendarEvent(start_time=start, recurring=pattern is not None, recurrence_pattern=pattern, recurrence_end=end)


def test_add_months_clamps_day():
    assert add_months(datetime(2025, 1, 31, 9, tzinfo=timezone.utc), 1) == datetime(2025, 2, 28, 9, tzinfo=timezone.utc)
    assert add_months(datetime(2024, 2, 29, tzinfo=timezone.utc), 12) == datetime(2025, 2, 28, tzinfo=timezone.utc)
    assert add_months(datetime(2025, 11, 15, tzinfo=timezone.utc), 3) == datetime(2026, 2, 15, tzinfo=timezone.utc)


def test_next_occurrence_one_off():
    assert next_occurrence(_event(NOW + timedelta(hours=1)), NOW) == NOW + timedelta(hours=1)
    assert next_occurrence(_event(NOW - timedelta(hours=1)), NOW) is None


@pytest.mark.parametrize("pattern, start, expected", [
    ("DAILY", NOW - timedelta(days=2, hours=1), NOW + timedelta(hours=23)),
    ("WEEKLY", NOW - timedelta(days=8), NOW + timedelta(days=6)),
    ("BIWEEKLY", NOW - timedelta(days=14), NOW),
    ("MONTHLY", datetime(2025, 1, 31, 8, tzinfo=timezone.utc), datetime(2025, 6, 30, 8, tzinfo=timezone.utc)),
    ("YEARLY", datetime(2020, 3, 1, tzinfo=timezone.utc), datetime(2026, 3, 1, tzinfo=timezone.utc)),
])
def test_next_occurrence_recurring(pattern, start, expected):
    assert next_occurrence(_event(start, pattern), NOW) == expected


def test_next_occurrence_respects_end_and_custom():
    start = NOW - timedelta(days=3)
    assert next_occurrence(_event(start, "DAILY", end=NOW - timedelta(days=1)), NOW) is None
    assert next_occurrence(_event(start, "DAILY", end=NOW + timedelta(days=1)), NOW) == NOW
    assert next_occurrence(_event(start, "CUSTOM"), NOW) is None
