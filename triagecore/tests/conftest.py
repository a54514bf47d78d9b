from __future__ import annotations

from datetime import datetime, time, timezone

import pytest

from triagecore.core.audit.logger import AuditLogger
from triagecore.core.audit.sinks import InMemoryAuditSink
from triagecore.core.config import Settings
from triagecore.core.intake.phases import screening_from_text
from triagecore.core.registry.zones import get_registry
from triagecore.schemas.intake import CHECKPOINTS, BodySelection, SelectionSet
from triagecore.schemas.providers import Clinic, GeoPoint, ProviderProfile, ProviderRoster, TimeSlot

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
LAHORE = GeoPoint(latitude=31.5204, longitude=74.3587)


@pytest.fixture(scope="session")
def registry():
    return get_registry()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def negative_screening():
    return screening_from_text({checkpoint: "no" for checkpoint in CHECKPOINTS})


def make_selection(zone_id="lower_extremity.left_knee", intensity=3, onset="gradual", **extra):
    return BodySelection(zone_id=zone_id, intensity=intensity, onset=onset, timestamp=NOW, **extra)


def make_set(*selections, complaint="pain"):
    return SelectionSet(selections=tuple(selections), primary_complaint=complaint)


def make_provider(provider_id="doc-1", **overrides):
    slot = TimeSlot(day="monday", start=time(9), end=time(13))
    payload = dict(
        id=provider_id,
        full_name=f"Dr. {provider_id}",
        active=True,
        verified=True,
        specialties=("general_medicine",),
        consultation_modes=("ONLINE", "PHYSICAL"),
        languages=("urdu", "english"),
        experience_years=10,
        rating=4.0,
        clinics=(Clinic(name="Main clinic", city="Lahore", location=LAHORE, schedule=(slot,)),),
        online_schedule=(slot,),
    )
    payload.update(overrides)
    return ProviderProfile(**payload)


@pytest.fixture
def providers():
    return (
        make_provider("card-1", specialties=("cardiology",), experience_years=22, rating=5.0),
        make_provider("card-2", specialties=("cardiology",), consultation_modes=("PHYSICAL",)),
        make_provider("gp-1"),
        make_provider("ortho-1", specialties=("orthopedics",), experience_years=8),
        make_provider("peds-1", specialties=("pediatrics",), age_groups=("PEDIATRIC",)),
        make_provider("off-1", specialties=("cardiology",), active=False),
        make_provider("new-1", specialties=("orthopedics",), verified=False),
    )


@pytest.fixture
def roster(providers):
    return ProviderRoster(providers=providers, fetched_at=NOW, source="test")


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def audit(audit_sink):
    return AuditLogger(audit_sink, clock=lambda: NOW)
