"""
Health Data Ingestion

Converts the upstream health-data payload into BiomarkerReadings and
derives BMI from the user's PII.
"""
from .health_data import (
    BloodBiomarker,
    BloodRange,
    HealthDataResponse,
    bmi_from_pii,
    parse_health_data,
)

__all__ = [
    "BloodBiomarker",
    "BloodRange",
    "HealthDataResponse",
    "bmi_from_pii",
    "parse_health_data",
]
