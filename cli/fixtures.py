"""Static sample dataset served when the backend is offline or not configured."""

from __future__ import annotations

SAMPLE_READINGS = (
    {"id": 5, "temperature": 27.4, "threshold_value": 30.0, "recorded_at": "2024-05-01T10:20:00+00:00"},
    {"id": 4, "temperature": 28.1, "threshold_value": 30.0, "recorded_at": "2024-05-01T10:15:00+00:00"},
    {"id": 3, "temperature": 30.6, "threshold_value": 30.0, "recorded_at": "2024-05-01T10:10:00+00:00"},
    {"id": 2, "temperature": 29.2, "threshold_value": 30.0, "recorded_at": "2024-05-01T10:05:00+00:00"},
    {"id": 1, "temperature": 26.8, "threshold_value": None, "recorded_at": "2024-05-01T10:00:00+00:00"},
)

SAMPLE_THRESHOLDS = (
    {"id": 2, "value": 30.0, "note": "Default alert level", "created_at": "2024-05-01T09:00:00+00:00"},
    {"id": 1, "value": 32.5, "note": None, "created_at": "2024-04-20T08:30:00+00:00"},
)
