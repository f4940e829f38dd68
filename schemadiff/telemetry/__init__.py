"""Lightweight runtime telemetry for the diff engine."""

from schemadiff.telemetry.profiling import ProfileCollector, profile_operation

__all__ = ["ProfileCollector", "profile_operation"]
