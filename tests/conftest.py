"""Shared fixtures for the schemadiff test-suite."""

from __future__ import annotations

import logging

import pytest

from schemadiff.models.schema import (
    ClassCategory,
    ClassNode,
    Multiplicity,
    PackageNode,
    PropertyNode,
)
from schemadiff.telemetry.profiling import ProfileCollector


@pytest.fixture(autouse=True)
def _fresh_profiler():
    """Give every test its own profiling collector."""
    ProfileCollector.reset()
    yield
    ProfileCollector.reset()


@pytest.fixture()
def restore_root_logger():
    """Undo handler and level changes made by ``configure_logging``."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture()
def parcel_reference() -> PackageNode:
    """Cadastre schema, release 1: ``Parcel`` with a single ``area`` property."""
    return PackageNode(
        id="EAPK_10",
        name="Cadastre",
        classes=[
            ClassNode(
                id="EAID_100",
                name="Parcel",
                category=ClassCategory.FEATURE_TYPE,
                documentation="A land parcel.",
                stereotypes=["featureType"],
                properties=[
                    PropertyNode(id="EAID_101", name="area", value_type="Real"),
                ],
            ),
        ],
    )


@pytest.fixture()
def parcel_input() -> PackageNode:
    """Cadastre schema, release 2: documentation extended and ``owner`` added."""
    return PackageNode(
        id="EAPK_20",
        name="Cadastre",
        classes=[
            ClassNode(
                id="EAID_200",
                name="Parcel",
                category=ClassCategory.FEATURE_TYPE,
                documentation="A land parcel, as surveyed.",
                stereotypes=["featureType"],
                properties=[
                    PropertyNode(id="EAID_201", name="area", value_type="Real"),
                    PropertyNode(
                        id="EAID_202",
                        name="owner",
                        value_type="Person",
                        multiplicity=Multiplicity(lower=0, upper=None),
                    ),
                ],
            ),
        ],
    )
