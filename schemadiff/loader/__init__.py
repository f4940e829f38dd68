"""File adapters producing schema trees and rename rules."""

from schemadiff.loader.snapshot_loader import SnapshotLoadError, load_rules, load_snapshot

__all__ = ["SnapshotLoadError", "load_rules", "load_snapshot"]
