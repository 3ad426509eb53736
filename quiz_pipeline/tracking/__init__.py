"""
Pipeline tracking index: family scanners and the synchronizer.
"""

from .scanners import (
    FamilyScanner,
    ScannedUnit,
    ScanResult,
    build_scanners,
    write_manifest,
)
from .index import PipelineTracker

__all__ = [
    "FamilyScanner",
    "ScannedUnit",
    "ScanResult",
    "build_scanners",
    "write_manifest",
    "PipelineTracker",
]
