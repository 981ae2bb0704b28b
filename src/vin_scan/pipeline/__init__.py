"""
VIN Scan Pipeline Module
========================

Camera and manual-entry entry points.
"""

from .vin_pipeline import (
    ConfirmHook,
    ScanSource,
    ScanResult,
    VINScanPipeline,
    create_store,
    create_pipeline,
)

__all__ = [
    "ConfirmHook",
    "ScanSource",
    "ScanResult",
    "VINScanPipeline",
    "create_store",
    "create_pipeline",
]
