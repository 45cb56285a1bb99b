"""
Core package for Work Order Tracker

Contains the main tracker class and the exception hierarchy.
"""

from .tracker import WorkOrderTracker
from .exceptions import (
    WorkOrderError,
    AuthenticationRequired,
    AuthorizationDenied,
    NotFound,
    WorkOrderNotFoundError,
    PartNotFoundError,
    ValidationFailed,
    IllegalTransition,
    StoreError,
    TransientStoreError,
    PermanentStoreError,
    ConfigurationError,
    error_registry
)

__all__ = [
    "WorkOrderTracker",
    "WorkOrderError",
    "AuthenticationRequired",
    "AuthorizationDenied",
    "NotFound",
    "WorkOrderNotFoundError",
    "PartNotFoundError",
    "ValidationFailed",
    "IllegalTransition",
    "StoreError",
    "TransientStoreError",
    "PermanentStoreError",
    "ConfigurationError",
    "error_registry"
]
