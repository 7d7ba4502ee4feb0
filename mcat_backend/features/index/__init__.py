"""
Index feature - filesystem scan and catalog reconciliation.
"""
from .reconciler import Classification, RenamePolicy, classify, reconcile
from .scanner import scan

__all__ = ["Classification", "RenamePolicy", "classify", "reconcile", "scan"]
