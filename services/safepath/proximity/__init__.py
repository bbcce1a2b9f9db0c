"""
Proximity resolution package.

Expanding-radius place search followed by parallel route-info enrichment.
"""

from services.safepath.proximity.resolver import DEFAULT_RADII_M, ProximityResolver

__all__ = ["DEFAULT_RADII_M", "ProximityResolver"]
