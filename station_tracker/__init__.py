"""
Station Tracker Package

This package tracks the live ground position of a crewed space station from
periodically refreshed CelesTrak element sets, propagated with SGP4.

Modules:
    tle_codec: Fixed-width two-line element encoding and decoding
    propagation: SGP4 propagation adapter
    ground_track: TEME to geodetic projection and longitude normalization
    dateline: Orbit path splitting at the international dateline
    cache: Time-to-live element cache over a key/value store
    celestrak: CelesTrak GP JSON client with endpoint fallback
    acquisition: Cache, network and fallback acquisition pipeline
    scheduler: Per-station periodic timers on the asyncio loop
    tracker: StationTracker facade tying the pieces together

References:
    Vallado, D. A., Crawford, P., Hujsak, R., & Kelso, T. S. (2006).
    Revisiting Spacetrack Report #3. AIAA 2006-6753.
"""

__version__ = "1.0.0"
