from rest_framework.throttling import AnonRateThrottle, UserRateThrottle


class BurstRateThrottle(AnonRateThrottle):
    """
    Strict IP-based throttling for registration and login attempts.
    Scope: 'burst' (configured in settings)
    """
    scope = 'burst'


class SustainedRateThrottle(UserRateThrottle):
    """
    General API usage.
    """
    scope = 'sustained'
