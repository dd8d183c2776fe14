"""Active profile provider."""

from codefix.config import settings
from codefix.jobs.models import RegionProfile


def get_active_profile() -> RegionProfile:
    """Profile used for every remote call of a run. Read once at run start."""
    return RegionProfile(arn=settings.profile_arn, region=settings.profile_region)
