"""
Version information for the topology optimization core.
"""

# Version follows semantic versioning: MAJOR.MINOR.PATCH
__version__ = "0.3.0"

# Version components for programmatic access
VERSION_INFO = tuple(int(x) for x in __version__.split('.'))

# Development status
DEV_STATUS = "beta"  # alpha, beta, rc, stable


def get_version_info():
    """
    Get version information.

    Returns:
        dict: Version string, components and development status
    """
    return {
        "version": __version__,
        "version_info": VERSION_INFO,
        "dev_status": DEV_STATUS,
    }
