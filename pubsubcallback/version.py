"""
Version information for pubsubcallback.
Follows Semantic Versioning 2.0.0 (https://semver.org/)
"""

__version__ = "1.0.0"


def get_version_info(version: str = __version__) -> dict:
    """
    Split a version string into its components.

    Returns:
        Dictionary with version details
    """
    parts = version.split('.')

    return {
        'version': version,
        'major': int(parts[0]) if len(parts) > 0 else 0,
        'minor': int(parts[1]) if len(parts) > 1 else 0,
        'patch': int(parts[2]) if len(parts) > 2 else 0,
        'prerelease': parts[3] if len(parts) > 3 else None
    }


VERSION = __version__
VERSION_INFO = get_version_info()
