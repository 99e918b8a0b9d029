import subprocess
from importlib import metadata

# Overwritten by release builds
__version__ = "dev"


def get_version() -> str:
    """
    Version reported by the health endpoint.
    Priorities:
    1. Explicitly set __version__
    2. Installed distribution version, suffixed with the git commit when run from a checkout
    3. Fallback "dev"
    """
    if __version__ != "dev":
        return __version__

    try:
        version = metadata.version("wpsearch")
    except metadata.PackageNotFoundError:
        version = __version__

    try:
        cmd = ["git", "rev-parse", "--short", "HEAD"]
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        commit = result.stdout.strip()
    except (subprocess.CalledProcessError, FileNotFoundError):
        commit = ""

    return f"{version}+{commit}" if commit else version
