"""proxyvm.version — package version (semver), bumped for each tagged release."""

__version__ = "0.1.0"

__all__ = ["__version__"]
