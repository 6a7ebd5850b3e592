"""deltainstaller - stream APK deltas straight into a package install session."""

__version__ = "0.1.0"
