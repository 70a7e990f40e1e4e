"""hostprep — provision a development machine with a fixed toolchain."""

__version__ = "0.1.0"
