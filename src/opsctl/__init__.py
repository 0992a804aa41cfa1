"""Operational helpers: EC2 instance starter and Docker resource reaper."""

__version__ = "0.1.0"
