"""Docker resource reaper."""

from opsctl.docker_cleanup.reaper import CleanupReport, DockerCleanupConfig, DockerReaper

__all__ = ["CleanupReport", "DockerCleanupConfig", "DockerReaper"]
