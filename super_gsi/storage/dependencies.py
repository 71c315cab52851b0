"""Checks that the external Android platform tools are reachable."""

from __future__ import annotations

from typing import Iterable

from super_gsi.config import settings
from super_gsi.logging import LoggerFactory

from .command_runners import find_tool
from .exceptions import MissingToolError

REQUIRED_TOOLS = ("lpunpack", "lpmake", "simg2img", "img2simg", "tar", "gzip", "file")

log = LoggerFactory.for_system()


def check_dependencies(tools: Iterable[str] = REQUIRED_TOOLS) -> dict[str, str]:
    """Resolve every tool on PATH.

    Returns:
        Mapping of tool name to absolute path.

    Raises:
        MissingToolError: For the first tool that cannot be found.
    """
    log.info("Checking dependencies...")
    install_hint = settings.get_setting("install_hint", settings.DEFAULT_INSTALL_HINT)
    resolved: dict[str, str] = {}
    for tool in tools:
        path = find_tool(tool)
        if not path:
            raise MissingToolError(tool, install_hint)
        log.debug(f"{tool}: {path}")
        resolved[tool] = path
    log.success("All dependencies are installed")
    return resolved
