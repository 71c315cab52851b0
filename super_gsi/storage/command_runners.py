"""Command execution utilities for the external Android tools."""

import os
import shutil
import subprocess

from super_gsi.logging import LoggerFactory


def _tool_name(command) -> str:
    return os.path.basename(str(command[0])) if command else "?"


def _log_output(log, output) -> None:
    for line in (output or "").splitlines():
        if line.strip():
            log.bind(tags=["tools", "output"]).trace(line.rstrip())


def run_checked_command(command, input_text=None, cwd=None):
    """Run a command and raise RuntimeError if it fails."""
    command = [str(part) for part in command]
    log = LoggerFactory.for_tool(_tool_name(command))
    log.debug(f"Running command: {' '.join(command)}")
    result = subprocess.run(
        command,
        input=input_text,
        text=True,
        errors="replace",
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        cwd=cwd,
    )
    _log_output(log, result.stderr)
    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        stdout = (result.stdout or "").strip()
        message = stderr or stdout or "Command failed"
        raise RuntimeError(f"Command failed ({' '.join(command)}): {message}")
    return result.stdout


def run_command(command, cwd=None, ignore_patterns=()):
    """Run a command without raising; return the CompletedProcess.

    Output lines containing any of ``ignore_patterns`` are logged at DEBUG
    instead of WARNING when the command fails.
    """
    command = [str(part) for part in command]
    tool = _tool_name(command)
    log = LoggerFactory.for_tool(tool).bind(tags=["tools", tool])
    log.debug(f"Running command: {' '.join(command)}")
    result = subprocess.run(
        command,
        text=True,
        errors="replace",
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        cwd=cwd,
    )
    lowered_patterns = [pattern.lower() for pattern in ignore_patterns]
    for line in (result.stdout or "").splitlines():
        if not line.strip():
            continue
        if any(pattern in line.lower() for pattern in lowered_patterns):
            log.debug(line.rstrip())
        elif result.returncode != 0:
            log.warning(line.rstrip())
        else:
            log.bind(tags=["tools", "output"]).trace(line.rstrip())
    if result.returncode != 0:
        log.debug(f"{tool} exited with code {result.returncode}")
    return result


def find_tool(name):
    """Return the absolute path of ``name`` on PATH, or None."""
    return shutil.which(name)


__all__ = [
    "find_tool",
    "run_checked_command",
    "run_command",
]
