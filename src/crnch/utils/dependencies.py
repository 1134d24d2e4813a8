"""Shared utilities for checking external tool dependencies and their versions."""

import platform
import re
import shutil
import subprocess

# Command used to print each tool's version.
VERSION_COMMANDS = {
    "gs": ["gs", "--version"],
    "magick": ["magick", "--version"],
    "pngquant": ["pngquant", "--version"],
    "oxipng": ["oxipng", "--version"],
    "jpegoptim": ["jpegoptim", "--version"],
}

# Package names per package manager.
PACKAGES = {
    "gs": {"pacman": "ghostscript", "apt": "ghostscript", "dnf": "ghostscript", "brew": "ghostscript"},
    "magick": {"pacman": "imagemagick", "apt": "imagemagick", "dnf": "ImageMagick", "brew": "imagemagick"},
    "pngquant": {"pacman": "pngquant", "apt": "pngquant", "dnf": "pngquant", "brew": "pngquant"},
    "oxipng": {"pacman": "oxipng", "apt": "oxipng", "dnf": "oxipng", "brew": "oxipng"},
    "jpegoptim": {"pacman": "jpegoptim", "apt": "jpegoptim", "dnf": "jpegoptim", "brew": "jpegoptim"},
}

INSTALL_COMMANDS = {
    "pacman": "sudo pacman -S {packages}",
    "apt": "sudo apt update && sudo apt install {packages}",
    "dnf": "sudo dnf install {packages}",
    "brew": "brew install {packages}",
}

# Tools each input format needs.
FORMAT_TOOLS = {
    "pdf": ["gs"],
    "png": ["oxipng", "pngquant", "magick"],
    "jpg": ["jpegoptim", "magick"],
    "jpeg": ["jpegoptim", "magick"],
}

# ImageMagick 6 ships `convert` only; the `magick` entry point needs 7.
MIN_VERSIONS = {
    "magick": (7,),
}


def parse_version_tuple(version_str: str) -> tuple[int, ...]:
    """Parse a version string like '1.4.6' or '10.02.1' into a tuple of ints."""
    return tuple(int(x) for x in version_str.split("."))


def tool_version(tool: str) -> str:
    """Return the first dotted version number the tool prints, or 'unknown'.

    Raises:
        RuntimeError: If the tool is not on PATH.
    """
    if shutil.which(tool) is None:
        raise RuntimeError(f"Required tool not found: {tool}")

    cmd = VERSION_COMMANDS.get(tool, [tool, "--version"])
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=5, check=False)
    except (OSError, subprocess.TimeoutExpired):
        return "unknown"

    match = re.search(r"(\d+(?:\.\d+)+)", result.stdout + result.stderr)
    return match.group(1) if match else "unknown"


def detect_package_manager() -> str | None:
    """Guess the platform package manager from the OS and distro."""
    system = platform.system()
    if system == "Darwin":
        return "brew"
    if system != "Linux":
        return None

    try:
        release = platform.freedesktop_os_release()
    except OSError:
        return None
    ids = {release.get("ID", "")} | set(release.get("ID_LIKE", "").split())
    if ids & {"arch", "manjaro", "endeavouros"}:
        return "pacman"
    if ids & {"debian", "ubuntu", "pop", "linuxmint"}:
        return "apt"
    if ids & {"fedora", "rhel", "centos"}:
        return "dnf"
    return None


def install_hint(missing: list[str]) -> str:
    """Install command(s) for the missing tools on this platform."""
    manager = detect_package_manager()
    managers = [manager] if manager else ["pacman", "apt", "brew"]
    lines = []
    for name in managers:
        packages = " ".join(PACKAGES[tool][name] for tool in missing if tool in PACKAGES)
        lines.append(INSTALL_COMMANDS[name].format(packages=packages))
    return "\n".join(f"   {line}" for line in lines)


def check_dependencies(tools: list[str]) -> dict[str, str]:
    """Verify every tool is available and recent enough.

    Returns:
        Mapping of tool name to detected version string.

    Raises:
        RuntimeError: If any tool is missing or its version is out of range.
    """
    versions = {}
    missing = []
    for tool in tools:
        try:
            versions[tool] = tool_version(tool)
        except RuntimeError:
            missing.append(tool)

    if missing:
        raise RuntimeError(
            f"Missing dependencies: {', '.join(missing)}\n"
            f"crnch relies on external tools. Install them with:\n{install_hint(missing)}"
        )

    for tool, min_version in MIN_VERSIONS.items():
        version_str = versions.get(tool)
        if version_str is None or version_str == "unknown":
            continue
        if parse_version_tuple(version_str) < min_version:
            raise RuntimeError(
                f"{tool} version {version_str} is not supported. "
                f"Required: >= {'.'.join(map(str, min_version))}"
            )

    return versions


def tools_for(extension: str) -> list[str]:
    """Tools needed to compress a file with the given extension (no dot)."""
    return FORMAT_TOOLS.get(extension.lower(), [])
