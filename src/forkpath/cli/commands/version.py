"""Version command for forkpath CLI."""

import sys
from importlib.metadata import version, PackageNotFoundError

from forkpath.process.orchestrator import is_supported


def cmd_version() -> int:
    """Display version information.

    Returns:
        Exit code (always 0).
    """
    try:
        fp_version = version("forkpath")
    except PackageNotFoundError:
        fp_version = "development"

    print(f"forkpath {fp_version}")
    print(f"Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    print(f"Fork support: {'yes' if is_supported() else 'no'}")

    print("\nDependencies:")

    deps = [
        ("pyyaml", "YAML config support"),
        ("pydantic", "Config validation"),
    ]

    for pkg, desc in deps:
        try:
            pkg_version = version(pkg)
            status = f"v{pkg_version}"
        except PackageNotFoundError:
            status = "not installed"
        print(f"  {pkg}: {status} ({desc})")

    return 0
