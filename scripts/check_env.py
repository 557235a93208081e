#!/usr/bin/env python3
"""
Environment and dependency checker for spm-export.

This utility verifies:
- Python version
- Required Python packages (import and minimum version)
- Optional helpers (pytest for the test suite)
"""

import argparse
import importlib
import importlib.metadata as importlib_metadata
import json
import re
import sys

REQUIRED_PYTHON_MIN = (3, 10)

# NOTE: Distribution/package names are not always the same as import names.
# We store both to avoid false "missing" reports (e.g. PyYAML -> import yaml).
REQUIRED_PACKAGES = [
    {"dist": "numpy", "import": "numpy", "min_version": "1.22.0"},
    {"dist": "matplotlib", "import": "matplotlib", "min_version": "3.6.0"},
    {"dist": "PyYAML", "import": "yaml", "min_version": "6.0.0"},
    {"dist": "Pillow", "import": "PIL", "min_version": "9.0.0"},
    {"dist": "gwyfile", "import": "gwyfile", "min_version": None},
]

OPTIONAL_PACKAGES = [
    {"dist": "pytest", "import": "pytest", "min_version": None},
]


def _version_tuple(text):
    parts = []
    for piece in text.split("."):
        m = re.match(r"(\d+)", piece)
        if not m:
            break
        parts.append(int(m.group(1)))
    return tuple(parts)


def _version_ok(installed, minimum):
    return _version_tuple(installed) >= _version_tuple(minimum)


def _dist_version(dist_name):
    try:
        return importlib_metadata.version(dist_name)
    except importlib_metadata.PackageNotFoundError:
        return None


def check_python_version():
    current = sys.version_info[:3]
    ok = current >= REQUIRED_PYTHON_MIN
    return {
        "component": "python",
        "required": True,
        "ok": ok,
        "detail": "%d.%d.%d (>= %d.%d required)" % (current + REQUIRED_PYTHON_MIN),
    }


def check_packages(reqs, required):
    results = []
    for req in reqs:
        dist_name = req.get("dist")
        import_name = req.get("import") or dist_name
        min_version = req.get("min_version")
        entry = {
            "component": "python-package:%s" % dist_name,
            "required": required,
            "ok": False,
            "detail": "",
        }
        try:
            importlib.import_module(import_name)
        except ImportError:
            entry["detail"] = "not installed" if required else "not installed (optional)"
            results.append(entry)
            continue

        installed_version = _dist_version(dist_name)
        if min_version and installed_version:
            entry["ok"] = _version_ok(installed_version, min_version)
            if entry["ok"]:
                entry["detail"] = "%s (>= %s)" % (installed_version, min_version)
            else:
                entry["detail"] = "%s (< %s)" % (installed_version, min_version)
        else:
            entry["ok"] = True
            entry["detail"] = "%s (no min specified)" % (installed_version or "unknown version")
        results.append(entry)
    return results


def format_human(results):
    lines = []
    for entry in results:
        if entry.get("ok"):
            status = "OK"
        else:
            status = "MISSING" if entry.get("required", True) else "WARN"
        lines.append("[%s] %-28s %s" % (status.ljust(7), entry.get("component", "unknown"), entry.get("detail", "")))
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Check Python dependencies for spm-export.")
    parser.add_argument("--json", action="store_true", help="Emit results as JSON instead of human-readable text.")
    args = parser.parse_args()

    results = [check_python_version()]
    results.extend(check_packages(REQUIRED_PACKAGES, required=True))
    results.extend(check_packages(OPTIONAL_PACKAGES, required=False))

    all_required_ok = all(entry.get("ok", False) or not entry.get("required", True) for entry in results)

    if args.json:
        print(json.dumps(results, indent=2))
    else:
        print(format_human(results))

    return 0 if all_required_ok else 1


if __name__ == "__main__":
    sys.exit(main())
