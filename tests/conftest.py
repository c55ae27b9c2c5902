import sys
from pathlib import Path


# Ensure the package (and the shared fakes next to this file) are importable without installation
pkg_src = Path(__file__).resolve().parents[1] / "src"
tests_dir = Path(__file__).resolve().parent
for path in (pkg_src, tests_dir):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))
