from __future__ import annotations

# Ensure repo-local apps are importable in tests without installing packages.
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]

for app_root in (repo_root / "apps" / "api", repo_root / "apps" / "trigger"):
    if str(app_root) not in sys.path:
        sys.path.insert(0, str(app_root))
