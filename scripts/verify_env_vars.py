"""
Compare the environment variables Settings reads against a deployment env file.

Usage:
  python scripts/verify_env_vars.py [path/to/.env]
"""
import re
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def find_settings_vars():
    """Find every alias declared on the Settings model."""
    content = (ROOT / "pressroom" / "config.py").read_text(encoding="utf-8")
    return sorted(set(re.findall(r'alias=["\']([A-Z0-9_]+)["\']', content)))


def read_env_file(path: Path):
    names = set()
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        names.add(line.split("=", 1)[0].removeprefix("export ").strip())
    return names


def verify(env_path: Path) -> int:
    code_vars = set(find_settings_vars())
    env_vars = read_env_file(env_path) if env_path.exists() else set()
    missing_in_env = sorted(code_vars - env_vars)
    unused_in_code = sorted(env_vars - code_vars)

    print("=== ENV VAR VERIFICATION ===")
    print(f"Settings reads: {len(code_vars)} vars")
    print(f"{env_path} has: {len(env_vars)} vars")
    print("")
    if missing_in_env:
        print(f"NOT SET (defaults apply) ({len(missing_in_env)}):")
        for v in missing_in_env:
            print(f"  - {v}")
    else:
        print("Every setting is set explicitly.")
    print("")
    if unused_in_code:
        print(f"UNUSED BY SETTINGS ({len(unused_in_code)}):")
        for v in unused_in_code:
            print(f"  - {v}")
    else:
        print("No unused env vars.")
    return 1 if "DATABASE_URL" in missing_in_env else 0


if __name__ == "__main__":
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else ROOT / ".env"
    sys.exit(verify(target))
