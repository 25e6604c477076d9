import os
from pathlib import Path
from typing import Optional


def load_environments(env_path: str = ".env") -> None:
    env_file = Path(env_path)
    if not env_file.exists():
        return

    for raw_line in env_file.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'").strip('"')
        if key and key not in os.environ:
            os.environ[key] = value


def first_env(*names: str, default: Optional[str] = None) -> Optional[str]:
    """Return the first non-blank variable among ``names``."""
    load_environments()
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return default
