import os
import sys
from pathlib import Path


def _load_dotenv_if_needed() -> None:
    # Keep tests offline and deterministic: never read .env under pytest
    if os.getenv("PYTEST_CURRENT_TEST") or "pytest" in sys.modules:
        return
    env_path = Path(os.getenv("UIGEN_ENV_FILE", ".env"))
    if not env_path.exists():
        return
    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            s = line.strip()
            if not s or s.startswith("#") or "=" not in s:
                continue
            key, val = s.split("=", 1)
            key = key.strip()
            if key.startswith("export "):
                key = key[len("export "):].strip()
            val = val.strip()
            if (val.startswith('"') and val.endswith('"')) or (val.startswith("'") and val.endswith("'")):
                val = val[1:-1]
            # Variables already present in the environment win
            if key and key not in os.environ:
                os.environ[key] = val
    except OSError:
        # Best-effort: an unreadable .env just means defaults apply
        pass


_load_dotenv_if_needed()
