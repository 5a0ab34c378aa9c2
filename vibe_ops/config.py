"""基础配置与环境变量加载器，支持 .env 文件与系统环境并存."""
from __future__ import annotations

import os
from pathlib import Path

_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"


def _load_env_file(path: Path = _ENV_PATH) -> None:
    """读取 .env 文件到 os.environ，不覆盖已存在的环境变量."""
    if not path.exists():
        return
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()


def _get_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def _get_non_negative_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value < 0:
        raise ValueError(f"{name} must be >= 0")
    return value


VERIFY_MAX_ATTEMPTS: int = _get_positive_int("VIBE_OPS_VERIFY_MAX_ATTEMPTS", 2)
VERIFY_RETRY_DELAY_SECONDS: float = _get_non_negative_float(
    "VIBE_OPS_VERIFY_RETRY_DELAY_SECONDS", 0.05
)
GRAPH_DB_PATH: str = os.getenv("VIBE_OPS_GRAPH_DB_PATH", str(Path("data") / "flows.db"))
DEFAULT_EDGE_TYPE: str = os.getenv("VIBE_OPS_DEFAULT_EDGE_TYPE", "default")
