import os
from dataclasses import dataclass
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parent.parent

def _is_container_runtime():
    if os.path.exists("/.dockerenv"):
        return True
    return os.path.isdir("/data")


def _default_root_paths():
    if _is_container_runtime():
        return {
            "data": Path("/data"),
            "config": Path("/config"),
            "logs": Path("/logs"),
        }
    base = PROJECT_ROOT / "data"
    return {
        "data": base,
        "config": base / "config",
        "logs": base / "logs",
    }


_DEFAULTS = _default_root_paths()

DATA_DIR = Path(os.environ.get("SOMI_DATA_DIR", _DEFAULTS["data"])).resolve()
CONFIG_DIR = Path(os.environ.get("SOMI_CONFIG_DIR", _DEFAULTS["config"])).resolve()
LOG_DIR = Path(os.environ.get("SOMI_LOG_DIR", _DEFAULTS["logs"])).resolve()
DB_PATH = Path(os.environ.get("SOMI_DB_PATH", DATA_DIR / "database" / "scores.sqlite")).resolve()


@dataclass(frozen=True)
class ServicePaths:
    log_dir: str
    db_path: str
    config_path: str


def ensure_dir(path):
    if path:
        os.makedirs(path, exist_ok=True)


def resolve_config_path(path=None):
    path = path or os.environ.get("SOMI_CONFIG_PATH")
    if not path:
        return os.path.join(CONFIG_DIR, "config.json")
    if os.path.isabs(path):
        return os.path.abspath(path)
    return os.path.abspath(os.path.join(CONFIG_DIR, path))


def build_service_paths(config_path=None):
    for d in (DB_PATH.parent, LOG_DIR, CONFIG_DIR):
        ensure_dir(d)
    return ServicePaths(
        log_dir=str(LOG_DIR),
        db_path=str(DB_PATH),
        config_path=resolve_config_path(config_path),
    )
