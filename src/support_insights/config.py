from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_PREFIX = "SUPPORT_INSIGHTS_"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _path(environ: Mapping[str, str], key: str) -> Optional[str]:
    v = (environ.get(ENV_PREFIX + key) or "").strip()
    return os.path.expanduser(v) if v else None


@dataclass
class Settings:
    personal_csv: Optional[str] = None
    tickets_csv: Optional[str] = None
    complaints_csv: Optional[str] = None
    out_dir: Optional[str] = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            personal_csv=_path(env, "PERSONAL_CSV"),
            tickets_csv=_path(env, "TICKETS_CSV"),
            complaints_csv=_path(env, "COMPLAINTS_CSV"),
            out_dir=_path(env, "OUT_DIR"),
            log_level=(env.get(ENV_PREFIX + "LOG_LEVEL") or "WARNING").strip().upper(),
        )

    def override(self, **values) -> "Settings":
        """Copy with every non-None keyword applied (CLI flags win over env)."""
        merged = dict(self.__dict__)
        merged.update({k: v for k, v in values.items() if v is not None})
        for key in ("personal_csv", "tickets_csv", "complaints_csv", "out_dir"):
            if merged[key]:
                merged[key] = os.path.expanduser(merged[key])
        merged["log_level"] = str(merged["log_level"]).upper()
        return Settings(**merged)


def setup_logging(level: str = "WARNING") -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
