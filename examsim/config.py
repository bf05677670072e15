from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List

from .store import DEFAULT_EXAMS_KEY
from .session import CURRENT_USER_KEY, USERS_KEY


@dataclass
class LoggingConfig:
    level: str = field(default_factory=lambda: os.getenv("EXAMSIM_LOG_LEVEL", "INFO"))
    log_dir: str = field(default_factory=lambda: os.getenv("EXAMSIM_LOG_DIR", "logs"))
    filename: str = "examsim.log"
    structured: bool = False

    def file_path(self) -> Path:
        return Path(self.log_dir) / self.filename


@dataclass
class StorageConfig:
    data_dir: str = field(default_factory=lambda: os.getenv("EXAMSIM_DATA_DIR", ".examsim"))
    exams_key: str = DEFAULT_EXAMS_KEY
    users_key: str = USERS_KEY
    current_user_key: str = CURRENT_USER_KEY


@dataclass
class ExportConfig:
    output_dir: str = field(default_factory=lambda: os.getenv("EXAMSIM_EXPORT_DIR", "exports"))
    formats: List[str] = field(default_factory=lambda: ["json", "csv"])


@dataclass
class AppConfig:
    logging: LoggingConfig = None  # type: ignore[assignment]
    storage: StorageConfig = None  # type: ignore[assignment]
    export: ExportConfig = None  # type: ignore[assignment]

    @staticmethod
    def from_json(path: str | Path) -> "AppConfig":
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        return AppConfig(
            logging=LoggingConfig(**payload.get("logging", {})),
            storage=StorageConfig(**payload.get("storage", {})),
            export=ExportConfig(**payload.get("export", {})),
        )

    def to_json(self, path: str | Path) -> None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        with open(p, "w", encoding="utf-8") as f:
            json.dump({
                "logging": asdict(self.logging),
                "storage": asdict(self.storage),
                "export": asdict(self.export),
            }, f, indent=2, ensure_ascii=False)


# Provide safe defaults via a factory function for top-level config
def default_app_config() -> AppConfig:
    return AppConfig(
        logging=LoggingConfig(),
        storage=StorageConfig(),
        export=ExportConfig(),
    )
