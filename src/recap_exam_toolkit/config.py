"""运行配置：默认值 < config.yaml < RECAP_* 环境变量 < 命令行"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
import yaml
from recap_exam_toolkit.exam.selector import SelectionScope

logger = logging.getLogger(__name__)

ENV_PREFIX = "RECAP_"


@dataclass
class AppConfig:
    database_url: str = "sqlite:///recap.db"
    content_dir: str = "content"
    ingestion_interval: int = 3600           # 秒
    validity_interval: int = 86400           # 秒
    selection_scope: str = SelectionScope.EXAM.value
    log_level: str = "INFO"

    def __post_init__(self):
        self.ingestion_interval = int(self.ingestion_interval)
        self.validity_interval = int(self.validity_interval)
        self.selection_scope = SelectionScope(str(self.selection_scope).lower()).value
        self.log_level = str(self.log_level).upper()

    def merged(self, **overrides) -> "AppConfig":
        """返回应用了非 None 覆盖值的新配置"""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None and k in values})
        return AppConfig(**values)


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"配置文件顶层须为映射: {path}")
    return raw


def load_config(config_path: str | Path = "config.yaml", environ: dict | None = None) -> AppConfig:
    environ = os.environ if environ is None else environ
    names = {f.name for f in fields(AppConfig)}

    raw = _read_yaml(Path(config_path))
    unknown = sorted(set(raw) - names)
    if unknown:
        logger.warning("忽略未知配置项: %s", ", ".join(unknown))
    values = {k: v for k, v in raw.items() if k in names}

    for name in names:
        env_value = environ.get(ENV_PREFIX + name.upper())
        if env_value:
            values[name] = env_value
    return AppConfig(**values)
