"""试卷导出器注册表"""
from __future__ import annotations
import importlib
import pkgutil
from recap_exam_toolkit.exporters.base import BaseExporter

_REGISTRY: dict[str, type[BaseExporter]] = {}


def register(name: str):
    def decorator(cls: type[BaseExporter]) -> type[BaseExporter]:
        cls.name = name
        _REGISTRY[name] = cls
        return cls
    return decorator


def discover() -> None:
    for mod in pkgutil.iter_modules(__path__):
        if mod.name != "base":
            importlib.import_module(f"{__name__}.{mod.name}")


def get_exporter(name: str) -> BaseExporter:
    discover()
    if name not in _REGISTRY:
        raise KeyError(f"未知导出格式: {name}，可用: {', '.join(sorted(_REGISTRY))}")
    return _REGISTRY[name]()


def available() -> list[str]:
    discover()
    return sorted(_REGISTRY)
