"""题库文件读取器注册表"""
from __future__ import annotations
import importlib
import pkgutil
from pathlib import Path
from recap_exam_toolkit.parsers.base import BaseParser

_REGISTRY: dict[str, type[BaseParser]] = {}


def register(name: str):
    def decorator(cls: type[BaseParser]) -> type[BaseParser]:
        cls.name = name
        _REGISTRY[name] = cls
        return cls
    return decorator


def discover() -> None:
    """导入本包内所有模块，触发 @register"""
    for mod in pkgutil.iter_modules(__path__):
        if mod.name != "base":
            importlib.import_module(f"{__name__}.{mod.name}")


def get_parser(name: str) -> BaseParser:
    discover()
    if name not in _REGISTRY:
        raise KeyError(f"未知题库格式: {name}，可用: {', '.join(sorted(_REGISTRY))}")
    return _REGISTRY[name]()


def parser_for(path: Path) -> BaseParser:
    """按文件后缀选择读取器"""
    discover()
    for cls in _REGISTRY.values():
        if path.suffix.lower() in cls.suffixes:
            return cls()
    raise KeyError(f"不支持的题库文件: {path.name}")


def available() -> list[str]:
    discover()
    return sorted(_REGISTRY)
