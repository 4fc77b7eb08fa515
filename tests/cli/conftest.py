import importlib.util

import pytest


def _has_module(modname: str) -> bool:
    return importlib.util.find_spec(modname) is not None


def pytest_collection_modifyitems(config, items):
    """Skip YAML-driven CLI tests when PyYAML (import name: 'yaml') is not installed."""
    if _has_module("yaml"):
        return
    skip_yaml = pytest.mark.skip(reason="optional dependency 'PyYAML' not installed")
    for item in items:
        if "yaml" in item.nodeid.lower():
            item.add_marker(skip_yaml)
