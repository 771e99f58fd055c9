"""Shared pytest fixtures for ShrinkTask tests."""
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator
from unittest.mock import patch

import pytest
import yaml

from shrinktask.infrastructure.config_manager import ConfigManager, set_global_config
from shrinktask.infrastructure.logger import Logger, LogLevel, set_global_logger
from shrinktask.task import ShrinkTask


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def quiet_logger() -> Logger:
    """Logger at DEBUG level that discards its output."""
    return Logger(name="shrinktask.test", level=LogLevel.DEBUG, handlers=[logging.NullHandler()])


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Remove SHRINKTASK_* variables from the environment."""
    cleaned = {k: v for k, v in os.environ.items() if not k.startswith("SHRINKTASK_")}
    with patch.dict(os.environ, cleaned, clear=True):
        yield


@pytest.fixture
def config(clean_env) -> ConfigManager:
    """Config manager with compiled defaults only."""
    return ConfigManager()


@pytest.fixture
def task(quiet_logger: Logger, config: ConfigManager) -> ShrinkTask:
    """Fresh task with a quiet logger and default ambient settings."""
    return ShrinkTask(logger=quiet_logger, config=config)


@pytest.fixture
def sample_document() -> Dict[str, Any]:
    """Provide a sample task document."""
    return {
        "jars": [
            {"injars": "build/classes"},
            {"injars": {"path": "libs/util.jar", "filter": "!META-INF/**"}},
            {"outjars": "build/app-min.jar"},
            {"injars": "libs/extra.jar"},
            {"outjars": "build/extra-min.jar"},
        ],
        "libraryjars": ["rt.jar"],
        "configuration": ["/lib/proguard-android.txt", "rules.pro"],
        "keepattributes": "Signature,*Annotation*",
        "dontwarn": "com.example.optional.**",
        "keep": [
            "public class com.example.Main { public static void main(java.lang.String[]); }",
        ],
        "keepnames": [
            {
                "name": "com.example.Api",
                "allowobfuscation": True,
                "members": [
                    {"method": {"access": "public", "type": "void", "name": "run", "parameters": ""}},
                ],
            }
        ],
        "assumenosideeffects": ["class android.util.Log { int d(...); }"],
        "dontobfuscate": True,
        "optimizationpasses": 3,
        "printmapping": "build/mapping.txt",
        "printseeds": True,
    }


@pytest.fixture
def document_file(temp_dir: Path, sample_document: Dict[str, Any]) -> Path:
    """Write the sample task document to a YAML file."""
    document_path = temp_dir / "shrink.yaml"
    with open(document_path, "w") as f:
        yaml.dump(sample_document, f)
    return document_path


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset global logger and config manager between tests."""
    yield
    set_global_logger(None)
    set_global_config(None)
