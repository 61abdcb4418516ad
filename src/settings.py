"""
Application settings.

Settings are read once at startup from ``config/config.yaml`` and the process
environment, then passed explicitly to the app factory and the model layer.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union
import os
import logging

import yaml

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "config.yaml"
DEFAULT_PROMPTS_DIR = PROJECT_ROOT / "prompts"

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
DEFAULT_ALLOWED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")


@dataclass(frozen=True)
class TaskConfig:
    provider: str
    model: str
    params: Dict[str, Any]
    prompt_ref: Optional[str]  # e.g. "chart/analyze@v1"


@dataclass(frozen=True)
class ProviderConfig:
    type: str
    settings: Dict[str, Any]


@dataclass(frozen=True)
class Settings:
    port: int = 3002
    cors_origin: Optional[str] = None
    static_dir: Optional[Path] = None
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    allowed_mime_types: Tuple[str, ...] = DEFAULT_ALLOWED_MIME_TYPES
    openai_api_key: Optional[str] = None
    providers: Dict[str, ProviderConfig] = field(default_factory=dict)
    tasks: Dict[str, TaskConfig] = field(default_factory=dict)
    prompts_dir: Path = DEFAULT_PROMPTS_DIR

    @property
    def allowed_origins(self) -> list[str]:
        return [self.cors_origin or "*"]

    def task(self, name: str) -> TaskConfig:
        if name not in self.tasks:
            raise ValueError(f"Unknown task: {name}")
        return self.tasks[name]


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def _parse_providers(config: Dict[str, Any]) -> Dict[str, ProviderConfig]:
    if 'providers' not in config:
        raise ValueError("Config missing 'providers'")
    providers = {}
    for name, cfg in (config['providers'] or {}).items():
        if 'type' not in cfg:
            raise ValueError(f"Provider '{name}' missing type")
        providers[name] = ProviderConfig(type=cfg['type'], settings=dict(cfg.get('settings') or {}))
    return providers


def _parse_tasks(config: Dict[str, Any], providers: Dict[str, ProviderConfig]) -> Dict[str, TaskConfig]:
    if 'tasks' not in config:
        raise ValueError("Config missing 'tasks'")
    tasks = {}
    for task_name, task_cfg in (config['tasks'] or {}).items():
        if 'provider' not in task_cfg:
            raise ValueError(f"Task '{task_name}' missing provider")
        if 'model' not in task_cfg:
            raise ValueError(f"Task '{task_name}' missing model")
        if task_cfg['provider'] not in providers:
            raise ValueError(f"Task '{task_name}' references unknown provider '{task_cfg['provider']}'")
        tasks[task_name] = TaskConfig(
            provider=task_cfg['provider'],
            model=str(task_cfg['model']),
            params=dict(task_cfg.get('params') or {}),
            prompt_ref=task_cfg.get('prompt'),
        )
    return tasks


def load_settings(
    config_path: Optional[Union[Path, str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build the Settings object from the YAML config plus environment overrides.

    Recognized variables: OPENAI_API_KEY, OPENAI_MODEL, PORT, CORS_ORIGIN and
    CHART_RELAY_CONFIG (alternate config path). A missing API key is allowed
    here; it is reported per request instead.
    """
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get("CHART_RELAY_CONFIG") or DEFAULT_CONFIG_PATH)
    config = _read_yaml(path)

    providers = _parse_providers(config)
    tasks = _parse_tasks(config, providers)

    model_override = env.get("OPENAI_MODEL")
    if model_override:
        tasks = {
            name: TaskConfig(provider=t.provider, model=model_override, params=t.params, prompt_ref=t.prompt_ref)
            if providers[t.provider].type == "openai" else t
            for name, t in tasks.items()
        }

    server = config.get('server') or {}
    upload = config.get('upload') or {}

    port = env.get("PORT") or server.get('port', 3002)
    try:
        port = int(port)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid port: {port!r}")

    static_dir = server.get('static_dir')
    if static_dir:
        static_dir = Path(static_dir)
        if not static_dir.is_absolute():
            static_dir = PROJECT_ROOT / static_dir

    prompts_dir = Path(config.get('prompts_dir') or DEFAULT_PROMPTS_DIR)
    if not prompts_dir.is_absolute():
        prompts_dir = PROJECT_ROOT / prompts_dir

    settings = Settings(
        port=port,
        cors_origin=env.get("CORS_ORIGIN") or server.get('cors_origin'),
        static_dir=static_dir,
        max_upload_bytes=int(upload.get('max_bytes', DEFAULT_MAX_UPLOAD_BYTES)),
        allowed_mime_types=tuple(upload.get('allowed_mime_types') or DEFAULT_ALLOWED_MIME_TYPES),
        openai_api_key=env.get("OPENAI_API_KEY") or None,
        providers=providers,
        tasks=tasks,
        prompts_dir=prompts_dir,
    )
    logger.info(f"Loaded settings from {path} ({len(tasks)} tasks)")
    return settings
