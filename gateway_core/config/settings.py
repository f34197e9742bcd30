"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。

与旧版不同，这里不再在模块导入时创建全局 settings 单例：
调用方通过 load_settings() 显式构造配置对象，再传给各个客户端。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _flatten_yaml(data: Dict[str, Any]) -> Dict[str, Any]:
    """把 `openrouter: {api_key: ...}` 这类嵌套段落展开成 `openrouter_api_key`。"""

    flat: Dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                flat[f"{key}_{sub_key}".lower()] = sub_value
        else:
            flat[str(key).lower()] = value
    return flat


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("GATEWAY_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return _flatten_yaml(data)
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class GatewaySettings(BaseSettings):
    """网关配置（使用 Pydantic）。"""

    # ---- OpenRouter ----
    openrouter_api_key: Optional[str] = Field(default=None, description="OpenRouter API 密钥")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenRouter API 基础URL",
    )
    openrouter_model: str = Field(
        default="openai/gpt-4o-mini",
        description="对话使用的模型 ID",
    )
    openrouter_image_model: str = Field(
        default="openai/dall-e-3",
        description="图片生成使用的模型 ID",
    )
    http_timeout: Optional[float] = Field(
        default=None,
        ge=1.0,
        description="HTTP 超时时间（秒），为空表示不设置客户端超时",
    )

    # ---- 日志与观测 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")
    event_log_file: Optional[str] = Field(
        default=None,
        description="调用事件 JSON Lines 文件路径，为空则只写日志",
    )

    # ---- 会话 ----
    max_context_turns: int = Field(default=20, ge=1, le=100, description="最大上下文轮数")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("openrouter_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("openrouter_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


def load_settings(**overrides: Any) -> GatewaySettings:
    """构造一份新的配置对象。

    overrides 优先级最高，常用于测试或由上层 UI 直接注入配置。
    """

    return GatewaySettings(**overrides)
