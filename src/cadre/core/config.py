"""Layered configuration for cadre.

Loads and merges configuration from:
1. Default settings (built-in)
2. Config file (.cadre/config.yaml, or an explicit path)
3. Environment variables (DEFAULT_MODEL, TEMPERATURE, MAX_TOKENS, CADRE_AI_PROVIDER)
4. CLI parameters (override)
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Optional

import yaml

CONFIG_DIR = ".cadre"

DEFAULT_CONFIG: dict = {
    "ai": {
        "provider": "openai",
        "temperature": 0.7,
        "timeout_seconds": 120,
        "retry_attempts": 3,
        "retry_delay_seconds": 5,
        "openai": {
            "model": "gpt-3.5-turbo",
            "api_key_env": "OPENAI_API_KEY",
            "max_tokens": 1000,
        },
        "anthropic": {
            "model": "claude-sonnet-4-5-20250929",
            "api_key_env": "ANTHROPIC_API_KEY",
            "max_tokens": 1000,
        },
        "ollama": {
            "endpoint": "http://localhost:11434",
            "model": "llama3.1:8b",
            "max_tokens": 1000,
        },
    },
    "agents": {
        "personality": "helpful",
        "max_tokens": 2000,
        "temperature": 0.7,
    },
    "pipeline": {
        "analysis_temperature": 0.3,
        "analysis_max_tokens": 500,
        "plan_temperature": 0.3,
        "plan_max_tokens": 800,
        "run_timeout_seconds": 300,
    },
    "fallback": {
        "model": None,
        "temperature": 0.7,
        "max_tokens": 1000,
    },
    "tools": {
        "web_search": {
            "endpoint": "https://api.duckduckgo.com/",
            "max_results": 5,
            "timeout_seconds": 10,
            "synthesize": True,
        },
        "file_search": {
            "suffixes": [".txt", ".md", ".csv", ".json", ".log"],
            "preview_chars": 10000,
            "max_results": 10,
            "context_length": 100,
            "answer": True,
        },
        "computer_use": {
            "command_timeout_seconds": 30,
            "max_output_bytes": 1024 * 1024,
            "blocked_commands": [
                "rm -rf", "del /f", "format", "fdisk", "mkfs", "dd if=",
                "shutdown", "reboot", "halt", "su ", "sudo ", "chmod 777",
                "chown", "passwd", "useradd", "userdel", "netsh",
                "reg delete", "taskkill /f",
            ],
        },
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Lists are replaced, not merged."""
    result = dict(base)
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def load_config_file(path: Path) -> dict:
    """Load a YAML config file. Missing, empty or unreadable files give {}."""
    if not path.exists():
        return {}
    try:
        content = path.read_text(encoding="utf-8-sig")
        data = yaml.safe_load(content)
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def env_overrides(environ: Optional[dict] = None) -> dict:
    """Translate the supported environment variables into a config fragment."""
    env = os.environ if environ is None else environ
    overrides: dict = {}

    provider = env.get("CADRE_AI_PROVIDER")
    if provider:
        overrides.setdefault("ai", {})["provider"] = provider

    model = env.get("DEFAULT_MODEL")
    if model:
        overrides.setdefault("ai", {}).setdefault("openai", {})["model"] = model
        overrides.setdefault("fallback", {})["model"] = model

    temperature = env.get("TEMPERATURE")
    if temperature:
        try:
            value = float(temperature)
        except ValueError:
            value = None
        if value is not None:
            overrides.setdefault("ai", {})["temperature"] = value
            overrides.setdefault("fallback", {})["temperature"] = value

    max_tokens = env.get("MAX_TOKENS")
    if max_tokens:
        try:
            overrides.setdefault("fallback", {})["max_tokens"] = int(max_tokens)
        except ValueError:
            pass

    return overrides


def get_effective_config(
    base_dir: Optional[Path] = None,
    config_path: Optional[Path] = None,
    cli_overrides: Optional[dict] = None,
    environ: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is None and base_dir is not None:
        config_path = Path(base_dir) / CONFIG_DIR / "config.yaml"
    if config_path is not None:
        file_config = load_config_file(Path(config_path))
        if file_config:
            config = deep_merge(config, file_config)

    from_env = env_overrides(environ)
    if from_env:
        config = deep_merge(config, from_env)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    return config
