"""Store and server configuration.

Stores come from exactly one source, checked in this order:

1. ``--config <path>`` pointing at a JSON file
2. ``SHOPIFY_STORES_CONFIG`` holding inline JSON or a path to a JSON file
3. ``SHOPIFY_ACCESS_TOKEN`` + ``MYSHOPIFY_DOMAIN`` (single store)
4. ``--accessToken`` + ``--domain`` (single store)

Single-store sources register the alias ``default`` and make it the default.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal, Mapping, Sequence

from pydantic import AliasChoices, BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from errors import (
    ConfigFileNotFoundError,
    ConfigurationError,
    EmptyConfigError,
    MissingConfigError,
    ParseError,
    SchemaError,
    ValidationError,
)
from store_registry import StoreConfig, StoreRegistry

STORES_CONFIG_ENV = "SHOPIFY_STORES_CONFIG"
ACCESS_TOKEN_ENV = "SHOPIFY_ACCESS_TOKEN"
DOMAIN_ENV = "MYSHOPIFY_DOMAIN"
DEFAULT_STORE_ALIAS = "default"

_LOGGER = logging.getLogger("shopify_mcp.config")


class StoreEntry(BaseModel):
    domain: str = Field(min_length=1)
    access_token: str = Field(
        min_length=1,
        validation_alias=AliasChoices("accessToken", "credential", "access_token"),
    )
    api_version: str | None = Field(
        default=None,
        validation_alias=AliasChoices("apiVersion", "api_version"),
    )


class ConfigFile(BaseModel):
    stores: dict[str, StoreEntry]
    default_store: str | None = Field(
        default=None,
        validation_alias=AliasChoices("defaultStore", "default_store"),
    )


@dataclass(frozen=True)
class ConfigOptions:
    config_path: str | None = None
    access_token: str | None = None
    domain: str | None = None


def _env_value(environ: Mapping[str, str], name: str) -> str | None:
    raw = environ.get(name)
    if not raw or raw == "undefined":
        return None
    return raw


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_config(
    registry: StoreRegistry,
    options: ConfigOptions | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Populate ``registry`` from the first available source.

    Returns a short description of the source that was used.
    """
    options = options or ConfigOptions()
    environ = os.environ if environ is None else environ

    if options.config_path:
        return _load_from_file(registry, options.config_path)

    stores_config = _env_value(environ, STORES_CONFIG_ENV)
    if stores_config:
        return _load_from_stores_env(registry, stores_config)

    env_token = _env_value(environ, ACCESS_TOKEN_ENV)
    env_domain = _env_value(environ, DOMAIN_ENV)
    if env_token and env_domain:
        _register_single_store(registry, env_domain, env_token)
        return f"{ACCESS_TOKEN_ENV}/{DOMAIN_ENV} env vars"

    if options.access_token and options.domain:
        _register_single_store(registry, options.domain, options.access_token)
        return "--accessToken/--domain arguments"

    if options.access_token or options.domain:
        raise ValidationError("Both --accessToken and --domain are required when using CLI arguments.")

    raise MissingConfigError(
        "No Shopify store configuration found. Please provide one of:\n"
        "  1. A config file via --config <path>\n"
        f"  2. {STORES_CONFIG_ENV} environment variable (JSON or file path)\n"
        f"  3. {ACCESS_TOKEN_ENV} and {DOMAIN_ENV} environment variables\n"
        "  4. --accessToken and --domain CLI arguments"
    )


def _register_single_store(registry: StoreRegistry, domain: str, access_token: str) -> None:
    registry.register(DEFAULT_STORE_ALIAS, StoreConfig(domain=domain, access_token=access_token))
    registry.set_default(DEFAULT_STORE_ALIAS)


def _load_from_file(registry: StoreRegistry, config_path: str) -> str:
    absolute_path = Path(config_path).resolve()
    if not absolute_path.is_file():
        raise ConfigFileNotFoundError(str(absolute_path))

    try:
        content = absolute_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to read config file: {absolute_path}") from exc

    source = f"config file: {absolute_path}"
    _parse_and_register(registry, content, source)
    return source


def _looks_like_path(value: str) -> bool:
    return value.endswith(".json") or value.startswith("/") or value.startswith("./")


def _load_from_stores_env(registry: StoreRegistry, value: str) -> str:
    if _looks_like_path(value) and Path(value).resolve().is_file():
        return _load_from_file(registry, value)

    source = f"{STORES_CONFIG_ENV} env var"
    _parse_and_register(registry, value, source)
    return source


def _format_issue(error: Mapping) -> str:
    path = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
    return f"{path}: {error.get('msg', 'invalid value')}"


def parse_config_document(text: str, source: str) -> ConfigFile:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(source, str(exc)) from exc

    try:
        config = ConfigFile.model_validate(raw)
    except PydanticValidationError as exc:
        raise SchemaError(source, [_format_issue(error) for error in exc.errors()]) from exc

    if not config.stores:
        raise EmptyConfigError(source)
    return config


def _parse_and_register(registry: StoreRegistry, text: str, source: str) -> None:
    config = parse_config_document(text, source)

    for alias, entry in config.stores.items():
        registry.register(
            alias,
            StoreConfig(domain=entry.domain, access_token=entry.access_token, api_version=entry.api_version),
        )

    if config.default_store:
        registry.set_default(config.default_store)

    _LOGGER.info("Loaded %d store(s) from %s", len(config.stores), source)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shopify-mcp-server",
        description="MCP server for the Shopify Admin API with multi-store support.",
    )
    parser.add_argument("--config", dest="config_path", help="Path to a JSON stores config file")
    parser.add_argument("--accessToken", "--access-token", dest="access_token", help="Admin API access token")
    parser.add_argument("--domain", help="Store domain, e.g. mystore.myshopify.com")
    parser.add_argument("--transport", choices=("stdio", "http"))
    parser.add_argument("--host")
    parser.add_argument("--port", type=int)
    parser.add_argument("--log-level", dest="log_level")
    return parser


def parse_config_args(argv: Sequence[str]) -> ConfigOptions:
    args, _unknown = _build_parser().parse_known_args(list(argv))
    return ConfigOptions(config_path=args.config_path, access_token=args.access_token, domain=args.domain)


@dataclass(frozen=True)
class ServerSettings:
    transport: Literal["stdio", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServerSettings:
        environ = os.environ if environ is None else environ
        transport = (environ.get("MCP_TRANSPORT") or "stdio").strip().lower()
        if transport not in ("stdio", "http"):
            transport = "stdio"
        return cls(
            transport=transport,
            host=environ.get("MCP_HTTP_HOST") or "127.0.0.1",
            port=_env_int(environ, "MCP_HTTP_PORT", 8000),
            log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
            request_timeout=max(1.0, _env_float(environ, "SHOPIFY_REQUEST_TIMEOUT_SEC", 30.0)),
        )


def parse_server_args(argv: Sequence[str], settings: ServerSettings) -> ServerSettings:
    args, _unknown = _build_parser().parse_known_args(list(argv))
    overrides = {
        "transport": args.transport,
        "host": args.host,
        "port": args.port,
        "log_level": args.log_level.upper() if args.log_level else None,
    }
    return replace(settings, **{key: value for key, value in overrides.items() if value is not None})


__all__ = [
    "ACCESS_TOKEN_ENV",
    "DEFAULT_STORE_ALIAS",
    "DOMAIN_ENV",
    "STORES_CONFIG_ENV",
    "ConfigFile",
    "ConfigOptions",
    "ServerSettings",
    "load_config",
    "parse_config_args",
    "parse_config_document",
    "parse_server_args",
]
