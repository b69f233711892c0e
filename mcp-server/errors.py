"""Exception hierarchy for the Shopify MCP server."""

from __future__ import annotations

from typing import Iterable, Sequence


def _join_aliases(aliases: Iterable[str]) -> str:
    joined = ", ".join(aliases)
    return joined or "(none)"


class ShopifyMcpError(Exception):
    """Base exception for all server errors."""


class NotFoundError(ShopifyMcpError):
    """A referenced store alias or config file does not exist."""


class StoreNotFoundError(NotFoundError):
    """No store is registered under the requested alias."""

    def __init__(self, alias: str, available: Sequence[str], prefix: str = "") -> None:
        self.alias = alias
        self.available = list(available)
        super().__init__(
            f'{prefix}Store "{alias}" not found. Available stores: {_join_aliases(self.available)}'
        )


class ConfigFileNotFoundError(NotFoundError):
    """Config file path supplied but missing on disk."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Config file not found: {path}")


class NoDefaultError(ShopifyMcpError):
    """No alias supplied and no default store can be resolved."""

    def __init__(self, available: Sequence[str]) -> None:
        self.available = list(available)
        super().__init__(
            "No store specified and no default store set. "
            f"Available stores: {_join_aliases(self.available)}. "
            "Please specify a store_alias parameter or configure a defaultStore."
        )


class ConfigurationError(ShopifyMcpError):
    """Store configuration could not be resolved."""


class ParseError(ConfigurationError):
    """Config source is not valid JSON."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        super().__init__(f"Invalid JSON in {source}: {reason}")


class SchemaError(ConfigurationError):
    """Config JSON is well-formed but structurally invalid."""

    def __init__(self, source: str, issues: Sequence[str]) -> None:
        self.source = source
        self.issues = list(issues)
        details = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(f"Invalid config structure in {source}:\n{details}")


class EmptyConfigError(ConfigurationError):
    """Config is valid but defines no stores."""

    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(f"No stores defined in {source}")


class ValidationError(ConfigurationError, ValueError):
    """Inconsistent or incomplete configuration values."""


class MissingConfigError(ConfigurationError):
    """None of the configuration sources supplied any stores."""


class GraphQLRequestError(ShopifyMcpError):
    """Outbound GraphQL request failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: list[dict] | None = None,
    ) -> None:
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)
