from __future__ import annotations

from contextvars import ContextVar, Token

_store_alias_var: ContextVar[str | None] = ContextVar("store_alias", default=None)


def set_store_alias(alias: str | None) -> Token:
    return _store_alias_var.set(alias)


def reset_store_alias(token: Token) -> None:
    _store_alias_var.reset(token)


def get_store_alias() -> str | None:
    return _store_alias_var.get()


__all__ = ["set_store_alias", "reset_store_alias", "get_store_alias"]
