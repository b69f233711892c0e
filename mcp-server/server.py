from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from functools import partial
from typing import Any, Sequence

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import ValidationError, validate_call

from config import ServerSettings, load_config, parse_config_args, parse_server_args
from errors import ShopifyMcpError
from graphql_client import GraphQLClient
from store_registry import StoreRegistry
from tools import ToolInvoker, register_tools
from tools.context import reset_store_alias, set_store_alias

SERVICE_NAME = "shopify-mcp"
SERVICE_VERSION = "2.0.0"

_LOGGER = logging.getLogger("shopify_mcp.server")


def build_mcp(stores: StoreRegistry) -> tuple[FastMCP, dict[str, ToolInvoker]]:
    mcp = FastMCP(
        name=SERVICE_NAME,
        instructions=(
            "MCP Server for the Shopify Admin API with multi-store support. "
            "Every tool accepts an optional store_alias; call list_stores to see configured stores."
        ),
    )
    return mcp, register_tools(mcp, stores)


class MCPAcceptHeaderMiddleware:
    """Fills in the media types streamable HTTP expects on MCP endpoints.

    Some MCP clients send `Accept: */*` or omit `Accept` entirely.
    """

    def __init__(self, app: Any, paths: Sequence[str] = ("/mcp/sse",)):
        self.app = app
        self.paths = frozenset(paths)

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope.get("type") == "http" and scope.get("path") in self.paths:
            scope = _with_stream_accept(scope)
        await self.app(scope, receive, send)


def _with_stream_accept(scope: dict[str, Any]) -> dict[str, Any]:
    headers = list(scope.get("headers", []))
    accept = next((value.decode("latin-1") for key, value in headers if key == b"accept"), "")
    if accept and accept.strip() != "*/*":
        return scope
    rewritten = [(key, value) for key, value in headers if key != b"accept"]
    rewritten.append((b"accept", b"application/json, text/event-stream"))
    return {**scope, "headers": rewritten}


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


async def _read_arguments(request: Request) -> dict[str, Any]:
    payload: Any = {}
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid JSON body: {exc}") from exc
    if not isinstance(payload, dict):
        payload = {}

    arguments = payload.get("arguments", payload)
    if not isinstance(arguments, dict):
        raise HTTPException(status_code=400, detail="Tool arguments must be a JSON object")
    return arguments


async def _invoke(invoker: ToolInvoker, arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        result = await invoker(**arguments)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except TypeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ToolError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(result, dict):
        return result
    return {"results": result}


def build_app(mcp: FastMCP, tool_invokers: dict[str, ToolInvoker], stores: StoreRegistry) -> FastAPI:
    mcp_streamable_app = mcp.http_app(path="/sse", transport="streamable-http")
    # Direct routes apply the same argument constraints FastMCP enforces on MCP calls.
    validated_invokers = {name: validate_call(invoker) for name, invoker in tool_invokers.items()}

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        # FastMCP streamable transport requires its own lifespan to initialize
        # the session manager task group.
        async with mcp_streamable_app.lifespan(mcp_streamable_app):
            yield

    app = FastAPI(title="Shopify MCP Server", version=SERVICE_VERSION, lifespan=lifespan)
    app.add_middleware(MCPAcceptHeaderMiddleware)

    def _mcp_descriptor(request: Request) -> dict[str, Any]:
        return {
            "ok": True,
            "service": SERVICE_NAME,
            "transport": "streamable-http",
            "sse_url": f"{_base_url(request)}/mcp/sse",
            "tools": sorted(tool_invokers),
        }

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "ok": True,
            "service": SERVICE_NAME,
            "store_count": stores.size,
            "default_store": stores.get_default_alias(),
            "tool_count": len(tool_invokers),
        }

    @app.get("/")
    async def root(request: Request) -> dict[str, Any]:
        return _mcp_descriptor(request)

    @app.get("/mcp")
    async def mcp_root(request: Request) -> dict[str, Any]:
        return _mcp_descriptor(request)

    @app.post("/mcp/tool/{tool}")
    async def invoke_tool(tool: str, request: Request) -> dict[str, Any]:
        invoker = validated_invokers.get(tool)
        if not invoker:
            raise HTTPException(status_code=404, detail=f"Unknown tool: {tool}")
        return await _invoke(invoker, await _read_arguments(request))

    @app.post("/mcp/{alias}/tool/{tool}")
    async def invoke_store_tool(alias: str, tool: str, request: Request) -> dict[str, Any]:
        invoker = validated_invokers.get(tool)
        if not invoker:
            raise HTTPException(status_code=404, detail=f"Unknown tool: {tool}")
        if not stores.has_store(alias):
            raise HTTPException(
                status_code=404,
                detail=f"Unknown store: {alias}. Available stores: {', '.join(stores.list_aliases())}",
            )

        arguments = await _read_arguments(request)
        token = set_store_alias(alias)
        try:
            return await _invoke(invoker, arguments)
        finally:
            reset_store_alias(token)

    app.mount("/mcp", mcp_streamable_app)
    return app


def configure_logging(level: str) -> None:
    # stdout carries the stdio transport, so logs go to stderr.
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    argv = list(sys.argv[1:] if argv is None else argv)

    settings = parse_server_args(argv, ServerSettings.from_env())
    configure_logging(settings.log_level)

    stores = StoreRegistry(client_factory=partial(GraphQLClient.for_store, timeout=settings.request_timeout))
    try:
        source = load_config(stores, parse_config_args(argv))
    except ShopifyMcpError as exc:
        _LOGGER.error("Error: %s", exc)
        return 1

    _LOGGER.info(
        "Configured %d store(s) from %s (default: %s)",
        stores.size,
        source,
        stores.get_default_alias() or "none",
    )

    mcp, tool_invokers = build_mcp(stores)
    if settings.transport == "http":
        uvicorn.run(build_app(mcp, tool_invokers, stores), host=settings.host, port=settings.port)
    else:
        mcp.run()
    return 0


__all__ = ["build_app", "build_mcp", "configure_logging", "main"]


if __name__ == "__main__":
    sys.exit(main())
