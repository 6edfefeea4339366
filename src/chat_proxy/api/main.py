"""FastAPI surface exposing a chat proxy's methods, metrics and traces."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import Body, FastAPI, HTTPException
from pydantic_core import to_jsonable_python

from chat_proxy.errors import ModerationError, ProxyCallError, TransportError
from chat_proxy.proxy.encoder import public_members
from chat_proxy.proxy.interface import ChatProxy


def create_app(proxy: ChatProxy[Any]) -> FastAPI:
    """Build an app serving ``proxy``; traces are served when its dispatcher keeps them."""

    app = FastAPI(title=f"{proxy.interface.__name__} chat proxy", version="0.1.0")
    dispatcher = proxy.dispatcher

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "interface": proxy.interface.__qualname__,
            "model": dispatcher.config.model,
            "moderated": dispatcher.config.moderated,
        }

    @app.get("/methods")
    def methods() -> dict[str, Any]:
        return {
            "items": [
                {
                    "name": name,
                    "description": signature.description,
                    "parameters": [spec.name for spec in signature.parameters],
                }
                for name, signature in proxy.signatures.items()
            ]
        }

    @app.get("/methods/{name}")
    def method_schema(name: str) -> dict[str, Any]:
        try:
            return {"name": name, "schema": proxy.schema(name)}
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/methods/{name}")
    def invoke(name: str, arguments: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
        if name not in proxy.signatures:
            raise HTTPException(status_code=404, detail=f"Unknown method: {name}")
        try:
            result = proxy.call(name, arguments or {})
        except TypeError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except ModerationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except (ProxyCallError, TransportError) as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {"result": to_jsonable_python(result, fallback=public_members)}

    @app.get("/metrics")
    def metrics() -> dict[str, Any]:
        payload: dict[str, Any] = {"counters": dispatcher.metrics.snapshot()}
        if dispatcher.trace_store is not None:
            payload["calls"] = dispatcher.trace_store.summary()
        return payload

    @app.get("/traces")
    def traces(limit: int = 20) -> dict[str, Any]:
        if dispatcher.trace_store is None:
            return {"items": []}
        return {"items": [asdict(record) for record in dispatcher.trace_store.list_recent(limit=limit)]}

    @app.get("/traces/{trace_id}")
    def trace_detail(trace_id: str) -> dict[str, Any]:
        if dispatcher.trace_store is None:
            raise HTTPException(status_code=404, detail=f"Trace not found: {trace_id}")
        try:
            record = dispatcher.trace_store.get(trace_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return asdict(record)

    return app
