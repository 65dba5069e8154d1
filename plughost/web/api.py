from __future__ import annotations

from typing import List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from plughost.core.errors import PlugHostError, PluginNotFoundError
from plughost.core.plugins.models import PluginBase
from plughost.web.models import PluginDetail, PluginErrorResponse, PluginSummary, UpdateStatusResponse


def _summary_fields(p: PluginBase) -> dict:
    return {
        "id": p.id,
        "type": p.type,
        "name": p.name,
        "version": p.info.version,
        "signature": p.signature.value,
        "signature_type": p.signature_type,
        "signature_org": p.signature_org,
        "module": p.module,
        "base_url": p.base_url,
        "included_in_app_id": p.included_in_app_id,
        "has_root": p.root_dir is not None,
    }


def create_app(plugin_manager, *, logger=None) -> FastAPI:
    """
    Read-only admin API over the plugin registry.
    """
    app = FastAPI(title="plughost", version="0.1.0")

    @app.exception_handler(PlugHostError)
    async def plughost_error_handler(request: Request, exc: PlugHostError):
        code = 500
        if exc.code == "plugin_not_found":
            code = 404
        elif exc.recoverable:
            code = 400
        if logger is not None and code == 500:
            logger.error(f"Request failed: {exc.code} ({request.url.path})")
        return JSONResponse(status_code=code, content={"detail": exc.user_message, "code": exc.code})

    @app.get("/health")
    async def health():
        return {"status": "ok", "plugins": len(plugin_manager.registry)}

    @app.get("/api/plugins", response_model=List[PluginSummary])
    async def list_plugins(type: str = ""):  # noqa: A002
        plugins = plugin_manager.registry.snapshot()
        if type:
            plugins = [p for p in plugins if p.type == type]
        return [PluginSummary(**_summary_fields(p)) for p in plugins]

    @app.get("/api/plugins/errors", response_model=List[PluginErrorResponse])
    async def plugin_errors():
        return [PluginErrorResponse(plugin_id=e.plugin_id, error_code=e.error_code.value) for e in plugin_manager.scanning_errors()]

    @app.get("/api/plugins/updates", response_model=UpdateStatusResponse)
    async def plugin_updates():
        return UpdateStatusResponse(**plugin_manager.update_checker.status())

    @app.get("/api/plugins/{plugin_id}", response_model=PluginDetail)
    async def get_plugin(plugin_id: str):
        p = plugin_manager.get_plugin(plugin_id)
        if p is None:
            raise PluginNotFoundError(plugin_id)
        return PluginDetail(
            **_summary_fields(p),
            plugin_dir=p.plugin_dir,
            dependencies=p.dependencies.model_dump(by_alias=True),
            includes=[i.model_dump(by_alias=True) for i in p.includes],
            default_nav_url=p.default_nav_url,
        )

    @app.get("/api/plugins/{plugin_id}/markdown/{name}", response_class=PlainTextResponse)
    async def plugin_markdown(plugin_id: str, name: str):
        data = plugin_manager.get_plugin_markdown(plugin_id, name)
        return PlainTextResponse(data.decode("utf-8", errors="replace"))

    return app
