# pointcloud_sys/app/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pointcloud_sys.app.core.anomaly import DetectionError
from pointcloud_sys.app.core.config import settings
from pointcloud_sys.app.core.ply_reader import PlyFormatError
from pointcloud_sys.app.routers import get_all_routers
from pointcloud_sys.app.services.cloud_registry import CloudNotFoundError
from pointcloud_sys.app.services.external_service import ExternalServiceError
from pointcloud_sys.app.services.inference_service import InferenceError, InvalidImageError
from pointcloud_sys.app.services.script_service import ScriptError
from pointcloud_sys.app.utils.logging import logger, setup_logging


def register_exception_handlers(app: FastAPI) -> None:
    """
    业务异常 -> HTTP 状态码，routers 里不用再逐个 try/except。
    """

    @app.exception_handler(CloudNotFoundError)
    async def cloud_not_found(request: Request, exc: CloudNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(DetectionError)
    async def detection_failed(request: Request, exc: DetectionError):
        return JSONResponse(
            status_code=422,
            content={"detail": {"code": exc.code, "message": str(exc)}},
        )

    @app.exception_handler(PlyFormatError)
    @app.exception_handler(ScriptError)
    @app.exception_handler(InvalidImageError)
    async def bad_input(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ExternalServiceError)
    @app.exception_handler(InferenceError)
    async def backend_failed(request: Request, exc: Exception):
        logger.error(f"Inference backend failure on {request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"detail": str(exc)})


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    app = FastAPI(
        title=settings.APP_NAME,
        description="点云上传 / 离群点检测 / 脚本分析 / 远端推理 HTTP 服务",
        version="0.1.0",
        debug=settings.DEBUG,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    #自动注册所有 routers
    for r in get_all_routers():
        app.include_router(r)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("pointcloud_sys.app.main:app", host="0.0.0.0", port=8080, reload=True)
