# FastAPI主应用

import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# 导入配置和中间件
from utils.config import Config
from utils.logger import setup_logging
from utils.cache import CacheService
from utils.errors import AppError
from utils.response import create_error_response
from utils.security import JWTManager, PasswordManager
from api.middleware import setup_middleware
from db.manager import DatabaseManager
from db.schema import create_tables
from db.supporting_operations import SupportingOperations

# 导入所有路由
from api.auth import auth_router
from api.users import users_router
from api.canteens import canteens_router
from api.orders import orders_router
from api.admin import admin_router

logger = logging.getLogger(__name__)


def initialize_database(config: Config, cache: CacheService, password_manager: PasswordManager):
    """
    建表、写入初始邮箱域名白名单、创建初始管理员（均为幂等操作）
    """
    db_config = config.get_database_config()
    with DatabaseManager(db_config["path"], timeout=db_config.get("timeout", 5.0)) as db:
        create_tables(db)

        support_ops = SupportingOperations(db, cache=cache, password_manager=password_manager)
        support_ops.seed_email_domains(config.get("auth.allowed_email_domains", []))

        admin_email = config.get("admin.bootstrap_email")
        admin_password = config.get("admin.bootstrap_password")
        if admin_email and admin_password and not admin_password.startswith("${"):
            support_ops.bootstrap_admin(
                email=admin_email,
                username=config.get("admin.bootstrap_username", "admin"),
                password=admin_password
            )
        else:
            logger.warning("未配置初始管理员账号，跳过创建")


def _format_validation_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location),
            "message": error.get("msg", "Invalid value")
        })
    return errors


def register_exception_handlers(app: FastAPI):
    """全局异常处理器：统一响应格式"""

    @app.exception_handler(AppError)
    async def app_error_handler(request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"业务异常: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=create_error_response(exc.message, exc.errors)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=create_error_response("Validation failed", _format_validation_errors(exc))
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request, exc: StarletteHTTPException):
        """HTTP异常处理（路由不存在、方法不允许等）"""
        return JSONResponse(
            status_code=exc.status_code,
            content=create_error_response(str(exc.detail)),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc: Exception):
        """通用异常处理"""
        logger.error(f"未处理的异常: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=create_error_response("Internal server error")
        )


def create_app(config: Optional[Config] = None) -> FastAPI:
    """
    创建FastAPI应用

    缓存、JWT和密码哈希服务在此创建并挂到 app.state，数据库连接按请求创建
    """
    config = config or Config()
    setup_logging(config.config)

    app_config = config.config["app"]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        logger.info(f"{app_config['name']} 启动中...")
        logger.info(f"环境: {config.env}")
        initialize_database(config, app.state.cache, app.state.password_manager)

        yield

        logger.info(f"{app_config['name']} 关闭中...")

    app = FastAPI(
        title=app_config["name"],
        version=app_config["version"],
        description=app_config.get("description", ""),
        debug=app_config.get("debug", False),
        lifespan=lifespan
    )

    app.state.config = config
    app.state.cache = CacheService(default_ttl=config.get("cache.default_ttl", 300))
    app.state.jwt_manager = JWTManager(
        secret_key=config.get("auth.jwt_secret_key"),
        algorithm=config.get("auth.jwt_algorithm", "HS256"),
        access_token_expire_minutes=config.get("auth.access_token_expire_minutes", 15)
    )
    app.state.password_manager = PasswordManager(rounds=config.get("auth.bcrypt_rounds", 12))

    setup_middleware(app, config.config)
    register_exception_handlers(app)

    # 注册路由
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(canteens_router)
    app.include_router(orders_router)
    app.include_router(admin_router)

    @app.get("/")
    async def root():
        """根路径健康检查"""
        return {
            "message": f"{app_config['name']} is running",
            "version": app_config["version"],
            "status": "healthy"
        }

    @app.get("/health")
    async def health_check():
        """健康检查端点（包含数据库连通性）"""
        db_config = config.get_database_config()
        try:
            with DatabaseManager(db_config["path"], timeout=db_config.get("timeout", 5.0)) as db:
                db.execute_single("SELECT 1")
        except (ConnectionError, sqlite3.Error) as e:
            logger.error(f"健康检查失败: {str(e)}")
            return JSONResponse(
                status_code=503,
                content=create_error_response("Service unhealthy")
            )

        return {
            "status": "healthy",
            "version": app_config["version"],
            "environment": config.env,
            "cache": app.state.cache.get_stats()
        }

    @app.get("/api/info")
    async def api_info():
        """API信息端点"""
        return {
            "name": app_config["name"],
            "version": app_config["version"],
            "description": app_config.get("description", ""),
            "environment": config.env,
            "endpoints": {
                "auth": "/api/auth",
                "users": "/api/users",
                "canteens": "/api/canteens",
                "orders": "/api/orders",
                "admin": "/api/admin"
            }
        }

    return app


if __name__ == "__main__":
    import uvicorn

    server_config = Config().config["server"]

    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host=server_config.get("host", "127.0.0.1"),
        port=server_config.get("port", 8000),
        reload=server_config.get("reload", False)
    )
