"""
HRS 主应用入口
酒店预订系统：客户预订、前台入住退房、经理运营、管理员权限配置
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from hrs.config import settings
from hrs.database import init_db, SessionLocal
from hrs.routers import auth, rooms, customer, chat, receptionist, manager, admin

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 初始化数据库
    init_db()

    # 种子数据：角色定义与系统配置
    from hrs.services.permission_service import PermissionService
    from hrs.services.config_service import ConfigService
    db = SessionLocal()
    try:
        PermissionService(db).seed_roles()
        ConfigService(db).seed_defaults()
    finally:
        db.close()

    # 注册事件处理器
    from hrs.services.event_handlers import register_event_handlers
    register_event_handlers()

    yield


# 创建应用
app = FastAPI(
    title=settings.APP_NAME,
    description="酒店预订系统：客房预订、入住退房、退款审核、出行预订与角色权限",
    version="1.0.0",
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(auth.router)
app.include_router(rooms.router)
app.include_router(customer.router)
app.include_router(chat.router)
app.include_router(receptionist.router)
app.include_router(manager.router)
app.include_router(admin.router)


@app.get("/")
def root():
    """根路径"""
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "description": "酒店预订系统"
    }


@app.get("/health")
def health_check():
    """健康检查"""
    return {"status": "healthy"}
