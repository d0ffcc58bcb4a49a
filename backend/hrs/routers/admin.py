"""
管理员路由 - 用户/员工、角色权限、系统配置、审计与支付
"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from hrs.database import get_db
from hrs.models.entities import User, UserRole
from hrs.models.schemas import (
    UserResponse, UserCreate, UserUpdate, RoleAssign, RoleDefinition,
    RoleStatusUpdate, PermissionOverrides
)
from hrs.services.audit_service import AuditService
from hrs.services.config_service import ConfigService
from hrs.services.permission_service import PermissionService
from hrs.services.report_service import ReportService
from hrs.services.user_service import UserService
from hrs.security.auth import require_permission
from hrs.security.permissions import (
    ADMIN_DASHBOARD_VIEW, ADMIN_USERS_MANAGE, ADMIN_ROLES_MANAGE, ADMIN_STAFF_MANAGE,
    ADMIN_PAYMENTS_VIEW, ADMIN_REPORTS_VIEW, ADMIN_AUDIT_VIEW, ADMIN_CONFIG_MANAGE
)

router = APIRouter(prefix="/admin", tags=["管理员"])


def _audit(db: Session, request: Request, user: User, action: str, table_name: str,
           record_id: Optional[int] = None, old_value: Any = None, new_value: Any = None) -> None:
    AuditService(db).log(
        action=action,
        table_name=table_name,
        record_id=record_id,
        user_id=user.id,
        old_value=old_value,
        new_value=new_value,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# ============== 看板 / 报表 / 支付 / 审计 ==============

@router.get("/dashboard")
def dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_DASHBOARD_VIEW))
):
    """管理员仪表盘"""
    return ReportService(db).get_admin_dashboard()


@router.get("/reports")
def reports(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_REPORTS_VIEW))
):
    """经营报表（月度营收、入住率、用户增长）"""
    return ReportService(db).get_admin_reports()


@router.get("/payments")
def payments(
    payment_status: Optional[str] = None,
    method: Optional[str] = None,
    kind: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_PAYMENTS_VIEW))
):
    """支付记录（客房 + 出行）"""
    return ReportService(db).get_payments(payment_status, method, kind)


@router.get("/audit-logs")
def audit_logs(
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_AUDIT_VIEW))
):
    service = AuditService(db)
    return [service.to_dict(e) for e in service.get_logs(action, user_id, min(limit, 1000))]


# ============== 用户 ==============

@router.get("/users/permissions")
def get_permission_overrides(
    user_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_ROLES_MANAGE))
):
    """用户级权限覆盖"""
    return PermissionService(db).get_user_overrides(user_id)


@router.put("/users/permissions")
def save_permission_overrides(
    data: PermissionOverrides,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_ROLES_MANAGE))
):
    """保存用户级权限覆盖（按用户整体替换）"""
    try:
        overrides = PermissionService(db).save_user_overrides(data.overrides)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    _audit(db, request, current_user, "update_permission_overrides", "user_permission_overrides",
           new_value=data.overrides)
    return overrides


@router.get("/users", response_model=List[UserResponse])
def list_users(
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_USERS_MANAGE))
):
    return UserService(db).list_users(role, search)


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_USERS_MANAGE))
):
    """创建用户"""
    try:
        user = UserService(db).create_user(data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    _audit(db, request, current_user, "create_user", "users", user.id,
           new_value={"email": user.email, "role": user.role.value})
    return user


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_USERS_MANAGE))
):
    user = UserService(db).get_user(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="用户不存在")
    return user


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_USERS_MANAGE))
):
    """更新用户"""
    changes = data.model_dump(exclude_unset=True)
    try:
        user = UserService(db).update_user(user_id, changes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="用户不存在")
    changes.pop("password", None)
    _audit(db, request, current_user, "update_user", "users", user.id, new_value=changes)
    return user


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_USERS_MANAGE))
):
    """删除用户（不可删除自己或有预订的用户）"""
    try:
        deleted = UserService(db).delete_user(user_id, current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="用户不存在")
    _audit(db, request, current_user, "delete_user", "users", user_id)
    return {"message": "用户已删除"}


# ============== 员工 ==============

@router.get("/staff", response_model=List[UserResponse])
def list_staff(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_STAFF_MANAGE))
):
    return UserService(db).list_staff()


@router.post("/staff", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_staff(
    data: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_STAFF_MANAGE))
):
    """创建员工账号（默认前台）"""
    try:
        user = UserService(db).create_staff(data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    _audit(db, request, current_user, "create_staff", "users", user.id,
           new_value={"email": user.email, "role": user.role.value})
    return user


@router.put("/staff/{user_id}", response_model=UserResponse)
def update_staff(
    user_id: int,
    data: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_STAFF_MANAGE))
):
    changes = data.model_dump(exclude_unset=True)
    try:
        user = UserService(db).update_staff(user_id, changes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="员工不存在")
    changes.pop("password", None)
    _audit(db, request, current_user, "update_staff", "users", user.id, new_value=changes)
    return user


@router.delete("/staff/{user_id}")
def delete_staff(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_STAFF_MANAGE))
):
    try:
        deleted = UserService(db).delete_staff(user_id, current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="员工不存在")
    _audit(db, request, current_user, "delete_staff", "users", user_id)
    return {"message": "员工已删除"}


# ============== 角色与权限 ==============

@router.get("/roles")
def list_roles(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_ROLES_MANAGE))
):
    """角色定义（含用户数）"""
    return PermissionService(db).get_roles()


@router.put("/roles")
def save_roles(
    data: List[RoleDefinition],
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_ROLES_MANAGE))
):
    """批量保存角色定义"""
    payload = [d.model_dump() for d in data]
    try:
        roles = PermissionService(db).upsert_roles(payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    _audit(db, request, current_user, "update_roles", "roles", new_value=payload)
    return roles


@router.post("/roles/assign", response_model=UserResponse)
def assign_role(
    data: RoleAssign,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_ROLES_MANAGE, ADMIN_USERS_MANAGE))
):
    """为用户分配角色"""
    try:
        user = PermissionService(db).assign_role(data.user_id, data.role)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="用户不存在")
    _audit(db, request, current_user, "assign_role", "users", user.id,
           new_value={"role": user.role.value})
    return user


@router.put("/roles/{role}/status")
def set_role_status(
    role: str,
    data: RoleStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_ROLES_MANAGE))
):
    """启用/停用某角色下所有用户"""
    try:
        count = PermissionService(db).set_role_status(role, data.enabled)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if count == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="该角色下没有用户")
    _audit(db, request, current_user, "set_role_status", "users",
           new_value={"role": role, "enabled": data.enabled, "affected": count})
    return {"role": role, "enabled": data.enabled, "affected_users": count}


# ============== 系统配置 ==============

@router.get("/config")
def get_config(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_CONFIG_MANAGE))
):
    return ConfigService(db).get_config()


@router.put("/config")
def update_config(
    data: Dict[str, Any],
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(ADMIN_CONFIG_MANAGE))
):
    """更新系统配置（键名大小写与下划线风格均可）"""
    service = ConfigService(db)
    old = service.get_config()
    try:
        config = service.update_config(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    _audit(db, request, current_user, "update_config", "system_settings", old_value=old, new_value=data)
    return config
