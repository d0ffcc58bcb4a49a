"""
认证路由
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hrs.database import get_db
from hrs.models.schemas import (
    RegisterRequest, LoginRequest, LoginResponse, UserResponse, PasswordChange,
    EmailRequest, VerifyEmailRequest, ResetTokenRequest, ResetPasswordRequest, ProfileUpdate
)
from hrs.models.entities import User
from hrs.services.user_service import UserService
from hrs.services.permission_service import PermissionService
from hrs.security.auth import get_current_user, require_permission
from hrs.security.permissions import (
    ADMIN_PROFILE_UPDATE, MANAGER_PROFILE_UPDATE, RECEPTIONIST_PROFILE_UPDATE, CUSTOMER_PROFILE_UPDATE
)

router = APIRouter(prefix="/auth", tags=["认证"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """客户注册"""
    service = UserService(db)
    try:
        return service.register(data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/login", response_model=LoginResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """用户登录"""
    service = UserService(db)
    try:
        result = service.authenticate(data.email, data.password, data.code)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="邮箱或密码错误"
        )
    return result


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    """退出登录（令牌无状态，由客户端丢弃）"""
    return {"message": "已退出登录"}


@router.get("/me")
def get_current_user_info(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """获取当前用户信息及有效权限"""
    user = UserResponse.model_validate(current_user).model_dump()
    user["permissions"] = PermissionService(db).effective_permissions(current_user)
    return user


@router.post("/change-password")
def change_password(
    data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """修改密码"""
    service = UserService(db)
    try:
        service.change_password(current_user, data.old_password, data.new_password)
        return {"message": "密码修改成功"}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/send-verification-code")
def send_verification_code(data: EmailRequest, db: Session = Depends(get_db)):
    """发送邮箱验证码"""
    service = UserService(db)
    try:
        service.send_verification_code(data.email)
        return {"message": "验证码已发送"}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/verify-email")
def verify_email(data: VerifyEmailRequest, db: Session = Depends(get_db)):
    """校验邮箱验证码"""
    service = UserService(db)
    try:
        service.verify_email(data.email, data.code)
        return {"message": "邮箱验证成功", "verified": True}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/forgot-password")
def forgot_password(data: EmailRequest, db: Session = Depends(get_db)):
    """申请重置密码（未知邮箱返回相同提示）"""
    service = UserService(db)
    try:
        service.forgot_password(data.email)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "如果该邮箱已注册，重置链接已发送"}


@router.post("/verify-reset-token")
def verify_reset_token(data: ResetTokenRequest, db: Session = Depends(get_db)):
    """校验重置令牌"""
    if not UserService(db).verify_reset_token(data.email, data.token):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="重置链接无效或已过期")
    return {"valid": True}


@router.post("/reset-password")
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    """重置密码"""
    service = UserService(db)
    try:
        service.reset_password(data.email, data.token, data.new_password, data.confirm_password)
        return {"message": "密码已重置"}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/profile", response_model=UserResponse)
def update_own_profile(
    data: ProfileUpdate,
    current_user: User = Depends(require_permission(
        ADMIN_PROFILE_UPDATE, MANAGER_PROFILE_UPDATE,
        RECEPTIONIST_PROFILE_UPDATE, CUSTOMER_PROFILE_UPDATE
    )),
    db: Session = Depends(get_db)
):
    """更新本人资料（各角色通用）"""
    return UserService(db).update_profile(current_user, data.model_dump(exclude_unset=True))
