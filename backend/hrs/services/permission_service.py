"""
权限服务 - 角色定义 + 用户级权限覆盖

有效权限判定:
1. 用户存在该权限的覆盖记录 → 以覆盖值为准
2. 否则权限属于用户角色（角色未停用）→ True
3. 否则 → False
"""
import logging
from typing import Dict, List, Optional, Set
from sqlalchemy import func
from sqlalchemy.orm import Session
from hrs.models.entities import (
    User, UserRole, Role, RolePermission, UserPermissionOverride
)
from hrs.security.permissions import DEFAULT_ROLE_DEFINITIONS

logger = logging.getLogger(__name__)


def _parse_role(value) -> Optional[UserRole]:
    """接受 "Admin" / "admin" / UserRole 等写法"""
    if isinstance(value, UserRole):
        return value
    if not value:
        return None
    try:
        return UserRole(str(value).strip().lower())
    except ValueError:
        return None


class PermissionService:
    """角色与权限管理服务"""

    def __init__(self, db: Session):
        self.db = db

    # ============== 角色定义 ==============

    def seed_roles(self) -> int:
        """写入默认角色及其权限（幂等），返回新建角色数"""
        created = 0
        for code, definition in DEFAULT_ROLE_DEFINITIONS.items():
            role_code = UserRole(code)
            if self._get_role(role_code):
                continue
            role = Role(
                code=role_code,
                name=definition["name"],
                description=definition["description"],
                color=definition["color"],
                is_disabled=False,
            )
            role.permissions = [RolePermission(permission=p) for p in definition["permissions"]]
            self.db.add(role)
            created += 1
        if created:
            self.db.commit()
            logger.info(f"Seeded {created} default roles")
        return created

    def _get_role(self, code: UserRole) -> Optional[Role]:
        return self.db.query(Role).filter(Role.code == code).first()

    def get_role_permissions(self, code: UserRole) -> Set[str]:
        """角色授予的权限；角色停用时为空集"""
        role = self._get_role(code)
        if role is None:
            definition = DEFAULT_ROLE_DEFINITIONS.get(code.value, {})
            return set(definition.get("permissions", []))
        if role.is_disabled:
            return set()
        return {rp.permission for rp in role.permissions}

    def get_roles(self) -> List[dict]:
        """默认定义与数据库中的角色合并，并附带用户数"""
        counts = dict(
            self.db.query(User.role, func.count(User.id)).group_by(User.role).all()
        )
        result = []
        for code, definition in DEFAULT_ROLE_DEFINITIONS.items():
            role_code = UserRole(code)
            role = self._get_role(role_code)
            if role:
                permissions = sorted(rp.permission for rp in role.permissions)
                result.append({
                    "role": role_code.value,
                    "name": role.name,
                    "description": role.description or definition["description"],
                    "color": role.color or definition["color"],
                    "permissions": permissions,
                    "disabled": bool(role.is_disabled),
                    "user_count": counts.get(role_code, 0),
                })
            else:
                result.append({
                    "role": role_code.value,
                    "name": definition["name"],
                    "description": definition["description"],
                    "color": definition["color"],
                    "permissions": list(definition["permissions"]),
                    "disabled": False,
                    "user_count": counts.get(role_code, 0),
                })
        return result

    def upsert_roles(self, definitions: List[dict]) -> List[dict]:
        """
        批量保存角色定义

        只接受已知角色；缺失的描述、颜色及空权限列表回退到默认值
        """
        if not definitions:
            raise ValueError("没有可保存的角色定义")

        saved = 0
        for item in definitions:
            role_code = _parse_role(item.get("role") or item.get("name"))
            if role_code is None:
                continue
            default = DEFAULT_ROLE_DEFINITIONS[role_code.value]
            permissions = [p for p in (item.get("permissions") or []) if p] or default["permissions"]

            role = self._get_role(role_code)
            if role is None:
                role = Role(code=role_code, name=default["name"])
                self.db.add(role)
            role.description = item.get("description") or default["description"]
            role.color = item.get("color") or default["color"]
            role.is_disabled = bool(item.get("disabled", False))
            # 已有权限行原样复用，同名权限不重复插入
            existing = {rp.permission: rp for rp in role.permissions}
            role.permissions = [
                existing.get(p) or RolePermission(permission=p) for p in sorted(set(permissions))
            ]
            saved += 1

        if saved == 0:
            raise ValueError("没有有效的角色定义")
        self.db.commit()
        logger.info(f"Saved {saved} role definitions")
        return self.get_roles()

    def set_role_status(self, role, enabled: bool) -> int:
        """启用/停用某角色下所有用户，返回受影响用户数"""
        role_code = _parse_role(role)
        if role_code is None:
            raise ValueError(f"未知角色: {role}")
        users = self.db.query(User).filter(User.role == role_code).all()
        if not users:
            return 0
        for user in users:
            user.is_active = enabled
        self.db.commit()
        logger.info(f"Role {role_code.value} {'enabled' if enabled else 'disabled'} for {len(users)} users")
        return len(users)

    def assign_role(self, user_id: int, role) -> Optional[User]:
        """为用户分配角色并重新激活账号"""
        role_code = _parse_role(role)
        if role_code is None:
            raise ValueError(f"未知角色: {role}")
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            return None
        user.role = role_code
        user.is_active = True
        self.db.commit()
        logger.info(f"User {user_id} assigned role {role_code.value}")
        return user

    # ============== 用户级覆盖 ==============

    def get_user_overrides(self, user_id: Optional[int] = None) -> Dict[int, Dict[str, bool]]:
        q = self.db.query(UserPermissionOverride)
        if user_id is not None:
            q = q.filter(UserPermissionOverride.user_id == user_id)
        result: Dict[int, Dict[str, bool]] = {}
        for o in q.order_by(UserPermissionOverride.user_id, UserPermissionOverride.permission).all():
            result.setdefault(o.user_id, {})[o.permission] = bool(o.allowed)
        return result

    def save_user_overrides(self, overrides: Dict[int, Dict[str, bool]]) -> Dict[int, Dict[str, bool]]:
        """整体替换指定用户的覆盖记录"""
        if not overrides:
            raise ValueError("没有可保存的权限覆盖")

        for user_id, perms in overrides.items():
            user_id = int(user_id)
            if not self.db.query(User).filter(User.id == user_id).first():
                raise ValueError(f"用户 {user_id} 不存在")
            self.db.query(UserPermissionOverride).filter(
                UserPermissionOverride.user_id == user_id
            ).delete()
            for permission, allowed in (perms or {}).items():
                if not permission:
                    continue
                self.db.add(UserPermissionOverride(
                    user_id=user_id, permission=permission, allowed=bool(allowed)
                ))
        self.db.commit()
        logger.info(f"Saved permission overrides for users {sorted(int(u) for u in overrides)}")
        return self.get_user_overrides()

    # ============== 权限判定 ==============

    def resolve_permission(self, user: User, permission: str) -> bool:
        override = self.db.query(UserPermissionOverride).filter(
            UserPermissionOverride.user_id == user.id,
            UserPermissionOverride.permission == permission
        ).first()
        if override is not None:
            return bool(override.allowed)
        return permission in self.get_role_permissions(user.role)

    def has_any_permission(self, user: User, *permissions: str) -> bool:
        return any(self.resolve_permission(user, p) for p in permissions)

    def effective_permissions(self, user: User) -> List[str]:
        """用户最终拥有的权限列表（排序）"""
        granted = set(self.get_role_permissions(user.role))
        for o in self.db.query(UserPermissionOverride).filter(
            UserPermissionOverride.user_id == user.id
        ).all():
            if o.allowed:
                granted.add(o.permission)
            else:
                granted.discard(o.permission)
        return sorted(granted)
