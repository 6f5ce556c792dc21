# -*- coding: utf-8 -*-
# 周边支持业务操作，包括注册、登录、令牌刷新、个人资料、管理员用户管理、邮箱域名白名单

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Dict, Any
from .manager import DatabaseManager
from utils.access_policy import ROLE_ADMIN, ROLE_CANTEEN_OWNER
from utils.cache import CacheKeys, CacheService
from utils.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from utils.response import build_pagination
from utils.security import JWTManager, PasswordManager, generate_refresh_token
from utils.validators import (
    email_domain, password_problems, validate_domain, validate_email,
    validate_user_role, validate_username
)

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, email, username, role, created_at, updated_at"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class SupportingOperations:
    """
    周边支持业务操作类
    """
    def __init__(self, db_manager: DatabaseManager, cache: Optional[CacheService] = None,
                 password_manager: Optional[PasswordManager] = None,
                 jwt_manager: Optional[JWTManager] = None,
                 refresh_token_expire_days: int = 7,
                 domains_ttl: int = 300):
        self.db = db_manager
        self.cache = cache if cache is not None else CacheService()
        self.passwords = password_manager or PasswordManager()
        self.jwt = jwt_manager
        self.refresh_token_expire_days = refresh_token_expire_days
        self.domains_ttl = domains_ttl

    # 输入验证
    def _validate_username(self, username: str):
        if not validate_username(username):
            raise ValidationError(
                "Username must be 3-30 characters and contain only letters, numbers, and underscores"
            )

    def _validate_email(self, email: str):
        if not validate_email(email):
            raise ValidationError("Invalid email format")

    def _validate_password(self, password: str):
        problems = password_problems(password or '')
        if problems:
            raise ValidationError("Password does not meet requirements", errors=problems)

    def _verify_email_domain(self, email: str):
        if not self.is_email_domain_allowed(email):
            raise ValidationError(f"Email domain '{email_domain(email)}' is not allowed for registration")

    def _check_duplicates(self, email: Optional[str], username: Optional[str],
                          exclude_user_id: Optional[str] = None):
        """邮箱/用户名唯一性检查"""
        exclude_clause = "AND id != ?" if exclude_user_id else ""
        extra = [exclude_user_id] if exclude_user_id else []

        if email and self.db.fetch_one(
                f"SELECT id FROM users WHERE email = ? {exclude_clause}", [email] + extra):
            raise ConflictError("Email already in use")

        if username and self.db.fetch_one(
                f"SELECT id FROM users WHERE username = ? {exclude_clause}", [username] + extra):
            raise ConflictError("Username already in use")

    def _get_user_row(self, user_id: str) -> Dict[str, Any]:
        user = self.db.fetch_one(
            f"SELECT {USER_COLUMNS}, password_hash FROM users WHERE id = ?", [user_id]
        )
        if not user:
            raise NotFoundError("User not found")
        return user

    def _format_user(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'id': row['id'],
            'email': row['email'],
            'username': row['username'],
            'role': row['role'],
            'created_at': row['created_at'],
            'updated_at': row['updated_at']
        }

    def _insert_user(self, username: str, email: str, password: str, role: str) -> str:
        user_id = str(uuid.uuid4())
        password_hash = self.passwords.hash_password(password)

        def insert_user_operation():
            self._check_duplicates(email, username)
            self.db.conn.execute("""
                INSERT INTO users (id, email, username, password_hash, role)
                VALUES (?, ?, ?, ?, ?)
            """, [user_id, email, username, password_hash, role])

        self.db.execute_transaction([insert_user_operation])
        return user_id

    # 邮箱域名白名单
    def get_allowed_domains(self) -> List[str]:
        def load():
            rows = self.db.fetch_all("SELECT domain FROM allowed_email_domains ORDER BY domain")
            return [row['domain'].lower() for row in rows]

        return self.cache.get_or_set(CacheKeys.ALLOWED_EMAIL_DOMAINS, load, self.domains_ttl)

    def is_email_domain_allowed(self, email: str) -> bool:
        domain = email_domain(email or '')
        if not domain:
            return False
        return domain in self.get_allowed_domains()

    def list_email_domains(self) -> List[Dict[str, Any]]:
        return self.db.fetch_all(
            "SELECT id, domain, created_at FROM allowed_email_domains ORDER BY domain"
        )

    def add_email_domain(self, domain: str) -> Dict[str, Any]:
        domain = (domain or '').strip().lower()
        if not validate_domain(domain):
            raise ValidationError("Invalid domain format (e.g., example.com)")

        domain_id = str(uuid.uuid4())

        def add_domain_operation():
            if self.db.fetch_one("SELECT id FROM allowed_email_domains WHERE domain = ?", [domain]):
                raise ConflictError("Domain already exists")
            self.db.conn.execute(
                "INSERT INTO allowed_email_domains (id, domain) VALUES (?, ?)", [domain_id, domain]
            )

        self.db.execute_transaction([add_domain_operation])
        self.cache.delete_keys(CacheKeys.ALLOWED_EMAIL_DOMAINS)

        logger.info(f"邮箱域名 {domain} 已加入白名单")
        return self.db.fetch_one(
            "SELECT id, domain, created_at FROM allowed_email_domains WHERE id = ?", [domain_id]
        )

    def delete_email_domain(self, domain_id: str) -> Dict[str, Any]:
        def delete_domain_operation():
            row = self.db.fetch_one("SELECT domain FROM allowed_email_domains WHERE id = ?", [domain_id])
            if not row:
                raise NotFoundError("Domain not found")
            self.db.conn.execute("DELETE FROM allowed_email_domains WHERE id = ?", [domain_id])
            return row['domain']

        domain = self.db.execute_transaction([delete_domain_operation])[0]
        self.cache.delete_keys(CacheKeys.ALLOWED_EMAIL_DOMAINS)

        logger.info(f"邮箱域名 {domain} 已移出白名单")
        return {'id': domain_id, 'domain': domain, 'message': 'Domain deleted successfully'}

    # 注册与登录
    def register_user(self, username: str, email: str, password: str) -> Dict[str, Any]:
        """
        注册新用户（角色固定为 USER）

        Raises:
            ValidationError: 格式错误、密码强度不足、邮箱域名不在白名单
            ConflictError: 邮箱或用户名已被使用
        """
        email = (email or '').strip().lower()
        self._validate_username(username)
        self._validate_email(email)
        self._validate_password(password)
        self._verify_email_domain(email)

        user_id = self._insert_user(username, email, password, 'USER')
        logger.info(f"新用户注册: {username} ({user_id})")

        return self.get_user_by_id(user_id)

    def _issue_refresh_token(self, user_id: str) -> str:
        token = generate_refresh_token()
        expires_at = _utcnow() + timedelta(days=self.refresh_token_expire_days)
        self.db.execute_single("""
            INSERT INTO refresh_tokens (id, token, user_id, expires_at)
            VALUES (?, ?, ?, ?)
        """, [str(uuid.uuid4()), token, user_id, expires_at.strftime(TIMESTAMP_FORMAT)])
        return token

    def _create_access_token(self, user: Dict[str, Any]) -> str:
        if self.jwt is None:
            raise RuntimeError("JWTManager is not configured")
        return self.jwt.create_access_token({
            "user_id": user['id'],
            "email": user['email'],
            "role": user['role']
        })

    def login_user(self, email: str, password: str) -> Dict[str, Any]:
        """
        登录：校验密码，签发访问令牌和刷新令牌

        Raises:
            UnauthorizedError: 邮箱不存在或密码错误（不区分两种情况）
        """
        email = (email or '').strip().lower()
        row = self.db.fetch_one(
            f"SELECT {USER_COLUMNS}, password_hash FROM users WHERE email = ?", [email]
        )

        if not row or not self.passwords.verify_password(password or '', row['password_hash']):
            logger.info(f"登录失败: {email}")
            raise UnauthorizedError("Invalid email or password")

        user = self._format_user(row)
        access_token = self._create_access_token(user)
        refresh_token = self._issue_refresh_token(user['id'])

        logger.info(f"用户登录: {user['username']} ({user['id']})")
        return {
            'access_token': access_token,
            'refresh_token': refresh_token,
            'token_type': 'bearer',
            'expires_in': self.jwt.expires_in,
            'user': user
        }

    def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        stored = self.db.fetch_one("""
            SELECT user_id, expires_at, revoked FROM refresh_tokens WHERE token = ?
        """, [refresh_token])

        if not stored:
            raise UnauthorizedError("Invalid refresh token")
        if stored['revoked']:
            raise UnauthorizedError("Refresh token has been revoked")
        if _parse_timestamp(stored['expires_at']) < _utcnow():
            raise UnauthorizedError("Refresh token has expired")

        user = self._format_user(self._get_user_row(stored['user_id']))
        return {
            'access_token': self._create_access_token(user),
            'token_type': 'bearer',
            'expires_in': self.jwt.expires_in,
            'user': user
        }

    def logout(self, refresh_token: str) -> Dict[str, Any]:
        cursor = self.db.execute_single("""
            UPDATE refresh_tokens SET revoked = 1 WHERE token = ? AND revoked = 0
        """, [refresh_token])
        if cursor.rowcount == 0:
            raise ValidationError("Invalid or already revoked token")
        return {'message': 'Logged out successfully'}

    def logout_all(self, user_id: str) -> Dict[str, Any]:
        cursor = self.db.execute_single("""
            UPDATE refresh_tokens SET revoked = 1 WHERE user_id = ? AND revoked = 0
        """, [user_id])
        logger.info(f"用户 {user_id} 退出全部设备，撤销 {cursor.rowcount} 个刷新令牌")
        return {'message': 'Logged out from all devices successfully'}

    def cleanup_expired_tokens(self) -> Dict[str, Any]:
        """删除已过期或已撤销的刷新令牌"""
        cursor = self.db.execute_single("""
            DELETE FROM refresh_tokens WHERE revoked = 1 OR expires_at < ?
        """, [_utcnow().strftime(TIMESTAMP_FORMAT)])
        return {'deleted': cursor.rowcount}

    # 个人资料
    def get_user_by_id(self, user_id: str) -> Dict[str, Any]:
        return self._format_user(self._get_user_row(user_id))

    def update_profile(self, user_id: str, username: Optional[str] = None,
                       email: Optional[str] = None) -> Dict[str, Any]:
        if username is None and email is None:
            raise ValidationError("At least one field must be provided for update")
        return self._update_user_fields(user_id, username=username, email=email)

    def change_password(self, user_id: str, current_password: str, new_password: str) -> Dict[str, Any]:
        """
        修改密码，成功后撤销该用户全部刷新令牌
        """
        user = self._get_user_row(user_id)

        if not self.passwords.verify_password(current_password or '', user['password_hash']):
            raise ValidationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must be different from current password")
        self._validate_password(new_password)

        password_hash = self.passwords.hash_password(new_password)

        def change_password_operation():
            self.db.conn.execute("""
                UPDATE users
                SET password_hash = ?, updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
                WHERE id = ?
            """, [password_hash, user_id])
            self.db.conn.execute(
                "UPDATE refresh_tokens SET revoked = 1 WHERE user_id = ? AND revoked = 0", [user_id]
            )

        self.db.execute_transaction([change_password_operation])
        logger.info(f"用户 {user_id} 修改密码")
        return {'message': 'Password changed successfully'}

    def _update_user_fields(self, user_id: str, username: Optional[str] = None,
                            email: Optional[str] = None, role: Optional[str] = None) -> Dict[str, Any]:
        if username is not None:
            self._validate_username(username)
        if email is not None:
            email = email.strip().lower()
            self._validate_email(email)
        if role is not None and not validate_user_role(role):
            raise ValidationError("Invalid role")

        def update_user_operation():
            current = self._get_user_row(user_id)

            if email is not None and email != current['email']:
                self._verify_email_domain(email)

            self._check_duplicates(email, username, exclude_user_id=user_id)

            fields, params = [], []
            for column, value in (('username', username), ('email', email), ('role', role)):
                if value is not None:
                    fields.append(f"{column} = ?")
                    params.append(value)

            if fields:
                fields.append("updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')")
                self.db.conn.execute(
                    f"UPDATE users SET {', '.join(fields)} WHERE id = ?", params + [user_id]
                )

        self.db.execute_transaction([update_user_operation])
        return self.get_user_by_id(user_id)

    # 管理员：用户管理
    def create_user(self, username: str, email: str, password: str, role: str) -> Dict[str, Any]:
        email = (email or '').strip().lower()
        self._validate_username(username)
        self._validate_email(email)
        self._validate_password(password)
        if not validate_user_role(role):
            raise ValidationError("Invalid role")
        self._verify_email_domain(email)

        user_id = self._insert_user(username, email, password, role)
        logger.info(f"管理员创建用户: {username} ({role})")
        return self.get_user_by_id(user_id)

    def list_users(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        if page < 1 or limit < 1 or limit > 100:
            raise ValidationError("Invalid pagination parameters")

        total_count = self.db.fetch_one("SELECT COUNT(*) AS total FROM users")['total']
        rows = self.db.fetch_all(f"""
            SELECT {USER_COLUMNS} FROM users
            ORDER BY created_at DESC, rowid DESC
            LIMIT ? OFFSET ?
        """, [limit, (page - 1) * limit])

        return {
            'users': [self._format_user(row) for row in rows],
            'pagination': build_pagination(total_count, page, limit)
        }

    def update_user(self, user_id: str, username: Optional[str] = None,
                    email: Optional[str] = None, role: Optional[str] = None) -> Dict[str, Any]:
        user = self._update_user_fields(user_id, username=username, email=email, role=role)
        if role is not None:
            # 角色变化可能影响餐厅列表中的所有者信息
            self.cache.delete_keys(CacheKeys.CANTEENS_LIST)
        return user

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        """
        删除用户，级联删除其餐厅、菜单、订单、评价和刷新令牌
        """
        def delete_user_operation():
            user = self._get_user_row(user_id)
            self.db.conn.execute("DELETE FROM users WHERE id = ?", [user_id])
            return user['username']

        username = self.db.execute_transaction([delete_user_operation])[0]

        # 级联删除可能涉及任意餐厅的菜单和订单
        self.cache.delete_keys(CacheKeys.CANTEENS_LIST)
        self.cache.delete_by_prefix('canteen:')
        self.cache.delete_by_prefix('menu:')

        logger.info(f"用户 {username} ({user_id}) 已删除")
        return {'user_id': user_id, 'message': 'User deleted successfully'}

    def list_canteen_owners(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        if page < 1 or limit < 1 or limit > 100:
            raise ValidationError("Invalid pagination parameters")

        total_count = self.db.fetch_one(
            "SELECT COUNT(*) AS total FROM users WHERE role = ?", [ROLE_CANTEEN_OWNER]
        )['total']
        rows = self.db.fetch_all(f"""
            SELECT {USER_COLUMNS} FROM users
            WHERE role = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT ? OFFSET ?
        """, [ROLE_CANTEEN_OWNER, limit, (page - 1) * limit])

        owners = [self._format_user(row) for row in rows]
        for owner in owners:
            canteens = self.db.fetch_all(
                "SELECT id, name, is_open FROM canteens WHERE owner_id = ? ORDER BY created_at",
                [owner['id']]
            )
            owner['canteens'] = [
                {'id': c['id'], 'name': c['name'], 'is_open': bool(c['is_open'])} for c in canteens
            ]

        return {
            'owners': owners,
            'pagination': build_pagination(total_count, page, limit)
        }

    # 启动初始化
    def seed_email_domains(self, domains: List[str]) -> int:
        """写入初始邮箱域名白名单（已存在的跳过）"""
        added = 0
        for domain in domains or []:
            domain = domain.strip().lower()
            if not validate_domain(domain):
                logger.warning(f"跳过无效的初始域名: {domain}")
                continue
            cursor = self.db.execute_single(
                "INSERT OR IGNORE INTO allowed_email_domains (id, domain) VALUES (?, ?)",
                [str(uuid.uuid4()), domain]
            )
            added += cursor.rowcount

        if added:
            self.cache.delete_keys(CacheKeys.ALLOWED_EMAIL_DOMAINS)
            logger.info(f"初始化邮箱域名白名单: 新增 {added} 个")
        return added

    def bootstrap_admin(self, email: str, username: str, password: str) -> Optional[Dict[str, Any]]:
        """
        若不存在任何管理员，则创建初始管理员账号

        Returns:
            新建的管理员，已有管理员时返回None
        """
        existing = self.db.fetch_one("SELECT id FROM users WHERE role = ? LIMIT 1", [ROLE_ADMIN])
        if existing:
            return None

        email = (email or '').strip().lower()
        self._validate_email(email)
        self._validate_username(username)
        self._validate_password(password)

        user_id = self._insert_user(username, email, password, ROLE_ADMIN)
        logger.info(f"已创建初始管理员: {username} ({email})")
        return self.get_user_by_id(user_id)
