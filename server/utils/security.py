# 安全工具（JWT、密码哈希、刷新令牌）

import secrets
import jwt
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional
from passlib.context import CryptContext


class JWTManager:
    """
    JWT访问令牌管理器
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256",
                 access_token_expire_minutes: int = 15):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

    @property
    def expires_in(self) -> int:
        """访问令牌有效期（秒）"""
        return self.access_token_expire_minutes * 60

    def create_access_token(self, data: Dict[str, Any]) -> str:
        """
        创建访问令牌

        Args:
            data: 要编码的数据（user_id, email, role）

        Returns:
            JWT令牌字符串
        """
        to_encode = data.copy()

        now = datetime.now(timezone.utc)
        expire = now + timedelta(minutes=self.access_token_expire_minutes)
        to_encode.update({"exp": expire, "iat": now})

        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        验证JWT令牌

        Returns:
            解码后的数据，过期或无效返回None
        """
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None


class PasswordManager:
    """
    bcrypt密码哈希，rounds可配置（测试环境使用最小值加速）
    """

    def __init__(self, rounds: int = 12):
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash_password(self, password: str) -> str:
        return self.context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return self.context.verify(plain_password, hashed_password)


def generate_refresh_token() -> str:
    """生成不透明的随机刷新令牌"""
    return secrets.token_hex(64)
