# 配置管理
# 按 CONFIG_ENV 选择 config/ 下的 JSON 文件，字符串中的 ${ENV_VAR} 用环境变量替换

import json
import os
import logging
import re
from typing import Dict, Any, List, Optional

SERVER_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

CONFIG_FILES = {
    'production': 'config/config-prod.json',
    'development': 'config/config-dev.json',
    'test': 'config/config-test.json'
}

REQUIRED_SECTIONS = ['app', 'server', 'database', 'auth', 'logging']

ENV_PLACEHOLDER = re.compile(r'\$\{([^}]+)\}')


def _substitute_env(value: Any) -> Any:
    """未设置的环境变量保留占位符原文，由 validate_config 报告"""
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(item) for item in value]
    if isinstance(value, str):
        return ENV_PLACEHOLDER.sub(lambda m: os.getenv(m.group(1), m.group(0)), value)
    return value


def load_config(config_env: Optional[str] = None) -> Dict[str, Any]:
    config_env = config_env or os.getenv('CONFIG_ENV', 'development')
    if config_env not in CONFIG_FILES:
        raise ValueError(f"未知的配置环境: {config_env}")

    config_file = os.path.join(SERVER_DIR, CONFIG_FILES[config_env])
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config = _substitute_env(json.load(f))
    except FileNotFoundError:
        logging.error(f"配置文件不存在: {config_file}")
        raise
    except json.JSONDecodeError as e:
        logging.error(f"配置文件JSON格式错误: {e}")
        raise

    logging.info(f"成功加载配置文件: {config_file}")
    return config


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    检查配置完整性

    Returns:
        问题描述列表，为空表示通过
    """
    problems = [f"缺少配置段: {section}" for section in REQUIRED_SECTIONS if section not in config]

    secret = config.get('auth', {}).get('jwt_secret_key')
    if not secret or ENV_PLACEHOLDER.search(secret):
        problems.append("JWT密钥未配置")

    # 缓存和限流都在进程内存中，多进程时写操作只能失效本进程的缓存
    workers = config.get('server', {}).get('workers', 1)
    if workers != 1:
        problems.append(f"server.workers 必须为 1（当前 {workers}）：缓存与限流状态不跨进程共享")

    return problems


class Config:
    def __init__(self, env: Optional[str] = None):
        self.env = env or os.getenv('CONFIG_ENV', 'development')
        self.config = load_config(self.env)

        problems = validate_config(self.config)
        if problems:
            for problem in problems:
                logging.error(problem)
            raise ValueError(f"配置文件验证失败: {'; '.join(problems)}")

    def get(self, key: str, default=None):
        """点号分隔的嵌套键，如 'auth.jwt_algorithm'"""
        value = self.config
        for k in key.split('.'):
            if not isinstance(value, dict) or k not in value:
                return default
            value = value[k]
        return value

    def get_database_config(self) -> Dict[str, Any]:
        """数据库配置，相对路径以 server 目录为基准"""
        db_config = dict(self.config.get('database', {}))
        path = db_config.get('path', 'data/canteen.db')
        if path != ':memory:' and not os.path.isabs(path):
            path = os.path.join(SERVER_DIR, path)
        db_config['path'] = path
        return db_config
