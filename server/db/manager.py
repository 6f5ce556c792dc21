# 数据库连接和事务管理的核心组件

import sqlite3
import logging
import os
from datetime import datetime
from typing import List, Optional, Dict, Any, Callable
from contextlib import contextmanager


class DatabaseManager:
    """
    数据库管理器

    负责SQLite数据库连接管理、事务处理和基础操作。
    连接以自动提交模式打开，组合操作统一通过 transaction() / execute_transaction()
    开启 BEGIN IMMEDIATE 事务：写者串行化，WAL 模式下读者不受阻塞。
    """

    def __init__(self, db_path: str, auto_connect: bool = False, timeout: float = 5.0):
        """
        Args:
            db_path: 数据库文件路径
            auto_connect: 是否自动连接数据库
            timeout: 等待写锁的秒数
        """
        self.db_path = db_path
        self.timeout = timeout
        self.conn = None
        self._is_connected = False
        self._transaction_depth = 0

        self.logger = logging.getLogger(self.__class__.__name__)

        if auto_connect:
            self.connect()

    def connect(self) -> sqlite3.Connection:
        """
        建立数据库连接

        Raises:
            ConnectionError: 连接失败时抛出异常
        """
        try:
            if self.conn is not None:
                self.logger.warning("数据库连接已存在，先关闭现有连接")
                self.close()

            db_dir = os.path.dirname(self.db_path)
            if db_dir and not os.path.exists(db_dir):
                os.makedirs(db_dir, exist_ok=True)
                self.logger.info(f"创建数据库目录: {db_dir}")

            # isolation_level=None: 由本类显式管理事务边界
            self.conn = sqlite3.connect(
                self.db_path,
                timeout=self.timeout,
                check_same_thread=False,
                isolation_level=None
            )
            self.conn.row_factory = sqlite3.Row
            self._is_connected = True
            self.logger.debug(f"成功连接到数据库: {self.db_path}")

            self._configure_database()

            return self.conn

        except sqlite3.Error as e:
            self.logger.error(f"连接数据库失败: {str(e)}")
            raise ConnectionError(f"无法连接到数据库 {self.db_path}: {str(e)}")

    def close(self):
        """
        关闭数据库连接
        """
        if self.conn is not None:
            try:
                self.conn.close()
                self.logger.debug("数据库连接已关闭")
            except sqlite3.Error as e:
                self.logger.error(f"关闭数据库连接时发生错误: {str(e)}")
            finally:
                self.conn = None
                self._is_connected = False
                self._transaction_depth = 0

    def _configure_database(self):
        """
        配置SQLite参数
        """
        optimizations = [
            "PRAGMA foreign_keys = ON",        # 启用外键约束（级联删除依赖于此）
            "PRAGMA journal_mode = WAL",       # 使用WAL模式提高并发性能
            "PRAGMA synchronous = NORMAL",
            "PRAGMA temp_store = MEMORY"
        ]

        for opt in optimizations:
            try:
                self.conn.execute(opt)
            except sqlite3.Error as e:
                self.logger.warning(f"配置数据库参数 {opt} 时出现警告: {str(e)}")

        self.logger.debug("数据库参数配置完成")

    def is_connected(self) -> bool:
        return self._is_connected and self.conn is not None

    def ensure_connected(self):
        """
        Raises:
            ConnectionError: 连接不可用时抛出异常
        """
        if not self.is_connected():
            raise ConnectionError("数据库未连接，请先调用connect()方法")

    @contextmanager
    def transaction(self):
        """
        事务上下文管理器

        任何异常都会回滚整个事务并原样抛出。嵌套调用复用外层事务。

        Usage:
            with db_manager.transaction() as conn:
                conn.execute("UPDATE ...")
                conn.execute("INSERT ...")
        """
        self.ensure_connected()

        if self._transaction_depth > 0:
            self._transaction_depth += 1
            try:
                yield self.conn
            finally:
                self._transaction_depth -= 1
            return

        transaction_id = datetime.now().strftime("%Y%m%d%H%M%S%f")
        self.conn.execute("BEGIN IMMEDIATE")
        self._transaction_depth = 1
        self.logger.debug(f"事务 {transaction_id} 开始")

        try:
            yield self.conn
            self.conn.execute("COMMIT")
            self.logger.debug(f"事务 {transaction_id} 提交成功")
        except Exception as e:
            self.logger.info(f"事务 {transaction_id} 执行失败，回滚: {type(e).__name__}: {str(e)}")
            try:
                self.conn.execute("ROLLBACK")
            except sqlite3.Error as rollback_error:
                self.logger.error(f"事务 {transaction_id} 回滚失败: {str(rollback_error)}")
            raise
        finally:
            self._transaction_depth = 0

    def execute_transaction(self, operations: List[Callable]) -> List[Any]:
        """
        在同一个事务中串行执行操作

        Args:
            operations: 操作函数列表，每个函数返回操作结果

        Returns:
            所有操作结果的列表
        """
        if not operations:
            self.logger.warning("事务操作列表为空")
            return []

        results = []
        with self.transaction():
            for i, operation in enumerate(operations):
                self.logger.debug(f"执行事务中的操作 {i+1}/{len(operations)}")
                results.append(operation())

        return results

    def execute_single(self, query: str, params: Optional[List] = None) -> sqlite3.Cursor:
        """
        执行单条SQL（自动提交模式，或在当前事务内）
        """
        self.ensure_connected()

        try:
            if params:
                return self.conn.execute(query, params)
            return self.conn.execute(query)
        except sqlite3.Error as e:
            self.logger.error(f"执行SQL失败: {query.strip()[:100]}..., 错误: {str(e)}")
            raise

    def fetch_one(self, query: str, params: Optional[List] = None) -> Optional[Dict[str, Any]]:
        row = self.execute_single(query, params).fetchone()
        return dict(row) if row else None

    def fetch_all(self, query: str, params: Optional[List] = None) -> List[Dict[str, Any]]:
        return [dict(row) for row in self.execute_single(query, params).fetchall()]

    def get_table_info(self, table_name: str) -> Dict[str, Any]:
        """
        获取数据表信息
        """
        self.ensure_connected()

        columns_result = self.conn.execute(f"PRAGMA table_info('{table_name}')").fetchall()
        if not columns_result:
            raise ValueError(f"表 {table_name} 不存在")

        columns = [{
            'name': col[1],
            'type': col[2],
            'not_null': bool(col[3]),
            'default_value': col[4],
            'primary_key': bool(col[5])
        } for col in columns_result]

        record_count = self.conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]

        return {
            'table_name': table_name,
            'columns': columns,
            'record_count': record_count
        }

    def check_integrity(self, core_tables: List[str]):
        """
        检查核心表存在且外键无悬挂引用

        Raises:
            RuntimeError: 发现问题时
        """
        self.ensure_connected()
        self.logger.info("开始数据库完整性检查")

        issues = []
        for table in core_tables:
            exists = self.conn.execute(
                "SELECT COUNT(*) FROM sqlite_master WHERE type='table' AND name=?",
                (table,)
            ).fetchone()[0]
            if not exists:
                issues.append(f"核心表 {table} 不存在")

        for row in self.conn.execute("PRAGMA foreign_key_check").fetchall():
            issues.append(f"表 {row[0]} rowid={row[1]} 的外键引用 {row[2]} 不存在")

        if issues:
            error_msg = "数据库完整性检查发现问题:\n" + "\n".join(issues)
            self.logger.error(error_msg)
            raise RuntimeError(error_msg)

        self.logger.info("数据库完整性检查通过")

    def __enter__(self):
        if not self.is_connected():
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        if self.is_connected():
            self.close()
