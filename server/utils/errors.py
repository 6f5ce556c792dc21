# 业务异常定义
# 业务层抛出带类型的异常，api/main.py 中的异常处理器按 status_code 统一映射为HTTP响应

from typing import Any, List, Optional


class AppError(Exception):
    """所有业务异常的基类"""
    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(AppError):
    """输入格式错误或超出范围"""
    status_code = 400


class UnauthorizedError(AppError):
    """缺少身份或身份无效"""
    status_code = 401


class ForbiddenError(AppError):
    """已认证但无权操作"""
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """唯一性冲突（邮箱、用户名、域名重复等）"""
    status_code = 409


class BusinessRuleViolation(AppError):
    status_code = 400


class CanteenClosedError(BusinessRuleViolation):
    pass


class InsufficientStockError(BusinessRuleViolation):
    pass


class AmountMismatchError(BusinessRuleViolation):
    pass


class AlreadyPaidError(BusinessRuleViolation):
    pass


class PaymentIncompleteError(BusinessRuleViolation):
    pass


class InvalidStatusTransitionError(BusinessRuleViolation):
    pass


class OrderNotCompletedError(BusinessRuleViolation):
    pass


class AlreadyReviewedError(BusinessRuleViolation):
    pass
