# API公共数据模型
# 对外JSON字段统一为camelCase，金额以字符串形式输出（"21.98"）

from typing import Any, Dict, List, Type

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Python内部snake_case，请求和响应使用camelCase，两种写法的请求字段都接受"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class PaginationInfo(CamelModel):
    """分页信息模型"""
    total_count: int
    current_page: int
    per_page: int
    total_pages: int
    has_next: bool
    has_prev: bool


def dump(model: Type[CamelModel], data: Any) -> Any:
    """把数据库操作层返回的字典（或字典列表）转换为响应JSON"""
    if isinstance(data, list):
        return [model.model_validate(item).to_json() for item in data]
    return model.model_validate(data).to_json()


def dump_page(model: Type[CamelModel], items: List[Dict[str, Any]], key: str,
              pagination: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: dump(model, items),
        "pagination": PaginationInfo.model_validate(pagination).to_json()
    }
