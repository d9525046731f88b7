"""
Shared schema base classes
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema exposing camelCase field names on the wire"""
    
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class PaginationMeta(CamelModel):
    """Pagination envelope for list endpoints"""
    total: int
    page: int
    limit: int
    pages: int
