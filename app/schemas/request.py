from pydantic import BaseModel
from typing import Any, List, Optional


class RawQueryRequest(BaseModel):
    query: Optional[str] = None
    params: Optional[List[Any]] = None
