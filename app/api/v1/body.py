import json
from urllib.parse import unquote

from fastapi import Request

from app.core.errors import ClientError


async def read_json_body(request: Request):
    raw = await request.body()
    try:
        return json.loads(raw)
    except ValueError:
        raise ClientError("Invalid JSON body") from None


def path_parts(request: Request):
    # 先按原始路径切段再逐段解码，id 里的 %2F 不会被当成分隔符
    raw_path = request.scope.get("raw_path")
    if raw_path is None:
        return [p for p in request.scope["path"].split("/") if p]
    path = raw_path.decode("latin-1").split("?", 1)[0]
    return [unquote(p) for p in path.split("/") if p]
