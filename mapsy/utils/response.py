from typing import Any, Dict, List, Optional
from pydantic import BaseModel
from bson import ObjectId

class APIResponse(BaseModel):
    success: bool = True
    message: str = "Success"
    data: Optional[Any] = None
    errors: Optional[List[Dict[str, Any]]] = None
    code: Optional[str] = None

def convert_objectid(obj):
    if isinstance(obj, ObjectId):
        return str(obj)
    elif isinstance(obj, BaseModel):
        return convert_objectid(obj.model_dump(by_alias=True))
    elif isinstance(obj, list):
        return [convert_objectid(item) for item in obj]
    elif isinstance(obj, dict):
        return {k: convert_objectid(v) for k, v in obj.items()}
    else:
        return obj

def public_document(doc: Optional[dict], exclude: tuple = ("password", "__v")) -> Optional[dict]:
    """Mongo document -> API shape: ``_id`` becomes ``id`` and ObjectIds become strings."""
    if doc is None:
        return None
    out = {"id": str(doc["_id"])} if "_id" in doc else {}
    for key, value in doc.items():
        if key == "_id" or key in exclude:
            continue
        out[key] = convert_objectid(value)
    return out

def _envelope(response: APIResponse) -> Dict[str, Any]:
    # optional keys are omitted rather than sent as null
    body = {"success": response.success, "message": response.message}
    for key in ("data", "errors", "code"):
        value = getattr(response, key)
        if value is not None:
            body[key] = value
    return body

def success_response(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    return _envelope(APIResponse(success=True, message=message, data=convert_objectid(data)))

def error_response(
    message: str = "Error",
    errors: Optional[List[Dict[str, Any]]] = None,
    code: Optional[str] = None,
) -> Dict[str, Any]:
    return _envelope(APIResponse(success=False, message=message, errors=errors, code=code))
