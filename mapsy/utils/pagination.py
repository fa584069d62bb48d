import math
from typing import Any, Dict, Optional, Tuple

MAX_PAGE_SIZE = 100

def _positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default

def parse_page_params(page: Optional[str], limit: Optional[str], default_limit: int) -> Tuple[int, int]:
    """Lenient page/limit parsing: bad or missing values fall back to defaults."""
    return _positive_int(page, 1), min(_positive_int(limit, default_limit), MAX_PAGE_SIZE)

def build_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "currentPage": page,
        "totalPages": math.ceil(total / limit) if limit else 0,
        "totalItems": total,
        "hasNext": page * limit < total,
    }
