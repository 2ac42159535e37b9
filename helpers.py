import math
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from bson import ObjectId

from errors import BadRequestError

_NON_NUMERIC = re.compile(r"[^\d.\-]")


def to_number(value: Any, default: float = 0) -> float:
    """Coerce feed/client input to a number, stripping currency signs and separators."""
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = _NON_NUMERIC.sub("", value)
    elif not isinstance(value, (int, float)):
        return default
    try:
        number = float(value)
    except (ValueError, OverflowError):
        # OverflowError: integers past float range
        return default
    return number if math.isfinite(number) else default


def to_date(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if re.fullmatch(r"\d{8}", text):
            # SAP DATS: YYYYMMDD
            try:
                return datetime.strptime(text, "%Y%m%d").replace(tzinfo=timezone.utc)
            except ValueError:
                return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def is_valid_http_url(url: Any) -> bool:
    if not isinstance(url, str) or not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def luhn_valid(digits: str) -> bool:
    checksum = 0
    for i, ch in enumerate(reversed(digits)):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        checksum += d
    return checksum % 10 == 0


def parse_object_id(value: Any, what: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise BadRequestError(f"Invalid {what}")
    return ObjectId(value)


def set_single_flag(items: List[Dict[str, Any]], flag: str, match: Callable[[Dict[str, Any]], bool]) -> bool:
    """Set `flag` on the first item accepted by `match` and clear it everywhere else.

    Shared by primary images, default addresses and default cards. Returns
    False when nothing matched, in which case every flag ends up cleared and
    the caller is expected not to persist the list.
    """
    found = False
    for item in items:
        hit = not found and bool(match(item))
        item[flag] = hit
        found = found or hit
    return found


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    out: Dict[str, Any] = {}
    for k, v in doc.items():
        if k == "_id":
            out["id"] = _serialize_value(v)
        else:
            out[k] = _serialize_value(v)
    return out


def serialize_list(docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_doc(d) for d in docs]


def mask_cards(cards: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_doc({k: v for k, v in card.items() if k != "token"}) for card in cards]


def sanitize_user(user: Dict[str, Any]) -> Dict[str, Any]:
    data = {k: v for k, v in user.items() if k not in ("password", "cards")}
    data = serialize_doc(data)
    data["cards"] = mask_cards(user.get("cards") or [])
    return data


def _first(source: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = source.get(key)
        if value is not None:
            return value
    return default


def normalize_product(p: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Client-facing product shape, accepting both catalog documents and raw SAP rows."""
    if not p:
        return None

    images = p.get("images") if isinstance(p.get("images"), list) else []
    primary = None
    if images:
        primary = next((im for im in images if isinstance(im, dict) and im.get("isPrimary")), images[0])

    name = str(_first(p, "name", "maktx", "shortText", default=""))
    raw_date = _first(p, "date", "dates")
    stock = to_number(_first(p, "stock", "labst", default=0), 0)

    return {
        "productId": str(_first(p, "_id", "id", "materialNo", default="")),
        "materialNo": str(_first(p, "materialNo", "matnr", default="")),
        "name": name,
        "shortText": str(_first(p, "shortText", "maktx", default=name)),
        "price": to_number(_first(p, "price", "stprs", default=0), 0),
        "currency": _first(p, "currency", default="TRY"),
        "date": _serialize_value(to_date(raw_date)) if raw_date else None,
        "materialGroup": _first(p, "materialGroup", "matkl"),
        "materialGroupName": _first(p, "materialGroupName", "wgbez"),
        "stock": int(stock) if float(stock).is_integer() else stock,
        "isActive": p.get("isActive", True),
        "image": primary.get("url") if isinstance(primary, dict) else None,
        "images": [serialize_doc(im) if isinstance(im, dict) else im for im in images],
    }
