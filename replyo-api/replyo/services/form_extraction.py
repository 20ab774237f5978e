"""Field extraction from loosely structured onboarding form payloads.

Form builders post the same answers in very different shapes: flat JSON,
a ``responses`` list of question/answer objects, or Fillout submissions
with ``answers`` nested under ``submission`` or ``data``.
"""

from typing import Any, Iterable, Optional

from replyo.services.business_profile_service import normalize_ig_username

PROFILE_QUESTION_KEYS = ("question", "label", "name", "fieldId", "field")
PROFILE_ANSWER_KEYS = ("answer", "value", "response", "data")
FILLOUT_LABEL_KEYS = ("field", "label", "question", "name", "title")
FILLOUT_VALUE_KEYS = ("value", "answer", "response", "data")

# field -> (flat keys, question terms)
PROFILE_FIELDS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "ig_username": (
        ("ig_username", "instagram_username", "instagram", "ig"),
        ("instagram username", "ig username", "instagram", "ig", "instagram_username"),
    ),
    "business_name": (("business_name", "company_name", "name"), ("business name", "company name", "name")),
    "booking_link": (
        ("booking_link", "booking_url", "booking", "calendly"),
        ("booking link", "booking url", "booking", "calendly"),
    ),
    "industry": (("industry", "sector", "category"), ("industry", "sector", "category")),
    "email": (("email", "email_address"), ("email", "email address", "e-mail")),
    "phone": (("phone", "phone_number", "telephone"), ("phone", "phone number", "telephone")),
    "location": (("location", "address", "city"), ("location", "address", "city")),
    "hours": (("hours", "business_hours", "operating_hours"), ("hours", "business hours", "operating hours")),
    "tone": (("tone", "voice", "style"), ("tone", "voice", "style")),
}

FILLOUT_FIELDS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "business_name": (("business_name", "company_name", "name"), ("business name", "company name", "business", "company")),
    "booking_link": (("booking_link", "booking_url", "booking"), ("booking link", "booking url", "booking", "calendar", "calendly")),
    "industry": (("industry", "sector"), ("industry", "sector", "category", "business type")),
    "email": (("email", "email_address"), ("email", "email address", "e-mail")),
    "phone": (("phone", "phone_number"), ("phone", "phone number", "telephone", "mobile")),
    "location": (("location", "address"), ("location", "address", "city", "where")),
}

FILLOUT_DIRECT_USERNAME_KEYS = ("ig_username", "instagram_username", "instagram", "ig")
MAX_USERNAME_SCAN_LENGTH = 50


def normalize_value(value: Any) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, list):
        for item in value:
            if item and str(item).strip():
                return str(item).strip()
        return None
    trimmed = str(value).strip()
    return trimmed or None


def first_url(value: Optional[str]) -> Optional[str]:
    """Keep the first URL-looking token when several links were pasted."""
    if not value or " " not in value:
        return value
    urls = [token for token in value.split() if "http" in token or ".com" in token]
    return urls[0] if urls else value


def _first_present(item: dict, keys: Iterable[str], allow_falsy: bool = False) -> Any:
    for key in keys:
        value = item.get(key)
        if allow_falsy and value is not None:
            return value
        if value:
            return value
    return None


def _search_answers(
    answers: Any,
    terms: Iterable[str],
    label_keys: Iterable[str],
    value_keys: Iterable[str],
    allow_falsy: bool = False,
) -> Optional[str]:
    if not isinstance(answers, list):
        return None
    terms = [term.lower() for term in terms]
    for answer in answers:
        if not isinstance(answer, dict):
            continue
        label = _first_present(answer, label_keys)
        value = _first_present(answer, value_keys, allow_falsy=allow_falsy)
        if not label or value is None:
            continue
        label = str(label).lower().strip()
        if any(term in label for term in terms):
            normalized = normalize_value(value)
            if normalized:
                return normalized
    return None


def extract_profile_fields(body: dict[str, Any]) -> dict[str, Optional[str]]:
    """Extract profile fields from a flat body or a ``responses`` list."""
    extracted: dict[str, Optional[str]] = {}
    for field, (flat_keys, terms) in PROFILE_FIELDS.items():
        value = None
        for key in flat_keys:
            value = normalize_value(body.get(key))
            if value:
                break
        if not value:
            value = _search_answers(body.get("responses"), terms, PROFILE_QUESTION_KEYS, PROFILE_ANSWER_KEYS)
        extracted[field] = value

    extracted["booking_link"] = first_url(extracted["booking_link"])
    return extracted


def _answer_lists(payload: dict[str, Any]) -> list[Any]:
    submission = payload.get("submission") if isinstance(payload.get("submission"), dict) else {}
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    return [payload.get("answers"), submission.get("answers"), data.get("answers"), payload.get("responses")]


def _scan_for_handle(obj: Any) -> Optional[str]:
    if isinstance(obj, str):
        if "@" in obj and len(obj) < MAX_USERNAME_SCAN_LENGTH:
            return normalize_ig_username(obj) or None
        return None
    if isinstance(obj, list):
        values = obj
    elif isinstance(obj, dict):
        values = list(obj.values())
    else:
        return None
    for value in values:
        found = _scan_for_handle(value)
        if found:
            return found
    return None


def find_fillout_username(payload: dict[str, Any]) -> Optional[str]:
    for key in FILLOUT_DIRECT_USERNAME_KEYS:
        username = normalize_ig_username(str(payload[key])) if payload.get(key) else ""
        if username:
            return username

    for answers in _answer_lists(payload):
        found = _search_answers(answers, ("instagram", "ig"), FILLOUT_LABEL_KEYS, FILLOUT_VALUE_KEYS, allow_falsy=True)
        if found:
            username = normalize_ig_username(found)
            if username:
                return username

    return _scan_for_handle(payload)


def extract_fillout_fields(payload: dict[str, Any]) -> dict[str, Optional[str]]:
    extracted: dict[str, Optional[str]] = {}
    for field, (direct_keys, labels) in FILLOUT_FIELDS.items():
        value = None
        for key in direct_keys:
            if payload.get(key):
                value = str(payload[key]).strip() or None
                if value:
                    break
        if not value:
            for answers in _answer_lists(payload):
                value = _search_answers(answers, labels, FILLOUT_LABEL_KEYS, FILLOUT_VALUE_KEYS, allow_falsy=True)
                if value:
                    break
        extracted[field] = value
    return extracted
