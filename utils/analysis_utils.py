import json
import re
from typing import Any, Optional

# ```json ... ``` or ``` ... ``` around the whole answer
CODE_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?(.*?)\n?```$", re.DOTALL)

# prefix used by older records that kept the raw service answer in their notes
LEGACY_JSON_MARKER = "DeepSeek response: ```json"


def strip_code_fence(text: str) -> str:
    """Remove a markdown code fence wrapping the whole text, if any."""
    match = CODE_FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text


def extract_json_candidate(text: Optional[str]) -> str:
    """Best guess at the JSON object inside a service answer.

    Trims the text, strips a surrounding code fence and then keeps the span
    from the first '{' to the last '}' so prose around the object is ignored.
    """
    content = (text or "").strip()
    content = strip_code_fence(content)
    start = content.find("{")
    end = content.rfind("}")
    if start != -1 and end != -1 and end > start:
        return content[start:end + 1]
    return content


def reformat_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def extract_legacy_json(notes: str) -> Optional[str]:
    """JSON text stored after the legacy marker, or None."""
    start = notes.find(LEGACY_JSON_MARKER)
    if start == -1:
        return None
    body = notes[start + len(LEGACY_JSON_MARKER):]
    end = body.rfind("```")
    if end != -1:
        body = body[:end]
    return body.strip() or None
